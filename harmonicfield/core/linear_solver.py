"""
Penalised linear system solve.

With the Laplacian L (negative semi-definite, zero row sums), the penalty
matrix P and the constraint vector b, the harmonic field x satisfies

    (L - P) x = P b

Rows without a constraint reduce to the harmonic condition (L x)_i = 0 and
constrained rows are pulled to x_i ~ -b_i; the result writer undoes the sign.
The system is handed to the backend multiplied by -1,

    (P - L) x = -P b

so the matrix is symmetric positive definite on every connected component
that carries at least one constraint, which is what both the sparse direct
factorisation and conjugate gradients expect.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional, Tuple

import numpy as np
from scipy import sparse
from scipy.sparse.linalg import cg, splu

from .constraints import EncodedConstraints
from .solver_selector import SolverStatus, SolverType

_LOGGER = logging.getLogger(__name__)

# float64 stopping tolerance of the conjugate gradient solve
CG_RTOL = 1e-12


@dataclass(frozen=True)
class SolveResult:
    """
    Attributes:
        solution: (V, 1) sparse solution column (before the sign flip)
        status: backend status
        solver_type: method that produced the solution
        iterations: conjugate gradient iterations (None for the direct solver)
        residual: ||A x - rhs|| / ||rhs|| of the returned solution
    """
    solution: sparse.csc_matrix
    status: SolverStatus
    solver_type: SolverType
    iterations: Optional[int] = None
    residual: Optional[float] = None

    @property
    def ok(self) -> bool:
        return self.status is SolverStatus.SUCCESS


def assemble_system(
    laplacian: sparse.spmatrix,
    constraints: EncodedConstraints,
) -> Tuple[sparse.csr_matrix, np.ndarray]:
    """Return (P - L, -P b) with a dense right-hand side."""
    system = (constraints.penalty - laplacian).tocsr()
    rhs = -(constraints.penalty @ constraints.vector).toarray().ravel()
    return system, rhs.astype(system.dtype, copy=False)


def _relative_residual(system: sparse.spmatrix, x: np.ndarray, rhs: np.ndarray) -> float:
    rhs_norm = float(np.linalg.norm(rhs))
    res_norm = float(np.linalg.norm(system @ x - rhs))
    if rhs_norm == 0.0:
        return res_norm
    return res_norm / rhs_norm


def _solve_direct(system: sparse.csr_matrix, rhs: np.ndarray) -> Tuple[np.ndarray, SolverStatus]:
    """
    Symmetric sparse factorisation (SuperLU in symmetric mode, no off-diagonal
    pivoting). A positive definite system has strictly positive pivots.
    """
    try:
        lu = splu(
            system.tocsc(),
            permc_spec="MMD_AT_PLUS_A",
            diag_pivot_thresh=0.0,
            options={"SymmetricMode": True},
        )
    except RuntimeError:
        _LOGGER.debug("Sparse factorisation failed (singular system)", exc_info=True)
        return np.zeros_like(rhs), SolverStatus.NUMERICAL_ISSUE

    status = SolverStatus.SUCCESS
    pivots = lu.U.diagonal()
    if not np.all(pivots > 0):
        _LOGGER.debug(
            "System is not positive definite: min pivot %g", float(np.min(pivots))
        )
        status = SolverStatus.NUMERICAL_ISSUE

    x = np.asarray(lu.solve(rhs), dtype=rhs.dtype).ravel()
    return x, status


def _cg_rtol(dtype) -> float:
    """Relative stopping tolerance: near machine precision for the working dtype."""
    return max(CG_RTOL, 10.0 * float(np.finfo(dtype).eps))


def _residual_limit(dtype) -> float:
    return float(np.sqrt(np.finfo(dtype).eps))


def _jacobi_preconditioner(system: sparse.csr_matrix) -> sparse.dia_matrix:
    diag = system.diagonal()
    inv = np.ones_like(diag)
    positive = diag > 0
    inv[positive] = 1.0 / diag[positive]
    return sparse.diags(inv, 0, shape=system.shape, dtype=system.dtype)


def _solve_iterative(
    system: sparse.csr_matrix,
    rhs: np.ndarray,
) -> Tuple[np.ndarray, SolverStatus, int]:
    """
    Jacobi-preconditioned conjugate gradients, at most 2*V iterations.

    The right-hand side scales with alpha, so the stopping test
    ||r|| <= rtol * ||rhs|| needs rtol close to machine precision for the
    unconstrained rows to come out harmonic.
    """
    iterations = 0

    def _count(_xk):
        nonlocal iterations
        iterations += 1

    x, info = cg(
        system,
        rhs,
        rtol=_cg_rtol(rhs.dtype),
        maxiter=2 * system.shape[0],
        M=_jacobi_preconditioner(system),
        callback=_count,
    )
    x = np.asarray(x, dtype=rhs.dtype).ravel()

    if info > 0:
        return x, SolverStatus.NO_CONVERGENCE, iterations
    if info < 0:
        return x, SolverStatus.NUMERICAL_ISSUE, iterations
    return x, SolverStatus.SUCCESS, iterations


def _as_column(x: np.ndarray) -> sparse.csc_matrix:
    return sparse.csc_matrix(x.reshape(-1, 1))


def solve_penalized_system(
    laplacian: sparse.spmatrix,
    constraints: EncodedConstraints,
    solver_type: SolverType,
) -> SolveResult:
    """
    Solve the penalised harmonic system with the requested backend.

    Numerical trouble never raises here: the status says what happened and the
    solution is whatever the backend produced (zeros when it produced nothing).
    """
    n_rows, n_cols = laplacian.shape
    dtype = np.result_type(laplacian.dtype, constraints.penalty.dtype)

    if (
        n_rows != n_cols
        or constraints.penalty.shape != (n_rows, n_cols)
        or constraints.vector.shape != (n_rows, 1)
    ):
        _LOGGER.debug(
            "Invalid system shapes: laplacian %s, penalty %s, constraints %s",
            laplacian.shape,
            constraints.penalty.shape,
            constraints.vector.shape,
        )
        return SolveResult(
            solution=_as_column(np.zeros(n_rows, dtype=dtype)),
            status=SolverStatus.INVALID_INPUT,
            solver_type=solver_type,
        )

    system, rhs = assemble_system(laplacian, constraints)

    if not np.any(rhs):
        # x = 0 solves the system, even when the matrix is singular
        return SolveResult(
            solution=_as_column(np.zeros(n_rows, dtype=dtype)),
            status=SolverStatus.SUCCESS,
            solver_type=solver_type,
            iterations=0 if solver_type is SolverType.ITERATIVE else None,
            residual=0.0,
        )

    iterations: Optional[int] = None
    if solver_type is SolverType.ITERATIVE:
        x, status, iterations = _solve_iterative(system, rhs)
    else:
        x, status = _solve_direct(system, rhs)

    if not np.all(np.isfinite(x)):
        status = SolverStatus.NUMERICAL_ISSUE
        residual = float("nan")
    else:
        residual = _relative_residual(system, x, rhs)
        if status is SolverStatus.SUCCESS and residual > _residual_limit(dtype):
            # tiny positive pivots or early CG exit leave a result that does not solve the system
            status = SolverStatus.NUMERICAL_ISSUE

    _LOGGER.debug(
        "%s solve: status=%s, iterations=%s, relative residual=%.3e",
        solver_type.value,
        status.value,
        iterations,
        residual,
    )
    return SolveResult(
        solution=_as_column(x),
        status=status,
        solver_type=solver_type,
        iterations=iterations,
        residual=residual,
    )
