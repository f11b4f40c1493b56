"""
Constrained harmonic scalar field on a triangle mesh.

Computes a per-vertex field that satisfies the discrete Laplace equation
everywhere except at constrained vertices, where it is pinned (softly, via a
penalty) to given values:

    1. Laplacian (uniform or cotangent weights)
    2. constraint vector + diagonal penalty (alpha = 10**log_alpha)
    3. solver choice (explicit, or by problem size)
    4. sparse solve of the penalised system
    5. dense, sign-corrected copy into the caller's buffer

scipy is the numerical backend. It is checked at call time: without it the
computation is skipped, the output buffer is left untouched and
HarmonicFieldStatus.BACKEND_UNAVAILABLE is returned.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
import importlib.util
import logging
import time
from typing import Optional, Union

import numpy as np
import trimesh

from .errors import InvalidInputError, SolverFailedError
from .mesh_loader import MeshData
from .runtime_defaults import DEFAULTS, RuntimeDefaults
from .solver_selector import (
    NNZ_THRESHOLD,
    SolverStatus,
    SolverType,
    SolvingMethod,
    resolve_solving_method,
)

_LOGGER = logging.getLogger(__name__)

_SUPPORTED_DTYPES = (np.dtype(np.float32), np.dtype(np.float64))


class HarmonicFieldStatus(Enum):
    SUCCESS = "success"
    SOLVER_FAILED = "solver_failed"
    BACKEND_UNAVAILABLE = "backend_unavailable"


@dataclass(frozen=True)
class HarmonicFieldConfig:
    """
    Solve options

    Attributes:
        use_cotan_weights: cotangent Laplacian (True) or uniform weights (False)
        solving_method: AUTO, CHOLESKY or ITERATIVE (strings accepted)
        log_alpha: penalty exponent, alpha = 10**log_alpha
        thread_count: workers for the per-vertex output copy
        raise_on_solver_failure: raise SolverFailedError instead of writing an
            unchecked result when the solver does not report success
        nnz_threshold: AUTO switches to the iterative solver above this
            non-zero estimate
    """
    use_cotan_weights: bool = True
    solving_method: Union[SolvingMethod, str] = SolvingMethod.AUTO
    log_alpha: int = 5
    thread_count: int = 1
    raise_on_solver_failure: bool = True
    nnz_threshold: int = NNZ_THRESHOLD

    def __post_init__(self):
        object.__setattr__(self, "solving_method", SolvingMethod.parse(self.solving_method))

        for name in ("log_alpha", "thread_count", "nnz_threshold"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
                raise InvalidInputError(f"{name} must be an integer, got {value!r}", stage="config")
            object.__setattr__(self, name, int(value))

        if self.thread_count < 1:
            raise InvalidInputError("thread_count must be >= 1", stage="config")
        if self.nnz_threshold < 1:
            raise InvalidInputError("nnz_threshold must be >= 1", stage="config")

    @classmethod
    def from_defaults(
        cls,
        defaults: Optional[RuntimeDefaults] = None,
        **overrides,
    ) -> 'HarmonicFieldConfig':
        """Config from environment-driven runtime defaults, with keyword overrides."""
        d = defaults if defaults is not None else DEFAULTS
        config = cls(
            use_cotan_weights=d.use_cotan_weights,
            solving_method=d.solving_method,
            log_alpha=d.log_alpha,
            thread_count=d.thread_count,
            nnz_threshold=d.nnz_threshold,
        )
        return replace(config, **overrides) if overrides else config

    @property
    def weighting_label(self) -> str:
        return "cotan weights" if self.use_cotan_weights else "discrete laplacian"


@dataclass(frozen=True)
class HarmonicFieldResult:
    """
    Attributes:
        status: overall outcome
        scalar_field: (V,) output buffer (None when the computation was skipped)
        solver_type: method used (None when skipped)
        solver_status: status reported by the linear solve (None when skipped)
        n_constraints: distinct constrained vertices
        elapsed: wall time in seconds
        iterations: conjugate gradient iterations, when applicable
        residual: relative residual of the linear solve
    """
    status: HarmonicFieldStatus
    scalar_field: Optional[np.ndarray] = None
    solver_type: Optional[SolverType] = None
    solver_status: Optional[SolverStatus] = None
    n_constraints: int = 0
    elapsed: float = 0.0
    iterations: Optional[int] = None
    residual: Optional[float] = None

    @property
    def ok(self) -> bool:
        return self.status is HarmonicFieldStatus.SUCCESS


def backend_available() -> bool:
    """True when the scipy sparse backend can be imported."""
    return importlib.util.find_spec("scipy") is not None


def _as_mesh(mesh: Union[MeshData, 'trimesh.Trimesh']) -> MeshData:
    if isinstance(mesh, MeshData):
        return mesh
    if isinstance(mesh, trimesh.Trimesh):
        return MeshData.from_trimesh(mesh)
    raise InvalidInputError(
        f"expected MeshData or trimesh.Trimesh, got {type(mesh).__name__}", stage="mesh"
    )


def _prepare_output(output: Optional[np.ndarray], n_vertices: int) -> np.ndarray:
    if output is None:
        return np.zeros(n_vertices, dtype=np.float64)
    if not isinstance(output, np.ndarray):
        raise InvalidInputError(
            f"output must be a numpy array, got {type(output).__name__}", stage="output"
        )
    if output.ndim != 1 or output.shape[0] != n_vertices:
        raise InvalidInputError(
            f"output buffer has shape {output.shape}, expected ({n_vertices},)", stage="output"
        )
    if output.dtype not in _SUPPORTED_DTYPES:
        raise InvalidInputError(
            f"output dtype must be float32 or float64, got {output.dtype}", stage="output"
        )
    if not output.flags.writeable:
        raise InvalidInputError("output buffer is read-only", stage="output")
    return output


class HarmonicFieldSolver:
    """
    Harmonic field computation with a fixed configuration.

    The instance holds no per-mesh state; every call builds its operators from
    scratch and can be repeated or run on different meshes.
    """

    def __init__(self, config: Optional[HarmonicFieldConfig] = None):
        self.config = config if config is not None else HarmonicFieldConfig()

    def compute(
        self,
        mesh: Union[MeshData, 'trimesh.Trimesh'],
        constraint_indices,
        constraint_values,
        output: Optional[np.ndarray] = None,
    ) -> HarmonicFieldResult:
        """
        Solve for the harmonic field and write it into `output`.

        Args:
            mesh: triangle mesh (MeshData or trimesh.Trimesh)
            constraint_indices: (C,) vertex indices, duplicates allowed (last wins)
            constraint_values: (C,) values, same order as the indices
            output: (V,) float32/float64 buffer overwritten in place; its dtype
                sets the working precision. Allocated as float64 when None.

        Returns:
            HarmonicFieldResult

        Raises:
            InvalidInputError: bad mesh, constraints or output buffer
            LaplacianError: the operator could not be built (degenerate mesh)
            SolverFailedError: solver did not succeed and
                config.raise_on_solver_failure is set
        """
        config = self.config

        if not backend_available():
            _LOGGER.error(
                "scipy is not available: harmonic field computation skipped, "
                "output left untouched. Install with: pip install scipy"
            )
            return HarmonicFieldResult(status=HarmonicFieldStatus.BACKEND_UNAVAILABLE)

        # scipy-backed stages are imported only once the backend is known to exist
        from .constraints import encode_constraints
        from .laplacian import build_laplacian
        from .linear_solver import solve_penalized_system
        from .result_writer import write_result

        mesh = _as_mesh(mesh)
        n_vertices = mesh.n_vertices
        if n_vertices == 0:
            raise InvalidInputError("mesh has no vertices", stage="mesh")
        output = _prepare_output(output, n_vertices)
        dtype = output.dtype

        t0 = time.perf_counter()
        _LOGGER.debug(
            "Beginning computation: %d vertices, %d edges, %d raw constraints",
            n_vertices,
            mesh.n_edges,
            int(np.asarray(constraint_indices).size),
        )

        constraints = encode_constraints(
            constraint_indices,
            constraint_values,
            n_vertices,
            log_alpha=config.log_alpha,
            dtype=dtype,
        )
        if constraints.n_constraints == 0:
            _LOGGER.warning("No constraints given: the harmonic field is identically zero")

        laplacian = build_laplacian(mesh, use_cotan_weights=config.use_cotan_weights, dtype=dtype)

        solver_type = resolve_solving_method(
            config.solving_method,
            n_vertices,
            mesh.n_edges,
            threshold=config.nnz_threshold,
        )
        solved = solve_penalized_system(laplacian, constraints, solver_type)

        status = HarmonicFieldStatus.SUCCESS
        if solved.ok:
            _LOGGER.debug("Linear solve succeeded")
        else:
            message = (
                f"{solver_type.value} solver reported {solved.status.value} "
                f"({n_vertices} vertices, {constraints.n_constraints} constraints)"
            )
            if config.raise_on_solver_failure:
                _LOGGER.error("%s; output left untouched", message)
                raise SolverFailedError(message, status=solved.status, solver_type=solver_type)
            _LOGGER.warning("%s; writing unchecked result", message)
            status = HarmonicFieldStatus.SOLVER_FAILED

        write_result(solved.solution, output, thread_count=config.thread_count)

        elapsed = time.perf_counter() - t0
        _LOGGER.info(
            "Ending computation after %.3fs (%s, %s, %d thread(s), status=%s)",
            elapsed,
            config.weighting_label,
            "iterative solver" if solver_type is SolverType.ITERATIVE else "Cholesky",
            config.thread_count,
            solved.status.value,
        )

        return HarmonicFieldResult(
            status=status,
            scalar_field=output,
            solver_type=solver_type,
            solver_status=solved.status,
            n_constraints=constraints.n_constraints,
            elapsed=elapsed,
            iterations=solved.iterations,
            residual=solved.residual,
        )


def compute_harmonic_field(
    mesh: Union[MeshData, 'trimesh.Trimesh'],
    constraint_indices,
    constraint_values,
    output: Optional[np.ndarray] = None,
    config: Optional[HarmonicFieldConfig] = None,
) -> HarmonicFieldResult:
    """Convenience wrapper around `HarmonicFieldSolver(config).compute(...)`."""
    return HarmonicFieldSolver(config).compute(
        mesh,
        constraint_indices,
        constraint_values,
        output=output,
    )
