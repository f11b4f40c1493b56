"""
Solver selection: direct factorisation or conjugate gradients.

Direct sparse factorisation costs grow superlinearly (fill-in) with the number
of non-zeros; past a size threshold conjugate gradients with near-linear
per-iteration cost and bounded memory are preferred.
"""

from __future__ import annotations

from enum import Enum
import logging
from typing import Union

from .errors import InvalidInputError

_LOGGER = logging.getLogger(__name__)

# 2*E + V above this goes to the iterative solver
NNZ_THRESHOLD = 500000


class SolvingMethod(Enum):
    """Requested solving method (user-facing)."""
    AUTO = "auto"
    CHOLESKY = "cholesky"
    ITERATIVE = "iterative"

    @classmethod
    def parse(cls, value: Union["SolvingMethod", "SolverType", str]) -> "SolvingMethod":
        if isinstance(value, cls):
            return value
        if isinstance(value, SolverType):
            return cls(value.value)
        key = str(value or "").strip().lower()
        for member in cls:
            if member.value == key:
                return member
        raise InvalidInputError(
            f"unknown solving method {value!r}; expected one of "
            f"{[m.value for m in cls]}",
            stage="solve",
        )


class SolverType(Enum):
    """Solving method actually used."""
    CHOLESKY = "cholesky"
    ITERATIVE = "iterative"


class SolverStatus(Enum):
    """Outcome reported by the linear solve."""
    SUCCESS = "success"
    NUMERICAL_ISSUE = "numerical_issue"
    NO_CONVERGENCE = "no_convergence"
    INVALID_INPUT = "invalid_input"


def estimate_nonzeros(n_vertices: int, n_edges: int) -> int:
    """Non-zeros of the Laplacian: two per edge plus the diagonal."""
    return 2 * int(n_edges) + int(n_vertices)


def find_best_solver(
    n_vertices: int,
    n_edges: int,
    threshold: int = NNZ_THRESHOLD,
) -> SolverType:
    if estimate_nonzeros(n_vertices, n_edges) > int(threshold):
        return SolverType.ITERATIVE
    return SolverType.CHOLESKY


def resolve_solving_method(
    requested: Union[SolvingMethod, str],
    n_vertices: int,
    n_edges: int,
    threshold: int = NNZ_THRESHOLD,
) -> SolverType:
    """
    Explicit requests pass through unchanged; AUTO picks by problem size.
    """
    method = SolvingMethod.parse(requested)
    if method is SolvingMethod.CHOLESKY:
        return SolverType.CHOLESKY
    if method is SolvingMethod.ITERATIVE:
        return SolverType.ITERATIVE

    resolved = find_best_solver(n_vertices, n_edges, threshold)
    _LOGGER.debug(
        "Auto solver: nnz estimate %d (threshold %d) -> %s",
        estimate_nonzeros(n_vertices, n_edges),
        int(threshold),
        resolved.value,
    )
    return resolved
