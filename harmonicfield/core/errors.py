"""
Error types raised by the harmonic field pipeline.

Every error carries the pipeline stage it came from so a failure report always
tells whether the mesh, the Laplacian, the constraints, the solve or the output
buffer was at fault.
"""

from __future__ import annotations

from typing import Any, Optional


class HarmonicFieldError(RuntimeError):
    """Base class for harmonic field failures."""

    def __init__(self, message: str, *, stage: str = "") -> None:
        self.stage = str(stage or "")
        self.detail = str(message)
        if self.stage:
            message = f"[{self.stage}] {message}"
        super().__init__(message)


class InvalidInputError(HarmonicFieldError, ValueError):
    """Caller bug: malformed mesh, config or output buffer."""


class ConstraintError(InvalidInputError):
    def __init__(self, message: str, *, stage: str = "constraints") -> None:
        super().__init__(message, stage=stage)


class LaplacianError(HarmonicFieldError):
    def __init__(self, message: str, *, stage: str = "laplacian") -> None:
        super().__init__(message, stage=stage)


class SolverFailedError(HarmonicFieldError):
    """
    Raised when the linear solve reports anything but success and the caller
    asked for failures to propagate.
    """

    def __init__(
        self,
        message: str,
        *,
        status: Any = None,
        solver_type: Optional[Any] = None,
        stage: str = "solve",
    ) -> None:
        super().__init__(message, stage=stage)
        self.status = status
        self.solver_type = solver_type


__all__ = [
    "HarmonicFieldError",
    "InvalidInputError",
    "ConstraintError",
    "LaplacianError",
    "SolverFailedError",
]
