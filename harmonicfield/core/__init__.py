"""
Core processing modules for HarmonicField

The scipy-backed stages (laplacian, constraints, linear_solver, result_writer)
are imported from their own modules; this package namespace only pulls in what
is needed to configure and run a solve.
"""

from .mesh_loader import MeshLoader, MeshData
from .errors import (
    HarmonicFieldError,
    InvalidInputError,
    ConstraintError,
    LaplacianError,
    SolverFailedError,
)
from .solver_selector import SolvingMethod, SolverType, SolverStatus
from .harmonic_field import (
    HarmonicFieldConfig,
    HarmonicFieldResult,
    HarmonicFieldSolver,
    HarmonicFieldStatus,
    backend_available,
    compute_harmonic_field,
)

__all__ = [
    # Mesh loading
    'MeshLoader',
    'MeshData',
    # Errors
    'HarmonicFieldError',
    'InvalidInputError',
    'ConstraintError',
    'LaplacianError',
    'SolverFailedError',
    # Solver modes
    'SolvingMethod',
    'SolverType',
    'SolverStatus',
    # Harmonic field
    'HarmonicFieldConfig',
    'HarmonicFieldResult',
    'HarmonicFieldSolver',
    'HarmonicFieldStatus',
    'backend_available',
    'compute_harmonic_field',
]
