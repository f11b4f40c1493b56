"""
HarmonicField - constrained harmonic scalar fields on triangle meshes

Main entry point
"""

import sys
import logging
from pathlib import Path

# Ensure repository root is on sys.path so "harmonicfield" is importable.
ROOT_DIR = Path(__file__).resolve().parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from harmonicfield.core.runtime_defaults import (
    DEFAULTS,
    ENV_LOG_ALPHA,
    ENV_NNZ_THRESHOLD,
    ENV_SOLVER,
    ENV_THREADS,
    ENV_USE_COTAN,
)
from harmonicfield.core.output_paths import field_output_path, save_scalar_field

_LOGGER = logging.getLogger(__name__)


def run_cli(argv=None) -> int:
    """Command-line interface; returns a process exit code"""
    args = list(sys.argv[1:] if argv is None else argv)

    from harmonicfield.core.logging_utils import setup_logging

    # warnings and errors on stderr, full record in the log file
    log_path = setup_logging(console=True)

    if not args or args[0] in ('--help', '-h'):
        print_help()
        return 0

    cmd = args[0]

    if cmd == '--info' and len(args) > 1:
        return show_file_info(args[1])

    if cmd == '--solve' and len(args) > 2:
        return solve_mesh(args[1], args[2], args[3] if len(args) > 3 else None, log_path=log_path)

    print(f"Error: Unknown command or missing arguments: {' '.join(args)}")
    print("Use --help for usage information")
    return 2


def print_help():
    """Print usage"""
    from harmonicfield.core.mesh_loader import MeshLoader

    print("=" * 60)
    print("HarmonicField - constrained harmonic scalar fields")
    print("=" * 60)
    print()
    print("Usage:")
    print("  python main.py --info <mesh_file>                         # Show file info")
    print("  python main.py --solve <mesh_file> <constraints> [output] # Solve and save field")
    print()
    print("Constraints file: JSON {\"indices\": [...], \"values\": [...]}")
    print("                  or text/CSV lines 'index value'")
    print("Output: .npy (default <mesh>.harmonic.npy) or .txt/.csv")
    print()
    print("Options (environment):")
    print(f"  {ENV_USE_COTAN}=0|1           cotangent weights (default {int(DEFAULTS.use_cotan_weights)})")
    print(f"  {ENV_SOLVER}=auto|cholesky|iterative (default {DEFAULTS.solving_method})")
    print(f"  {ENV_LOG_ALPHA}=<int>           penalty exponent (default {DEFAULTS.log_alpha})")
    print(f"  {ENV_THREADS}=<int>             output copy workers (default {DEFAULTS.thread_count})")
    print(f"  {ENV_NNZ_THRESHOLD}=<int>       auto solver switch (default {DEFAULTS.nnz_threshold})")
    print()
    print(f"Supported formats: {list(MeshLoader.SUPPORTED_FORMATS.keys())}")
    print()
    print("Examples:")
    print("  python main.py --info bunny.ply")
    print("  python main.py --solve bunny.ply landmarks.json bunny_field.npy")


def show_file_info(filepath: str) -> int:
    """Show mesh file info and the solver Auto mode would pick"""
    from harmonicfield.core.mesh_loader import MeshLoader
    from harmonicfield.core.solver_selector import estimate_nonzeros, find_best_solver

    print(f"\nFile Info: {filepath}")
    print("-" * 40)

    try:
        info = MeshLoader().get_file_info(filepath)
    except (OSError, ValueError) as e:
        print(f"  Error: {e}")
        return 1

    for key, value in info.items():
        print(f"  {key}: {value}")

    if 'n_vertices' in info:
        n_v = int(info['n_vertices'])
        n_e = int(info['n_edges'])
        solver = find_best_solver(n_v, n_e, DEFAULTS.nnz_threshold)
        print(f"  nnz_estimate: {estimate_nonzeros(n_v, n_e):,}")
        print(f"  auto_solver: {solver.value}")
    return 0


def solve_mesh(mesh_path: str, constraints_path: str, output_path: str | None = None,
               *, log_path=None) -> int:
    """Load mesh + constraints, solve, save the field"""
    from harmonicfield.core.constraints import load_constraint_file
    from harmonicfield.core.errors import HarmonicFieldError
    from harmonicfield.core.harmonic_field import HarmonicFieldConfig, compute_harmonic_field
    from harmonicfield.core.logging_utils import format_exception_message
    from harmonicfield.core.mesh_loader import MeshLoader

    print(f"\nSolving: {mesh_path}")
    print("-" * 40)

    try:
        mesh = MeshLoader().load(mesh_path)
        print(f"  Loaded: {mesh.n_vertices:,} vertices, {mesh.n_edges:,} edges, {mesh.n_faces:,} faces")

        indices, values = load_constraint_file(constraints_path)
        print(f"  Constraints: {indices.size:,} (raw)")

        config = HarmonicFieldConfig.from_defaults()
        result = compute_harmonic_field(mesh, indices, values, config=config)
    except (OSError, ValueError, TypeError, HarmonicFieldError) as e:
        _LOGGER.error("Solve failed for %s", mesh_path, exc_info=True)
        print(format_exception_message("Error", str(e), log_path=log_path))
        return 1

    if result.scalar_field is None:
        print(f"  Skipped: {result.status.value}")
        return 1

    solver = result.solver_type.value if result.solver_type is not None else "-"
    print(f"  Solver: {solver} ({result.solver_status.value}), {result.elapsed:.3f}s")
    print(f"  Range: [{result.scalar_field.min():.6g}, {result.scalar_field.max():.6g}]")

    save_path = save_scalar_field(field_output_path(mesh_path, output_path), result.scalar_field)
    print(f"  Saved: {save_path}")
    return 0 if result.ok else 1


if __name__ == '__main__':
    sys.exit(run_cli())
