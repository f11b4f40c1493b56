"""
Runtime defaults for the harmonic field solver.

Values can be overridden via environment variables so batch scripts and the
CLI share one place for tuning instead of hardcoding it per entrypoint.
"""

from __future__ import annotations

from dataclasses import dataclass
import os


ENV_LOG_ALPHA = "HARMONICFIELD_LOG_ALPHA"
ENV_THREADS = "HARMONICFIELD_THREADS"
ENV_SOLVER = "HARMONICFIELD_SOLVER"
ENV_USE_COTAN = "HARMONICFIELD_USE_COTAN"
ENV_NNZ_THRESHOLD = "HARMONICFIELD_NNZ_THRESHOLD"

SOLVER_CHOICES = ("auto", "cholesky", "iterative")

_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class RuntimeDefaults:
    log_alpha: int
    thread_count: int
    solving_method: str
    use_cotan_weights: bool
    nnz_threshold: int


def _read_int_env(
    env_name: str,
    default: int,
    *,
    min_value: int | None = None,
    max_value: int | None = None,
) -> int:
    raw = os.environ.get(env_name)
    if raw is None:
        return default
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default

    if min_value is not None and value < min_value:
        return default
    if max_value is not None and value > max_value:
        return default
    return value


def _read_bool_env(env_name: str, default: bool) -> bool:
    raw = os.environ.get(env_name)
    if raw is None:
        return default
    value = str(raw).strip().lower()
    if value in _TRUE_WORDS:
        return True
    if value in _FALSE_WORDS:
        return False
    return default


def _read_choice_env(env_name: str, default: str, choices: tuple[str, ...]) -> str:
    raw = os.environ.get(env_name)
    if raw is None:
        return default
    value = str(raw).strip().lower()
    return value if value in choices else default


def load_runtime_defaults() -> RuntimeDefaults:
    return RuntimeDefaults(
        log_alpha=_read_int_env(ENV_LOG_ALPHA, 5, min_value=0, max_value=30),
        thread_count=_read_int_env(ENV_THREADS, 1, min_value=1, max_value=256),
        solving_method=_read_choice_env(ENV_SOLVER, "auto", SOLVER_CHOICES),
        use_cotan_weights=_read_bool_env(ENV_USE_COTAN, True),
        nnz_threshold=_read_int_env(ENV_NNZ_THRESHOLD, 500000, min_value=1),
    )


DEFAULTS = load_runtime_defaults()
