"""
Output path helpers for the CLI.

Centralizes naming conventions so every entrypoint writes fields the same way.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

import numpy as np

PathLike = Union[str, Path]

FIELD_SUFFIX = ".harmonic.npy"
TEXT_SUFFIXES = (".txt", ".csv")


def _as_path(value: PathLike) -> Path:
    return value if isinstance(value, Path) else Path(value)


def _resolve_output_path(input_path: PathLike, output_path: Optional[PathLike], suffix: str) -> Path:
    if output_path:
        return _as_path(output_path)
    return _as_path(input_path).with_suffix(suffix)


def field_output_path(input_path: PathLike, output_path: Optional[PathLike] = None) -> Path:
    return _resolve_output_path(input_path, output_path, FIELD_SUFFIX)


def save_scalar_field(path: PathLike, field: np.ndarray) -> Path:
    """Save one value per vertex: .npy binary, or one value per line for .txt/.csv."""
    out_path = _as_path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    values = np.asarray(field).reshape(-1)
    if out_path.suffix.lower() in TEXT_SUFFIXES:
        np.savetxt(str(out_path), values, fmt="%.17g")
    else:
        if out_path.suffix.lower() != ".npy":
            out_path = out_path.with_name(out_path.name + ".npy")
        np.save(str(out_path), values)
    return out_path
