"""
Point constraint encoding for the penalty method.

Raw constraints come as two parallel arrays (vertex indices, values). They are
deduplicated by vertex index, with the last occurrence of an index winning, and
turned into:
    - a sparse V x 1 constraint vector holding each value at its vertex
    - a sparse diagonal V x V penalty matrix holding alpha = 10**log_alpha on
      every constrained vertex
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from pathlib import Path
from typing import Tuple, Union

import numpy as np
from scipy import sparse

from .errors import ConstraintError, InvalidInputError

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class EncodedConstraints:
    """
    Deduplicated constraints and their sparse operators

    Attributes:
        indices: (K,) sorted distinct constrained vertex indices
        values: (K,) constrained value for each entry of `indices`
        vector: (V, 1) sparse constraint vector
        penalty: (V, V) sparse diagonal penalty matrix
        alpha: penalty weight on constrained rows
        n_raw: number of raw (possibly duplicated) constraints
    """
    indices: np.ndarray
    values: np.ndarray
    vector: sparse.csc_matrix
    penalty: sparse.csr_matrix
    alpha: float
    n_raw: int

    @property
    def n_constraints(self) -> int:
        return int(self.indices.size)

    @property
    def n_duplicates(self) -> int:
        return int(self.n_raw - self.indices.size)


def compute_penalty_alpha(log_alpha: int, dtype=np.float64) -> float:
    """alpha = 10**log_alpha, checked to be finite and positive in `dtype`."""
    try:
        alpha = 10.0 ** int(log_alpha)
    except OverflowError:
        alpha = float("inf")
    with np.errstate(over="ignore"):
        cast = np.asarray(alpha, dtype=dtype)
    if not np.isfinite(cast) or cast <= 0:
        raise ConstraintError(
            f"penalty 10**{log_alpha} is not representable as {np.dtype(dtype).name}"
        )
    return float(cast)


def deduplicate_constraints(
    indices,
    values,
    n_vertices: int,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Validate raw constraints and collapse repeated vertex indices.

    The last occurrence of a repeated index wins.

    Returns:
        (unique_indices, unique_values), indices sorted ascending
    """
    if int(n_vertices) <= 0:
        raise InvalidInputError("mesh has no vertices", stage="constraints")

    idx = np.asarray(indices)
    vals = np.asarray(values)
    if idx.size == 0 and vals.size == 0:
        return np.zeros(0, dtype=np.int64), np.zeros(0, dtype=np.float64)

    if idx.ndim != 1 or vals.ndim != 1:
        raise ConstraintError(
            f"constraint indices and values must be 1-D (got {idx.shape} and {vals.shape})"
        )
    if idx.shape[0] != vals.shape[0]:
        raise ConstraintError(
            f"constraint arrays differ in length: {idx.shape[0]} indices, {vals.shape[0]} values"
        )
    if not np.issubdtype(idx.dtype, np.integer):
        raise ConstraintError(f"constraint indices must be integers, got {idx.dtype}")
    if not np.issubdtype(vals.dtype, np.number) or np.iscomplexobj(vals):
        raise ConstraintError(f"constraint values must be real numbers, got {vals.dtype}")

    idx = idx.astype(np.int64, copy=False)
    vals = vals.astype(np.float64, copy=False)

    out_of_range = (idx < 0) | (idx >= int(n_vertices))
    if np.any(out_of_range):
        bad = idx[out_of_range]
        raise ConstraintError(
            f"{bad.size} constraint index(es) outside [0, {int(n_vertices)}), "
            f"first offending index: {int(bad[0])}"
        )
    if not np.all(np.isfinite(vals)):
        raise ConstraintError("constraint values must be finite")

    # np.unique keeps the first occurrence, so run it on the reversed arrays
    rev_idx = idx[::-1]
    unique_idx, first_in_reversed = np.unique(rev_idx, return_index=True)
    unique_vals = vals[::-1][first_in_reversed]
    return unique_idx, unique_vals


def encode_constraints(
    indices,
    values,
    n_vertices: int,
    log_alpha: int = 5,
    dtype=np.float64,
) -> EncodedConstraints:
    """
    Build the constraint vector and penalty matrix for `n_vertices` vertices.

    Args:
        indices: (C,) constrained vertex indices in [0, n_vertices)
        values: (C,) constrained values, same order as `indices`
        n_vertices: vertex count V
        log_alpha: penalty exponent, alpha = 10**log_alpha
        dtype: floating point type of the operators

    Raises:
        ConstraintError: malformed or out-of-range constraints
    """
    n = int(n_vertices)
    unique_idx, unique_vals = deduplicate_constraints(indices, values, n)
    alpha = compute_penalty_alpha(log_alpha, dtype)

    n_raw = int(np.asarray(indices).size)
    if n_raw > unique_idx.size:
        _LOGGER.debug(
            "Collapsed %d duplicate constraint(s) (%d raw -> %d distinct)",
            n_raw - unique_idx.size,
            n_raw,
            unique_idx.size,
        )

    zeros = np.zeros(unique_idx.size, dtype=np.int64)
    vector = sparse.csc_matrix(
        (unique_vals.astype(dtype), (unique_idx, zeros)),
        shape=(n, 1),
        dtype=dtype,
    )
    penalty = sparse.coo_matrix(
        (np.full(unique_idx.size, alpha, dtype=dtype), (unique_idx, unique_idx)),
        shape=(n, n),
        dtype=dtype,
    ).tocsr()

    return EncodedConstraints(
        indices=unique_idx,
        values=unique_vals,
        vector=vector,
        penalty=penalty,
        alpha=alpha,
        n_raw=n_raw,
    )


def load_constraint_file(path: Union[str, Path]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Read constraints from disk.

    Accepted layouts:
        - JSON object {"indices": [...], "values": [...]}
        - JSON list of [index, value] pairs
        - text/CSV with two columns "index value" (comma or whitespace
          separated, '#' comments allowed)

    Returns:
        (indices int64, values float64)
    """
    in_path = Path(path)
    if not in_path.exists():
        raise FileNotFoundError(str(in_path))

    if in_path.suffix.lower() == ".json":
        try:
            doc = json.loads(in_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConstraintError(f"Invalid JSON in {in_path.name}: {e}") from e

        if isinstance(doc, dict):
            if "indices" not in doc or "values" not in doc:
                raise ConstraintError(f"{in_path.name}: expected 'indices' and 'values' keys")
            idx_list, val_list = doc["indices"], doc["values"]
        elif isinstance(doc, list):
            pairs = [tuple(p) for p in doc]
            if any(len(p) != 2 for p in pairs):
                raise ConstraintError(f"{in_path.name}: expected a list of [index, value] pairs")
            idx_list = [p[0] for p in pairs]
            val_list = [p[1] for p in pairs]
        else:
            raise ConstraintError(f"{in_path.name}: expected a JSON object or list")
    else:
        text = in_path.read_text(encoding="utf-8").replace(",", " ")
        idx_list, val_list = [], []
        for line_no, line in enumerate(text.splitlines(), start=1):
            line = line.split("#", 1)[0].strip()
            if not line:
                continue
            parts = line.split()
            if len(parts) != 2:
                raise ConstraintError(f"{in_path.name}:{line_no}: expected 'index value'")
            try:
                idx_list.append(int(parts[0]))
                val_list.append(float(parts[1]))
            except ValueError as e:
                raise ConstraintError(f"{in_path.name}:{line_no}: {e}") from e

    raw_indices = np.asarray(idx_list).reshape(-1)
    if raw_indices.size and not np.issubdtype(raw_indices.dtype, np.integer):
        raise ConstraintError(f"{in_path.name}: constraint indices must be integers")
    try:
        indices = raw_indices.astype(np.int64)
        values = np.asarray(val_list, dtype=np.float64).reshape(-1)
    except (TypeError, ValueError) as e:
        raise ConstraintError(f"{in_path.name}: {e}") from e
    return indices, values
