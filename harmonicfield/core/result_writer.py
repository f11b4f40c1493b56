"""
Copy the sparse solution into the caller's dense per-vertex buffer.

output[i] = -solution[i] for every vertex (fixed sign convention of the
penalised system, see linear_solver).
"""

from __future__ import annotations

import concurrent.futures
from typing import Union

import numpy as np
from scipy import sparse

from .errors import InvalidInputError

# below this many vertices a single vectorised write wins over thread fan-out
PARALLEL_MIN_SIZE = 65536


def solution_to_dense(solution: Union[sparse.spmatrix, np.ndarray]) -> np.ndarray:
    if sparse.issparse(solution):
        return np.asarray(solution.toarray()).ravel()
    return np.asarray(solution).ravel()


def _write_slice(dense: np.ndarray, output: np.ndarray, start: int, stop: int) -> None:
    np.negative(dense[start:stop], out=output[start:stop], casting="same_kind")


def write_result(
    solution: Union[sparse.spmatrix, np.ndarray],
    output: np.ndarray,
    thread_count: int = 1,
) -> np.ndarray:
    """
    Write the negated solution into `output` in place and return it.

    With thread_count > 1 on large arrays the copy is split into disjoint
    contiguous slices, one per worker.
    """
    dense = solution_to_dense(solution)
    if output.ndim != 1 or output.shape[0] != dense.shape[0]:
        raise InvalidInputError(
            f"output buffer has shape {output.shape}, expected ({dense.shape[0]},)",
            stage="output",
        )

    n = dense.shape[0]
    workers = max(1, int(thread_count))
    if workers == 1 or n < PARALLEL_MIN_SIZE:
        _write_slice(dense, output, 0, n)
        return output

    bounds = np.linspace(0, n, workers + 1, dtype=np.int64)
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(_write_slice, dense, output, int(start), int(stop))
            for start, stop in zip(bounds[:-1], bounds[1:])
            if stop > start
        ]
        for future in concurrent.futures.as_completed(futures):
            future.result()
    return output
