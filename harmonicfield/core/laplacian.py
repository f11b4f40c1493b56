"""
Graph Laplacian construction.

Sign convention: off-diagonal entry (i, j) holds the coupling weight w_ij of
edge ij and the diagonal holds -sum_j w_ij, so every row sums to zero and the
operator is negative semi-definite for non-negative weights.

Two weightings are available:
    - uniform: w_ij = 1 for every edge
    - cotangent: w_ij = (cot alpha_ij + cot beta_ij) / 2, alpha/beta being the
      angles opposite edge ij in its incident triangles (discrete
      Laplace-Beltrami)

Weights are used as computed. Obtuse or sliver triangles give negative or very
large weights; this module does not clamp them.
"""

from __future__ import annotations

import logging
from typing import Tuple

import numpy as np
from scipy import sparse

from .errors import LaplacianError
from .logging_utils import log_once
from .mesh_loader import MeshData

_LOGGER = logging.getLogger(__name__)


def _assemble(
    n: int,
    i: np.ndarray,
    j: np.ndarray,
    w: np.ndarray,
    dtype,
) -> sparse.csr_matrix:
    """Symmetric off-diagonal pattern from (i, j, w) plus the zero-row-sum diagonal."""
    rows = np.concatenate([i, j])
    cols = np.concatenate([j, i])
    vals = np.concatenate([w, w]).astype(dtype, copy=False)

    # duplicate (row, col) pairs are summed by the COO -> CSR conversion
    off = sparse.coo_matrix((vals, (rows, cols)), shape=(n, n), dtype=dtype).tocsr()
    diag = -np.asarray(off.sum(axis=1), dtype=dtype).ravel()
    lap = off + sparse.diags(diag, 0, shape=(n, n), format="csr", dtype=dtype)
    return sparse.csr_matrix(lap, dtype=dtype)


def build_uniform_laplacian(mesh: MeshData, dtype=np.float64) -> sparse.csr_matrix:
    """Laplacian with unit edge weights; the diagonal is minus the vertex degree."""
    n = mesh.n_vertices
    edges = mesh.edges
    if len(edges) == 0:
        return sparse.csr_matrix((n, n), dtype=dtype)
    w = np.ones(len(edges), dtype=dtype)
    return _assemble(n, edges[:, 0], edges[:, 1], w, dtype)


def _corner_cotangents(mesh: MeshData) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    For every face corner, the cotangent of the corner angle and the edge
    opposite to it.

    Returns:
        (i, j, cot) flat arrays of length 3*M
    """
    v = mesh.vertices
    f = mesh.faces.astype(np.int64)

    i_parts, j_parts, cot_parts = [], [], []
    for k in range(3):
        vk = f[:, k]
        vi = f[:, (k + 1) % 3]
        vj = f[:, (k + 2) % 3]

        e1 = v[vi] - v[vk]
        e2 = v[vj] - v[vk]
        dot = np.einsum("ij,ij->i", e1, e2)
        cross = np.linalg.norm(np.cross(e1, e2), axis=1)
        with np.errstate(divide="ignore", invalid="ignore"):
            cot = dot / cross

        i_parts.append(vi)
        j_parts.append(vj)
        cot_parts.append(cot)

    return np.concatenate(i_parts), np.concatenate(j_parts), np.concatenate(cot_parts)


def cotangent_weights(mesh: MeshData) -> Tuple[np.ndarray, np.ndarray]:
    """
    Per-edge cotangent weights.

    Returns:
        edges: (E, 2) sorted vertex pairs (same order as `mesh.edges`)
        weights: (E,) w_ij = (cot alpha + cot beta) / 2

    Raises:
        LaplacianError: the mesh has no faces, or some triangle is degenerate
            (zero area) so its cotangents are undefined.
    """
    if mesh.n_faces == 0:
        raise LaplacianError("cotangent weights need triangles; mesh has no faces")

    i, j, cot = _corner_cotangents(mesh)
    bad = ~np.isfinite(cot)
    if np.any(bad):
        n_bad_faces = len(np.unique(np.nonzero(bad)[0] % mesh.n_faces))
        raise LaplacianError(
            f"{n_bad_faces} degenerate triangle(s) give undefined cotangent weights"
        )

    lo = np.minimum(i, j)
    hi = np.maximum(i, j)
    edges, inverse = np.unique(np.column_stack([lo, hi]), axis=0, return_inverse=True)
    weights = np.zeros(len(edges), dtype=np.float64)
    np.add.at(weights, np.asarray(inverse).reshape(-1), 0.5 * cot)

    n_negative = int(np.count_nonzero(weights < 0.0))
    if n_negative:
        log_once(
            _LOGGER,
            f"laplacian:negative_cotan:{mesh.n_vertices}:{mesh.n_faces}:{n_negative}",
            logging.WARNING,
            "%d of %d edges have negative cotangent weights (obtuse triangles)",
            n_negative,
            len(edges),
        )
    return edges, weights


def build_cotan_laplacian(mesh: MeshData, dtype=np.float64) -> sparse.csr_matrix:
    """Laplacian with cotangent edge weights; the diagonal is minus the weight sum."""
    edges, weights = cotangent_weights(mesh)
    return _assemble(mesh.n_vertices, edges[:, 0], edges[:, 1], weights, dtype)


def build_laplacian(
    mesh: MeshData,
    use_cotan_weights: bool = True,
    dtype=np.float64,
) -> sparse.csr_matrix:
    """
    Build the V x V graph Laplacian of `mesh`.

    Args:
        mesh: triangle mesh
        use_cotan_weights: cotangent weights when True, unit weights otherwise
        dtype: floating point type of the matrix entries
    """
    if use_cotan_weights:
        lap = build_cotan_laplacian(mesh, dtype=dtype)
    else:
        lap = build_uniform_laplacian(mesh, dtype=dtype)
    _LOGGER.debug(
        "Laplacian built (%s weights): %dx%d, nnz=%d",
        "cotan" if use_cotan_weights else "uniform",
        lap.shape[0],
        lap.shape[1],
        lap.nnz,
    )
    return lap
