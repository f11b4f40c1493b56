"""
Mesh Loader Module

Triangle mesh container used as the read-only mesh handle of the solver, plus a
trimesh-backed file loader.

Supports: OBJ, PLY, STL, OFF, GLTF/GLB formats
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union
import numpy as np

try:
    import trimesh
except ImportError:
    raise ImportError("trimesh is required. Install with: pip install trimesh")

from .errors import InvalidInputError


@dataclass
class MeshData:
    """
    Triangle mesh data container

    Attributes:
        vertices: (N, 3) vertex coordinates ((N, 2) input is padded with z=0)
        faces: (M, 3) triangle vertex indices
        filepath: source file, when loaded from disk
    """
    vertices: np.ndarray
    faces: np.ndarray
    filepath: Optional[Path] = None

    # Computed topology cache
    _edges: Optional[np.ndarray] = field(default=None, repr=False)
    _degrees: Optional[np.ndarray] = field(default=None, repr=False)

    def __post_init__(self):
        vertices = np.asarray(self.vertices, dtype=np.float64)
        if vertices.size == 0:
            vertices = vertices.reshape(0, 3)
        if vertices.ndim != 2 or vertices.shape[1] not in (2, 3):
            raise InvalidInputError(
                f"vertices must have shape (N, 2) or (N, 3), got {vertices.shape}",
                stage="mesh",
            )
        if vertices.shape[1] == 2:
            vertices = np.column_stack([vertices, np.zeros(len(vertices), dtype=np.float64)])
        self.vertices = vertices

        faces = np.asarray(self.faces)
        if faces.size == 0:
            faces = faces.reshape(0, 3)
        if faces.ndim != 2 or faces.shape[1] != 3:
            raise InvalidInputError(
                f"faces must have shape (M, 3), got {faces.shape}", stage="mesh"
            )
        if faces.size and not np.issubdtype(faces.dtype, np.integer):
            raise InvalidInputError("faces must hold integer vertex indices", stage="mesh")
        faces = faces.astype(np.int32, copy=False)
        if faces.size and (faces.min() < 0 or faces.max() >= len(vertices)):
            raise InvalidInputError(
                f"face indices must lie in [0, {len(vertices)})", stage="mesh"
            )
        self.faces = faces

    @property
    def n_vertices(self) -> int:
        return len(self.vertices)

    @property
    def n_faces(self) -> int:
        return len(self.faces)

    @property
    def edges(self) -> np.ndarray:
        """Unique undirected edges (E, 2), each row sorted so that i < j."""
        if self._edges is None:
            if self.n_faces == 0:
                self._edges = np.zeros((0, 2), dtype=np.int64)
            else:
                f = self.faces.astype(np.int64)
                half = np.concatenate([f[:, [0, 1]], f[:, [1, 2]], f[:, [2, 0]]], axis=0)
                half.sort(axis=1)
                self._edges = np.unique(half, axis=0)
        return self._edges

    @property
    def n_edges(self) -> int:
        return len(self.edges)

    @property
    def vertex_degrees(self) -> np.ndarray:
        """Number of edge neighbours per vertex"""
        if self._degrees is None:
            degrees = np.zeros(self.n_vertices, dtype=np.int64)
            e = self.edges
            if len(e):
                np.add.at(degrees, e[:, 0], 1)
                np.add.at(degrees, e[:, 1], 1)
            self._degrees = degrees
        return self._degrees

    def to_trimesh(self) -> 'trimesh.Trimesh':
        """Convert to a trimesh object (no processing, vertex order kept)"""
        return trimesh.Trimesh(vertices=self.vertices, faces=self.faces, process=False)

    @classmethod
    def from_trimesh(cls, mesh: 'trimesh.Trimesh',
                     filepath: Optional[Path] = None) -> 'MeshData':
        return cls(
            vertices=np.asarray(mesh.vertices, dtype=np.float64),
            faces=np.asarray(mesh.faces, dtype=np.int64),
            filepath=filepath,
        )


class MeshLoader:
    """
    Mesh file loader for common 3D formats

    Supported formats:
        - OBJ (Wavefront)
        - PLY (Polygon File Format)
        - STL (Stereolithography)
        - OFF (Object File Format)
        - GLTF/GLB (GL Transmission Format)
    """

    SUPPORTED_FORMATS = {
        '.obj': 'Wavefront OBJ',
        '.ply': 'Polygon File Format',
        '.stl': 'Stereolithography',
        '.off': 'Object File Format',
        '.gltf': 'GL Transmission Format',
        '.glb': 'GL Transmission Format (Binary)',
    }

    def _load_trimesh(self, filepath: Path) -> 'trimesh.Trimesh':
        # Vertex order must survive loading: constraint indices refer to it.
        mesh = trimesh.load(str(filepath), force='mesh', process=False, maintain_order=True)

        if isinstance(mesh, trimesh.Scene):
            meshes = [g for g in mesh.geometry.values() if isinstance(g, trimesh.Trimesh)]
            if len(meshes) == 0:
                raise ValueError(f"No valid mesh found in: {filepath}")
            mesh = trimesh.util.concatenate(meshes)

        if not isinstance(mesh, trimesh.Trimesh):
            raise TypeError(f"Expected trimesh.Trimesh, got {type(mesh).__name__}")
        return mesh

    def load(self, filepath: Union[str, Path]) -> MeshData:
        """
        Load a mesh file

        Args:
            filepath: mesh file path

        Returns:
            MeshData: loaded mesh

        Raises:
            FileNotFoundError: the file does not exist
            ValueError: unsupported format
        """
        filepath = Path(filepath)

        if not filepath.exists():
            raise FileNotFoundError(f"File not found: {filepath}")

        ext = filepath.suffix.lower()
        if ext not in self.SUPPORTED_FORMATS:
            raise ValueError(
                f"Unsupported format: {ext}\n"
                f"Supported formats: {list(self.SUPPORTED_FORMATS.keys())}"
            )

        return MeshData.from_trimesh(self._load_trimesh(filepath), filepath=filepath)

    def get_file_info(self, filepath: Union[str, Path]) -> dict:
        """
        File summary: name, format, size, and (when readable) vertex/edge/face counts.
        """
        filepath = Path(filepath)

        if not filepath.exists():
            raise FileNotFoundError(f"File not found: {filepath}")

        ext = filepath.suffix.lower()
        file_size = filepath.stat().st_size

        info = {
            'filename': filepath.name,
            'format': self.SUPPORTED_FORMATS.get(ext, 'Unknown'),
            'extension': ext,
            'file_size_mb': round(file_size / (1024 * 1024), 2),
        }

        try:
            mesh = MeshData.from_trimesh(self._load_trimesh(filepath), filepath=filepath)
        except (ValueError, TypeError, OSError) as e:
            info['error'] = str(e)
            return info

        info['n_vertices'] = mesh.n_vertices
        info['n_edges'] = mesh.n_edges
        info['n_faces'] = mesh.n_faces
        return info
