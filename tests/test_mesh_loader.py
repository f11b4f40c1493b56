import tempfile
import unittest
from pathlib import Path

import numpy as np
import trimesh

from harmonicfield.core.errors import InvalidInputError
from harmonicfield.core.mesh_loader import MeshData, MeshLoader


def _make_square() -> MeshData:
    vertices = np.array(
        [
            [0.0, 0.0, 0.0],
            [1.0, 0.0, 0.0],
            [1.0, 1.0, 0.0],
            [0.0, 1.0, 0.0],
        ],
        dtype=np.float64,
    )
    faces = np.array([[0, 1, 2], [0, 2, 3]], dtype=np.int32)
    return MeshData(vertices=vertices, faces=faces)


class TestMeshData(unittest.TestCase):
    def test_edges_are_unique_and_sorted(self):
        mesh = _make_square()
        edges = mesh.edges
        self.assertEqual(mesh.n_edges, 5)
        self.assertEqual(edges.shape, (5, 2))
        self.assertTrue(np.all(edges[:, 0] < edges[:, 1]))
        self.assertEqual({tuple(e) for e in edges.tolist()},
                         {(0, 1), (1, 2), (0, 2), (2, 3), (0, 3)})

    def test_vertex_degrees(self):
        mesh = _make_square()
        np.testing.assert_array_equal(mesh.vertex_degrees, [3, 2, 3, 2])

    def test_planar_vertices_are_padded(self):
        mesh = MeshData(vertices=[[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]], faces=[[0, 1, 2]])
        self.assertEqual(mesh.vertices.shape, (3, 3))
        np.testing.assert_array_equal(mesh.vertices[:, 2], 0.0)

    def test_face_index_out_of_range_raises(self):
        with self.assertRaises(InvalidInputError) as ctx:
            MeshData(vertices=np.zeros((3, 3)), faces=[[0, 1, 3]])
        self.assertEqual(ctx.exception.stage, "mesh")

    def test_non_triangle_faces_raise(self):
        with self.assertRaises(InvalidInputError):
            MeshData(vertices=np.zeros((4, 3)), faces=[[0, 1, 2, 3]])

    def test_empty_mesh_has_no_edges(self):
        mesh = MeshData(vertices=np.zeros((0, 3)), faces=np.zeros((0, 3), dtype=np.int32))
        self.assertEqual(mesh.n_vertices, 0)
        self.assertEqual(mesh.n_edges, 0)

    def test_trimesh_roundtrip_keeps_vertex_order(self):
        box = trimesh.creation.box(extents=(2.0, 2.0, 2.0))
        mesh = MeshData.from_trimesh(box)
        np.testing.assert_allclose(mesh.vertices, box.vertices)
        back = mesh.to_trimesh()
        np.testing.assert_allclose(back.vertices, box.vertices)
        np.testing.assert_array_equal(back.faces, box.faces)


class TestMeshLoader(unittest.TestCase):
    def test_load_ply_and_file_info(self):
        box = trimesh.creation.box(extents=(1.0, 1.0, 1.0))
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "box.ply"
            box.export(str(path))

            mesh = MeshLoader().load(path)
            self.assertEqual(mesh.n_vertices, len(box.vertices))
            self.assertEqual(mesh.n_faces, len(box.faces))
            self.assertEqual(mesh.filepath, path)

            info = MeshLoader().get_file_info(path)
            self.assertEqual(info["n_vertices"], len(box.vertices))
            self.assertEqual(info["n_edges"], 18)
            self.assertEqual(info["extension"], ".ply")

    def test_missing_file_raises(self):
        with self.assertRaises(FileNotFoundError):
            MeshLoader().load("/nonexistent/mesh.obj")

    def test_unsupported_extension_raises(self):
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "mesh.xyz"
            path.write_text("0 0 0\n", encoding="utf-8")
            with self.assertRaises(ValueError):
                MeshLoader().load(path)


if __name__ == "__main__":
    unittest.main()
