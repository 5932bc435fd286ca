import unittest

import numpy as np

from lsystem_trees.errors import AttributeSchemaMismatch
from lsystem_trees.geometry import (
    STATIC_SCHEMA,
    GeometryAssembler,
    cylinder_chunk,
    merge_chunks,
    sphere_chunk,
)
from lsystem_trees.turtle_3d import TurtleInterpreter


def build_mesh(lstring, **kwargs):
    events = TurtleInterpreter(**kwargs).interpret(lstring)
    return GeometryAssembler().assemble(events)


class TestPrimitives(unittest.TestCase):

    def test_cylinder_layout(self):
        chunk = cylinder_chunk(np.zeros(3), np.eye(3), 1.0, 0.5, 2.0, radial_segments=8)
        self.assertEqual(chunk.n_vertices, 4 * 8 + 2)
        self.assertEqual(len(chunk.indices), 4 * 8)
        self.assertLess(chunk.indices.max(), chunk.n_vertices)

        bottom, top = chunk.positions[:8], chunk.positions[8:16]
        np.testing.assert_allclose(np.linalg.norm(bottom[:, [0, 2]], axis=1), 1.0, rtol=1e-6)
        np.testing.assert_allclose(np.linalg.norm(top[:, [0, 2]], axis=1), 0.5, rtol=1e-6)
        np.testing.assert_allclose(bottom[:, 1], 0.0)
        np.testing.assert_allclose(top[:, 1], 2.0)

    def test_cylinder_follows_orientation(self):
        # 90 degrees about local Z turns +Y into +X
        orientation = np.array([[0.0, 1.0, 0.0], [-1.0, 0.0, 0.0], [0.0, 0.0, 1.0]])
        base = np.array([1.0, 2.0, 3.0])
        chunk = cylinder_chunk(base, orientation, 0.2, 0.2, 1.0, radial_segments=6)
        top_center = chunk.positions[-1]
        np.testing.assert_allclose(top_center, [2.0, 2.0, 3.0], atol=1e-6)

    def test_unit_normals(self):
        chunk = cylinder_chunk(np.zeros(3), np.eye(3), 1.0, 0.3, 1.0)
        np.testing.assert_allclose(np.linalg.norm(chunk.normals, axis=1), 1.0, rtol=1e-5)

    def test_sphere(self):
        center = np.array([0.0, 5.0, 0.0])
        chunk = sphere_chunk(center, 0.3, segments=8, rings=8)
        self.assertEqual(chunk.n_vertices, 9 * 9)
        self.assertEqual(len(chunk.indices), 8 * 8 * 2 - 16)
        distances = np.linalg.norm(chunk.positions - center, axis=1)
        np.testing.assert_allclose(distances, 0.3, rtol=1e-5)


class TestMerge(unittest.TestCase):

    def _chunk(self, y=0.0):
        chunk = cylinder_chunk(np.array([0.0, y, 0.0]), np.eye(3), 1.0, 1.0, 1.0, radial_segments=4)
        chunk.set_attribute("branch_radius", 1.0)
        chunk.set_attribute("vertex_height", y)
        return chunk

    def test_indices_are_offset(self):
        a, b = self._chunk(), self._chunk(1.0)
        mesh = merge_chunks([a, b], STATIC_SCHEMA)
        self.assertEqual(mesh.n_vertices, a.n_vertices + b.n_vertices)
        np.testing.assert_array_equal(mesh.indices[len(a.indices):], b.indices + a.n_vertices)
        for values in mesh.attributes.values():
            self.assertEqual(len(values), mesh.n_vertices)

    def test_missing_attribute_is_rejected(self):
        a, b = self._chunk(), self._chunk(1.0)
        del b.attributes["vertex_height"]
        with self.assertRaises(AttributeSchemaMismatch):
            merge_chunks([a, b], STATIC_SCHEMA)

    def test_extra_attribute_is_rejected(self):
        a, b = self._chunk(), self._chunk(1.0)
        b.set_attribute("skin_weight", 1.0)
        with self.assertRaises(AttributeSchemaMismatch):
            merge_chunks([a, b])

    def test_short_attribute_is_rejected(self):
        a = self._chunk()
        a.attributes["branch_radius"] = a.attributes["branch_radius"][:-1]
        with self.assertRaises(AttributeSchemaMismatch):
            merge_chunks([a], STATIC_SCHEMA)

    def test_wrong_dtype_is_rejected(self):
        a = self._chunk()
        a.attributes["branch_radius"] = a.attributes["branch_radius"].astype(np.float64)
        with self.assertRaises(AttributeSchemaMismatch):
            merge_chunks([a], STATIC_SCHEMA)

    def test_empty_merge(self):
        mesh = merge_chunks([], STATIC_SCHEMA)
        self.assertTrue(mesh.is_empty)
        self.assertEqual(mesh.n_triangles, 0)
        self.assertEqual(set(mesh.attributes), set(STATIC_SCHEMA))


class TestGeometryAssembler(unittest.TestCase):

    def test_single_segment(self):
        mesh = build_mesh("f")
        self.assertEqual(mesh.n_vertices, 34)
        np.testing.assert_array_equal(mesh.attribute("branch_radius"), 1.0)
        np.testing.assert_array_equal(mesh.attribute("vertex_height"), mesh.positions[:, 1])

    def test_segment_attributes_use_base_radius(self):
        mesh = build_mesh("ff", start_radius=1.0, radius_reduction=0.5)
        radii = mesh.attribute("branch_radius")
        np.testing.assert_allclose(radii[:34], 1.0)
        np.testing.assert_allclose(radii[34:], 0.5)

    def test_leaves_share_schema(self):
        mesh = build_mesh("fl[+fl]")
        self.assertEqual(mesh.n_vertices, 2 * 34 + 2 * 81)
        for values in mesh.attributes.values():
            self.assertEqual(len(values), mesh.n_vertices)

    def test_empty_string_gives_empty_mesh(self):
        mesh = build_mesh("")
        self.assertTrue(mesh.is_empty)
        mesh = build_mesh("+-[]AB")
        self.assertTrue(mesh.is_empty)

    def test_buffers_are_read_only(self):
        mesh = build_mesh("f")
        with self.assertRaises(ValueError):
            mesh.positions[0, 0] = 10.0
        with self.assertRaises(ValueError):
            mesh.attributes["branch_radius"][0] = 2.0

    def test_bounds(self):
        mesh = build_mesh("ff", branch_length=2.0)
        lo, hi = mesh.bounds()
        self.assertAlmostEqual(float(lo[1]), 0.0, places=5)
        self.assertAlmostEqual(float(hi[1]), 4.0, places=5)


if __name__ == "__main__":
    unittest.main()
