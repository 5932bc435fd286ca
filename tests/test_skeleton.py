import unittest

import numpy as np

from lsystem_trees.geometry import GeometryAssembler
from lsystem_trees.skeleton import SkeletonBuilder
from lsystem_trees.turtle_3d import TurtleInterpreter


def build_skinned(lstring, position=None, **kwargs):
    events = TurtleInterpreter(position=position, **kwargs).interpret(lstring)
    return SkeletonBuilder(GeometryAssembler(), position).build(events)


class TestSkeletonBuilder(unittest.TestCase):

    def setUp(self):
        self.mesh, self.skeleton = build_skinned("f[+f]f", angle=90.0)

    def test_bone_hierarchy(self):
        self.assertEqual(len(self.skeleton), 4)
        np.testing.assert_array_equal(self.skeleton.parents, [-1, 0, 1, 1])
        self.assertEqual(self.skeleton[1].children, [2, 3])
        self.assertEqual(self.skeleton.descendants(1), [2, 3])
        self.assertEqual(self.skeleton.descendants(0), [1, 2, 3])
        self.assertEqual(self.skeleton[0].name, "root")

    def test_offsets_are_segment_directions(self):
        np.testing.assert_allclose(self.skeleton[1].offset, [0, 1, 0])
        np.testing.assert_allclose(self.skeleton[2].offset, [1, 0, 0], atol=1e-12)
        np.testing.assert_allclose(self.skeleton[3].offset, [0, 1, 0])
        np.testing.assert_allclose(self.skeleton[2].head, self.skeleton[1].tail)

    def test_every_vertex_is_rigidly_bound(self):
        weights = self.mesh.attribute("skin_weight")
        indices = self.mesh.attribute("skin_index")
        np.testing.assert_array_equal(weights, 1.0)
        self.assertTrue(np.all(indices >= 0))
        self.assertTrue(np.all(indices < len(self.skeleton)))
        # 34 vertices per segment, one bone per segment
        np.testing.assert_array_equal(indices, np.repeat([1, 2, 3], 34))

    def test_rest_pose_is_identity(self):
        posed = self.skeleton.skin(self.mesh)
        np.testing.assert_allclose(posed, self.mesh.positions, atol=1e-6)

    def test_rotating_a_leaf_bone_moves_only_its_vertices(self):
        rotations = np.zeros((len(self.skeleton), 3))
        rotations[2] = [0.0, 0.0, 0.5]
        posed = self.skeleton.skin(self.mesh, rotations)
        owner = self.mesh.attribute("skin_index")

        np.testing.assert_allclose(posed[owner != 2], self.mesh.positions[owner != 2], atol=1e-6)
        moved = np.linalg.norm(posed[owner == 2] - self.mesh.positions[owner == 2], axis=1)
        self.assertGreater(moved.max(), 0.1)

    def test_rotating_a_parent_moves_descendants(self):
        rotations = np.zeros((len(self.skeleton), 3))
        rotations[1] = [0.3, 0.0, 0.0]
        posed = self.skeleton.skin(self.mesh, rotations)
        owner = self.mesh.attribute("skin_index")
        for bone in (1, 2, 3):
            moved = np.linalg.norm(posed[owner == bone] - self.mesh.positions[owner == bone], axis=1)
            self.assertGreater(moved.max(), 0.1)

    def test_rotation_preserves_segment_length(self):
        rotations = np.zeros((len(self.skeleton), 3))
        rotations[1] = [0.2, 0.0, 0.4]
        world = self.skeleton.world_matrices(rotations)
        head_2, head_3 = world[2][:3, 3], world[3][:3, 3]
        np.testing.assert_allclose(np.linalg.norm(head_2 - world[1][:3, 3]), 1.0)
        np.testing.assert_allclose(head_2, head_3)

    def test_leaves_follow_their_segment(self):
        mesh, skeleton = build_skinned("fl")
        indices = mesh.attribute("skin_index")
        np.testing.assert_array_equal(indices[34:], 1)

    def test_leaf_without_segment_binds_to_root(self):
        mesh, skeleton = build_skinned("l")
        self.assertEqual(len(skeleton), 1)
        np.testing.assert_array_equal(mesh.attribute("skin_index"), 0)

    def test_root_sits_at_build_position(self):
        mesh, skeleton = build_skinned("ff", position=(3.0, 0.0, 1.0))
        np.testing.assert_allclose(skeleton[0].head, [3, 0, 1])
        np.testing.assert_allclose(skeleton[1].head, [3, 0, 1])
        np.testing.assert_allclose(skeleton[2].head, [3, 1, 1])
        np.testing.assert_allclose(skeleton.skin(mesh), mesh.positions, atol=1e-6)

    def test_empty_events(self):
        mesh, skeleton = build_skinned("")
        self.assertTrue(mesh.is_empty)
        self.assertEqual(len(skeleton), 1)
        self.assertEqual(skeleton.skin(mesh).shape, (0, 3))


if __name__ == "__main__":
    unittest.main()
