import unittest

from app.services.world_service import Block, WorldStore, coordinate_key


class WorldStoreTests(unittest.TestCase):
    def test_place_on_occupied_coordinate_replaces_block(self) -> None:
        world = WorldStore()
        world.place(Block(x=1, y=0, z=1, color="#ef4444"))
        world.place(Block(x=1, y=0, z=1, color="#3b82f6", shape="sphere", size=0.5))

        self.assertEqual(len(world), 1)
        block = world.get(coordinate_key(1, 0, 1))
        self.assertIsNotNone(block)
        self.assertEqual(block.color, "#3b82f6")
        self.assertEqual(block.shape, "sphere")

    def test_remove_and_update_on_empty_coordinate_do_nothing(self) -> None:
        world = WorldStore()
        world.place(Block(x=0, y=0, z=0, color="#ffffff"))

        self.assertIsNone(world.remove(coordinate_key(5, 5, 5)))
        self.assertIsNone(world.update(Block(x=5, y=5, z=5, color="#ef4444")))
        self.assertEqual(len(world), 1)
        self.assertNotIn(coordinate_key(5, 5, 5), world)

    def test_half_step_coordinates_are_distinct_keys(self) -> None:
        world = WorldStore()
        world.place(Block(x=0.5, y=0, z=0, color="#ffffff", size=0.5))
        world.place(Block(x=1, y=0, z=0, color="#ffffff"))
        self.assertEqual(len(world), 2)

    def test_remove_within_skips_floor_layer(self) -> None:
        world = WorldStore()
        world.place(Block(x=1, y=0, z=1, color="#ef4444"))
        world.place(Block(x=0, y=3, z=0, color="#ef4444"))
        world.place(Block(x=0, y=-1, z=0, color="#4ade80"))
        world.place(Block(x=2, y=2, z=2, color="#ef4444"))

        removed = world.remove_within((0.0, 0.0, 0.0), 3.0, exclude_y=-1.0)

        self.assertEqual({block.coordinate for block in removed}, {(1.0, 0.0, 1.0), (0.0, 3.0, 0.0)})
        self.assertIn(coordinate_key(0, -1, 0), world)
        self.assertIn(coordinate_key(2, 2, 2), world)
        self.assertEqual(len(world), 2)

    def test_snapshot_lists_block_records(self) -> None:
        world = WorldStore()
        world.place(Block(x=1, y=0, z=1, color="#ef4444"))
        self.assertEqual(
            world.snapshot(),
            [{"x": 1, "y": 0, "z": 1, "color": "#ef4444", "shape": "cube", "size": 1.0}],
        )


if __name__ == "__main__":
    unittest.main()
