from dataclasses import asdict, dataclass
import math

Coordinate = tuple[float, float, float]

BLOCK_SHAPES = ("cube", "sphere", "cylinder")
BLOCK_SIZES = (0.5, 1.0)


def coordinate_key(x: float, y: float, z: float) -> Coordinate:
    return (float(x), float(y), float(z))


@dataclass
class Block:
    x: float
    y: float
    z: float
    color: str
    shape: str = "cube"
    size: float = 1.0

    @property
    def coordinate(self) -> Coordinate:
        return coordinate_key(self.x, self.y, self.z)

    def position_payload(self) -> dict:
        return {"x": self.x, "y": self.y, "z": self.z}


class WorldStore:
    """Voxel blocks of a single room, keyed by coordinate.

    Placing onto an occupied coordinate replaces the block; removing or
    updating an empty coordinate does nothing and returns ``None``.
    """

    def __init__(self) -> None:
        self._blocks: dict[Coordinate, Block] = {}

    def __len__(self) -> int:
        return len(self._blocks)

    def __contains__(self, coordinate: Coordinate) -> bool:
        return coordinate in self._blocks

    def get(self, coordinate: Coordinate) -> Block | None:
        return self._blocks.get(coordinate)

    def place(self, block: Block) -> Block:
        self._blocks[block.coordinate] = block
        return block

    def update(self, block: Block) -> Block | None:
        if block.coordinate not in self._blocks:
            return None
        self._blocks[block.coordinate] = block
        return block

    def remove(self, coordinate: Coordinate) -> Block | None:
        return self._blocks.pop(coordinate, None)

    def blocks_within(self, origin: Coordinate, radius: float, exclude_y: float | None = None) -> list[Block]:
        ox, oy, oz = origin
        matches: list[Block] = []
        for block in self._blocks.values():
            if exclude_y is not None and block.y == exclude_y:
                continue
            distance = math.sqrt((block.x - ox) ** 2 + (block.y - oy) ** 2 + (block.z - oz) ** 2)
            if distance <= radius:
                matches.append(block)
        return matches

    def remove_within(self, origin: Coordinate, radius: float, exclude_y: float | None = None) -> list[Block]:
        removed = self.blocks_within(origin, radius, exclude_y=exclude_y)
        for block in removed:
            self._blocks.pop(block.coordinate, None)
        return removed

    def snapshot(self) -> list[dict]:
        return [asdict(block) for block in self._blocks.values()]
