from __future__ import annotations

from dataclasses import dataclass

from worldgen.errors import ContractViolationError, MalformedDescriptorError

CHUNK_WIDTH = 16


@dataclass(frozen=True)
class GenerationShapeConfig:
    """Vertical range and cell sizes (in quarter blocks) of a noise grid."""

    min_y: int
    height: int
    size_horizontal: int
    size_vertical: int

    def __post_init__(self):
        h = self.horizontal_cell_block_count
        v = self.vertical_cell_block_count
        if h <= 0 or v <= 0:
            raise MalformedDescriptorError("cell sizes must be positive")
        if CHUNK_WIDTH % h:
            raise MalformedDescriptorError(f"horizontal cell of {h} blocks does not divide 16")
        if self.height <= 0 or self.height % v or self.min_y % v:
            raise MalformedDescriptorError(
                f"vertical range {self.min_y}+{self.height} is not a whole number of {v}-block cells"
            )

    @classmethod
    def from_json(cls, payload: dict) -> "GenerationShapeConfig":
        try:
            return cls(
                min_y=int(payload["min_y"]),
                height=int(payload["height"]),
                size_horizontal=int(payload["size_horizontal"]),
                size_vertical=int(payload["size_vertical"]),
            )
        except (KeyError, TypeError) as exc:
            raise MalformedDescriptorError(f"bad noise shape: {payload!r}") from exc

    @property
    def horizontal_cell_block_count(self) -> int:
        return self.size_horizontal << 2

    @property
    def vertical_cell_block_count(self) -> int:
        return self.size_vertical << 2

    @property
    def max_y(self) -> int:
        return self.min_y + self.height


OVERWORLD = GenerationShapeConfig(min_y=-64, height=384, size_horizontal=1, size_vertical=2)


@dataclass(frozen=True)
class ChunkPos:
    x: int
    z: int

    @property
    def start_x(self) -> int:
        return self.x * CHUNK_WIDTH

    @property
    def start_z(self) -> int:
        return self.z * CHUNK_WIDTH


def block_index(shape: GenerationShapeConfig, local_x: int, local_y: int, local_z: int) -> int:
    """Flat index of a block inside a chunk column; ``local_y`` counts up from ``min_y``."""
    if local_x < 0 or local_y < 0 or local_z < 0:
        raise ContractViolationError(f"bad local position ({local_x}, {local_y}, {local_z})")
    return shape.height * CHUNK_WIDTH * local_x + CHUNK_WIDTH * local_y + local_z


def local_from_index(shape: GenerationShapeConfig, index: int) -> tuple[int, int, int]:
    if index < 0:
        raise ContractViolationError(f"bad block index {index}")
    local_x, rest = divmod(int(index), shape.height * CHUNK_WIDTH)
    local_y, local_z = divmod(rest, CHUNK_WIDTH)
    return local_x, local_y, local_z
