from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import numpy as np

from perlin.core import clamped_map, lerp, lerp_progress
from perlin.noise_3d import floor_i32
from perlin.rng import XoroshiroSplitter, to_i32
from worldgen import density as df
from worldgen.density import java_clamp

LAVA_LEVEL = -54


@dataclass(frozen=True)
class FluidLevel:
    """A fluid surface: ``state_id`` fills everything strictly below ``max_y``."""

    max_y: int
    state_id: int

    def block_state(self, y: int, air: int = 0) -> int:
        return self.state_id if y < self.max_y else air


@dataclass(frozen=True)
class FluidLevelSampler:
    """Two-tier fluid policy: lava deep down, the default fluid above.

    The switch happens below ``min(LAVA_LEVEL, sea_level)``, so a world whose
    sea sits under the lava line keeps its sea all the way down to it.
    """

    sea_level: int
    default_fluid: FluidLevel
    lava: FluidLevel

    @classmethod
    def for_settings(cls, sea_level: int, default_fluid: int, lava: int) -> "FluidLevelSampler":
        return cls(
            sea_level=int(sea_level),
            default_fluid=FluidLevel(int(sea_level), int(default_fluid)),
            lava=FluidLevel(LAVA_LEVEL, int(lava)),
        )

    @property
    def threshold(self) -> int:
        return min(LAVA_LEVEL, self.sea_level)

    def fluid_level_at(self, x: int, y: int, z: int) -> FluidLevel:
        return self.lava if y < self.threshold else self.default_fluid


class SeaLevelAquifer:
    """Fills open space with the fluid level's state; solid space is left undecided."""

    def __init__(self, fluid_sampler: FluidLevelSampler, air: int = 0):
        self.fluid_sampler = fluid_sampler
        self.air = int(air)

    def apply(self, x: int, y: int, z: int, density: float) -> int | None:
        if density > 0.0:
            return None
        return self.fluid_sampler.fluid_level_at(x, y, z).block_state(y, self.air)

    def apply_at(self, pos, density: float) -> int | None:
        return self.apply(pos.block_x, pos.block_y, pos.block_z, density)


# A fluid surface this low never fills anything.
WAY_BELOW_MIN_Y = -2032 << 4

_I32_MAX = (1 << 31) - 1

# Section offsets sampled for surface height, the own section first.
_SURFACE_OFFSETS = (
    (0, 0),
    (-2, -1),
    (-1, -1),
    (0, -1),
    (1, -1),
    (-3, 0),
    (-2, 0),
    (-1, 0),
    (1, 0),
    (-2, 1),
    (-1, 1),
    (0, 1),
    (1, 1),
)

_DEEP_DARK_EROSION = float(np.float32(-0.225))
_DEEP_DARK_DEPTH = float(np.float32(0.9))


def _falloff(closest: int, other: int) -> float:
    return 1.0 - abs(other - closest) / 25.0


def _remap(value: float, old_start: float, old_end: float, new_start: float, new_end: float) -> float:
    return lerp(new_start, new_end, lerp_progress(value, old_start, old_end))


class NoiseAquifer:
    """Underground fluid pockets, each with its own surface height and fluid.

    Aquifer centres sit on a 16x12x16 grid, jittered per grid point from the
    positional random deriver. An open block takes the fluid level of its
    nearest centre; where the nearest two or three levels disagree the
    barrier noise may raise a wall, in which case the block is left to the
    next resolver.

    ``surface_height(x, z)`` estimates the terrain surface of a column and is
    supplied by the chunk sampler. ``barrier`` is sampled at the chunk
    position so chunk-scoped caches apply; every other function is sampled at
    a plain block position.
    """

    def __init__(
        self,
        chunk_start_x: int,
        chunk_start_z: int,
        min_y: int,
        height: int,
        *,
        barrier: df.DensityFunction,
        floodedness: df.DensityFunction,
        spread: df.DensityFunction,
        fluid_type: df.DensityFunction,
        erosion: df.DensityFunction,
        depth: df.DensityFunction,
        random_deriver: XoroshiroSplitter,
        fluid_sampler: FluidLevelSampler,
        surface_height: Callable[[int, int], int],
        lava: int,
        water: int,
        air: int = 0,
    ):
        self.barrier = barrier
        self.floodedness = floodedness
        self.spread = spread
        self.fluid_type = fluid_type
        self.erosion = erosion
        self.depth = depth
        self.fluid_sampler = fluid_sampler
        self.surface_height = surface_height
        self.lava = int(lava)
        self.water = int(water)
        self.air = int(air)

        self.start_x = (chunk_start_x >> 4) - 1
        self.start_y = min_y // 12 - 1
        self.start_z = (chunk_start_z >> 4) - 1
        self.size_x = (chunk_start_x + 15) // 16 + 1 - self.start_x + 1
        self.size_y = (min_y + height) // 12 + 1 - self.start_y + 1
        self.size_z = (chunk_start_z + 15) // 16 + 1 - self.start_z + 1

        size = self.size_x * self.size_y * self.size_z
        self._centres: list[tuple[int, int, int]] = [(0, 0, 0)] * size
        self._levels: list[FluidLevel | None] = [None] * size
        for ox in range(self.size_x):
            for oy in range(self.size_y):
                for oz in range(self.size_z):
                    x = self.start_x + ox
                    y = self.start_y + oy
                    z = self.start_z + oz
                    random = random_deriver.split_pos(x, y, z)
                    self._centres[self._index(x, y, z)] = (
                        x * 16 + random.next_bounded_i32(10),
                        y * 12 + random.next_bounded_i32(9),
                        z * 16 + random.next_bounded_i32(10),
                    )

    def _index(self, x: int, y: int, z: int) -> int:
        i = x - self.start_x
        j = y - self.start_y
        k = z - self.start_z
        return (j * self.size_z + k) * self.size_x + i

    # fluid levels per aquifer centre

    def _level_of(self, centre: tuple[int, int, int]) -> FluidLevel:
        x, y, z = centre
        index = self._index(x // 16, y // 12, z // 16)
        level = self._levels[index]
        if level is None:
            level = self._compute_level(x, y, z)
            self._levels[index] = level
        return level

    def _compute_level(self, x: int, y: int, z: int) -> FluidLevel:
        default = self.fluid_sampler.fluid_level_at(x, y, z)
        above = y + 12
        below = y - 12
        own_column_flooded = False
        lowest_surface = _I32_MAX

        for dx, dz in _SURFACE_OFFSETS:
            px = x + (dx << 4)
            pz = z + (dz << 4)
            surface = self.surface_height(px, pz)
            check_y = to_i32(surface + 8)
            own = dx == 0 and dz == 0

            if own and below > check_y:
                return default

            reaches = above > check_y
            if reaches or own:
                level = self.fluid_sampler.fluid_level_at(px, check_y, pz)
                if level.block_state(check_y, self.air) != self.air:
                    if own:
                        own_column_flooded = True
                    if reaches:
                        return level

            lowest_surface = min(lowest_surface, surface)

        surface_y = self._fluid_surface_y(x, y, z, default, lowest_surface, own_column_flooded)
        return FluidLevel(surface_y, self._fluid_state(x, y, z, default, surface_y))

    def _fluid_surface_y(
        self,
        x: int,
        y: int,
        z: int,
        default: FluidLevel,
        surface_estimate: int,
        near_surface: bool,
    ) -> int:
        pos = df.BlockPos(x, y, z)
        if (
            self.erosion.sample(pos) < _DEEP_DARK_EROSION
            and self.depth.sample(pos) > _DEEP_DARK_DEPTH
        ):
            # Deep dark: always dry.
            flooded = -1.0
            partial = -1.0
        else:
            depth_below_surface = to_i32(surface_estimate + 8 - y)
            f = clamped_map(depth_below_surface, 0.0, 64.0, 1.0, 0.0) if near_surface else 0.0
            g = java_clamp(self.floodedness.sample(pos), -1.0, 1.0)
            flooded = g - _remap(f, 1.0, 0.0, -0.3, 0.8)
            partial = g - _remap(f, 1.0, 0.0, -0.8, 0.4)

        if flooded > 0.0:
            return default.max_y
        if partial > 0.0:
            return self._randomized_surface_y(x, y, z, surface_estimate)
        return WAY_BELOW_MIN_Y

    def _randomized_surface_y(self, x: int, y: int, z: int, surface_estimate: int) -> int:
        cell_y = y // 40
        sample = self.spread.sample(df.BlockPos(x // 16, cell_y, z // 16)) * 10.0
        stepped = floor_i32(sample / 3.0) * 3
        return min(surface_estimate, stepped + cell_y * 40 + 20)

    def _fluid_state(self, x: int, y: int, z: int, default: FluidLevel, surface_y: int) -> int:
        if surface_y <= -10 and surface_y != WAY_BELOW_MIN_Y and default.state_id != self.lava:
            sample = self.fluid_type.sample(df.BlockPos(x // 64, y // 40, z // 64))
            if abs(sample) > 0.3:
                return self.lava
        return default.state_id

    # barrier between neighbouring aquifers

    def _pressure(self, y: int, barrier: float, a: FluidLevel, b: FluidLevel) -> float:
        state_a = a.block_state(y, self.air)
        state_b = b.block_state(y, self.air)
        if (state_a == self.lava and state_b == self.water) or (
            state_a == self.water and state_b == self.lava
        ):
            return 2.0

        diff = abs(a.max_y - b.max_y)
        if diff == 0:
            return 0.0
        mid = 0.5 * (a.max_y + b.max_y)
        offset = y + 0.5 - mid
        half = diff / 2.0
        o = half - abs(offset)
        if offset > 0.0:
            q = o / 1.5 if o > 0.0 else o / 2.5
        else:
            p = 3.0 + o
            q = p / 3.0 if p > 0.0 else p / 10.0
        r = barrier if -2.0 <= q <= 2.0 else 0.0
        return 2.0 * (r + q)

    # resolution

    def apply_at(self, pos: df.NoisePos, density: float) -> int | None:
        if density > 0.0:
            return None
        x, y, z = pos.block_x, pos.block_y, pos.block_z

        if self.fluid_sampler.fluid_level_at(x, y, z).block_state(y, self.air) == self.lava:
            return self.lava

        gx = (x - 5) // 16
        gy = (y + 1) // 12
        gz = (z - 5) // 16
        # Three nearest centres, closest first; later ties win.
        nearest = [((0, 0, 0), _I32_MAX)] * 3
        for dy in (-1, 0, 1):
            for dx in (0, 1):
                for dz in (0, 1):
                    centre = self._centres[self._index(gx + dx, gy + dy, gz + dz)]
                    ex = centre[0] - x
                    ey = centre[1] - y
                    ez = centre[2] - z
                    dist = ex * ex + ey * ey + ez * ez
                    if nearest[2][1] >= dist:
                        nearest[2] = (centre, dist)
                    if nearest[1][1] >= dist:
                        nearest[2] = nearest[1]
                        nearest[1] = (centre, dist)
                    if nearest[0][1] >= dist:
                        nearest[1] = nearest[0]
                        nearest[0] = (centre, dist)

        (c0, d0), (c1, d1), (c2, d2) = nearest
        level0 = self._level_of(c0)
        state = level0.block_state(y, self.air)
        w01 = _falloff(d0, d1)
        if w01 <= 0.0:
            return state
        if (
            state == self.water
            and self.fluid_sampler.fluid_level_at(x, y - 1, z).block_state(y - 1, self.air)
            == self.lava
        ):
            return state

        barrier = self.barrier.sample(pos)
        level1 = self._level_of(c1)
        if density + w01 * self._pressure(y, barrier, level0, level1) > 0.0:
            return None

        level2 = self._level_of(c2)
        w02 = _falloff(d0, d2)
        if w02 > 0.0 and density + w01 * w02 * self._pressure(y, barrier, level0, level2) > 0.0:
            return None
        w12 = _falloff(d1, d2)
        if w12 > 0.0 and density + w01 * w12 * self._pressure(y, barrier, level1, level2) > 0.0:
            return None
        return state

    def apply(self, x: int, y: int, z: int, density: float) -> int | None:
        return self.apply_at(df.BlockPos(x, y, z), density)
