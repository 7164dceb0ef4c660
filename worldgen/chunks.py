"""Chunk noise sampler: corner sampling plus trilinear interpolation over a cell grid.

The sampler is itself the position handed to every density function during a
grid walk. Chunk-scoped wrappers recognise it by identity and answer from
their buffers; any other position goes straight to the wrapped function.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator, Protocol, Sequence

import numpy as np

from perlin.core import lerp, lerp3
from worldgen import density as df
from worldgen.aquifer import FluidLevelSampler, NoiseAquifer, SeaLevelAquifer
from worldgen.errors import ContractViolationError
from worldgen.ore_veins import OreVeinSampler, vanilla_vein_types
from worldgen.router import NoiseConfig
from worldgen.shape import CHUNK_WIDTH, ChunkPos, GenerationShapeConfig, block_index

LOGGER = logging.getLogger(__name__)


class BlockStateResolver(Protocol):
    def resolve(self, sampler: "ChunkNoiseSampler") -> int | None: ...  # pragma: no cover


class ChainedResolver:
    """First non-``None`` answer wins."""

    def __init__(self, resolvers: Sequence[BlockStateResolver]):
        self.resolvers = tuple(resolvers)

    def resolve(self, sampler: "ChunkNoiseSampler") -> int | None:
        for resolver in self.resolvers:
            state = resolver.resolve(sampler)
            if state is not None:
                return state
        return None


class AquiferResolver:
    def __init__(self, aquifer: SeaLevelAquifer | NoiseAquifer, density: df.DensityFunction):
        self.aquifer = aquifer
        self.density = density

    def resolve(self, sampler: "ChunkNoiseSampler") -> int | None:
        return self.aquifer.apply_at(sampler, self.density.sample(sampler))


# -- chunk-scoped wrappers -------------------------------------------------


class _ChunkWrapper(df.DensityFunction):
    def __init__(self, sampler: "ChunkNoiseSampler", delegate: df.DensityFunction):
        self.sampler = sampler
        self.delegate = delegate

    @property
    def min_value(self) -> float:
        return self.delegate.min_value

    @property
    def max_value(self) -> float:
        return self.delegate.max_value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.delegate!r})"


class DensityInterpolator(_ChunkWrapper):
    """Holds two corner planes of its delegate and lerps between them."""

    def __init__(self, sampler: "ChunkNoiseSampler", delegate: df.DensityFunction):
        super().__init__(sampler, delegate)
        rows = sampler.horizontal_cell_count + 1
        cols = sampler.vertical_cell_count + 1
        self.start_buffer = [[0.0] * cols for _ in range(rows)]
        self.end_buffer = [[0.0] * cols for _ in range(rows)]
        self.corners = (0.0,) * 8
        self._x0z0 = self._x1z0 = self._x0z1 = self._x1z1 = 0.0
        self._z0 = self._z1 = 0.0
        self.result = 0.0

    def on_sampled_cell_corners(self, cell_y: int, cell_z: int) -> None:
        s = self.start_buffer
        e = self.end_buffer
        # Order matches lerp3: x varies fastest, then y, then z.
        self.corners = (
            s[cell_z][cell_y],
            e[cell_z][cell_y],
            s[cell_z][cell_y + 1],
            e[cell_z][cell_y + 1],
            s[cell_z + 1][cell_y],
            e[cell_z + 1][cell_y],
            s[cell_z + 1][cell_y + 1],
            e[cell_z + 1][cell_y + 1],
        )

    def interpolate_y(self, delta: float) -> None:
        x0y0z0, x1y0z0, x0y1z0, x1y1z0, x0y0z1, x1y0z1, x0y1z1, x1y1z1 = self.corners
        self._x0z0 = lerp(x0y0z0, x0y1z0, delta)
        self._x1z0 = lerp(x1y0z0, x1y1z0, delta)
        self._x0z1 = lerp(x0y0z1, x0y1z1, delta)
        self._x1z1 = lerp(x1y0z1, x1y1z1, delta)

    def interpolate_x(self, delta: float) -> None:
        self._z0 = lerp(self._x0z0, self._x1z0, delta)
        self._z1 = lerp(self._x0z1, self._x1z1, delta)

    def interpolate_z(self, delta: float) -> None:
        self.result = lerp(self._z0, self._z1, delta)

    def swap_buffers(self) -> None:
        self.start_buffer, self.end_buffer = self.end_buffer, self.start_buffer

    def sample(self, pos: df.NoisePos) -> float:
        s = self.sampler
        if pos is not s:
            return self.delegate.sample(pos)
        if not s.in_interpolation_loop:
            raise ContractViolationError("sampling an interpolator outside the interpolation loop")
        if s.sampling_for_caches:
            return lerp3(
                s.cell_block_x / s.horizontal_cell_block_count,
                s.cell_block_y / s.vertical_cell_block_count,
                s.cell_block_z / s.horizontal_cell_block_count,
                *self.corners,
            )
        return self.result

    def fill(self, densities: list[float], applier: df.Applier) -> None:
        if self.sampler.sampling_for_caches:
            applier.fill(densities, self)
        else:
            self.delegate.fill(densities, applier)


class FlatCache(_ChunkWrapper):
    """The delegate at y=0 on the chunk's quarter-resolution column grid."""

    def __init__(self, sampler: "ChunkNoiseSampler", delegate: df.DensityFunction):
        super().__init__(sampler, delegate)
        size = sampler.horizontal_biome_end + 1
        self.cache = [[0.0] * size for _ in range(size)]
        for i in range(size):
            block_x = (sampler.start_biome_x + i) << 2
            for j in range(size):
                block_z = (sampler.start_biome_z + j) << 2
                self.cache[i][j] = delegate.sample(df.BlockPos(block_x, 0, block_z))

    def sample(self, pos: df.NoisePos) -> float:
        i = (pos.block_x >> 2) - self.sampler.start_biome_x
        j = (pos.block_z >> 2) - self.sampler.start_biome_z
        size = len(self.cache)
        if 0 <= i < size and 0 <= j < size:
            return self.cache[i][j]
        return self.delegate.sample(pos)


class Cache2D(_ChunkWrapper):
    """Remembers the last column sampled."""

    def __init__(self, sampler: "ChunkNoiseSampler", delegate: df.DensityFunction):
        super().__init__(sampler, delegate)
        self._column: tuple[int, int] | None = None
        self._value = 0.0

    def sample(self, pos: df.NoisePos) -> float:
        column = (pos.block_x, pos.block_z)
        if column == self._column:
            return self._value
        self._column = column
        self._value = self.delegate.sample(pos)
        return self._value


class CacheOnce(_ChunkWrapper):
    """Memoizes one sample (or one filled array) per unique sampler step."""

    def __init__(self, sampler: "ChunkNoiseSampler", delegate: df.DensityFunction):
        super().__init__(sampler, delegate)
        self._sample_index = -1
        self._cache_index = -1
        self._value = 0.0
        self._cache: list[float] | None = None

    def sample(self, pos: df.NoisePos) -> float:
        s = self.sampler
        if pos is not s:
            return self.delegate.sample(pos)
        if self._cache is not None and self._cache_index == s.cache_once_unique_index:
            return self._cache[s.index]
        if self._sample_index == s.sample_unique_index:
            return self._value
        self._sample_index = s.sample_unique_index
        self._value = self.delegate.sample(pos)
        return self._value

    def fill(self, densities: list[float], applier: df.Applier) -> None:
        s = self.sampler
        if self._cache is not None and self._cache_index == s.cache_once_unique_index:
            densities[:] = self._cache
            return
        self.delegate.fill(densities, applier)
        self._cache = list(densities)
        self._cache_index = s.cache_once_unique_index


class CellCache(_ChunkWrapper):
    """The delegate at every block of the current cell, filled once per cell."""

    def __init__(self, sampler: "ChunkNoiseSampler", delegate: df.DensityFunction):
        super().__init__(sampler, delegate)
        h = sampler.horizontal_cell_block_count
        v = sampler.vertical_cell_block_count
        self.cache = [0.0] * (h * h * v)

    def sample(self, pos: df.NoisePos) -> float:
        s = self.sampler
        if pos is not s:
            return self.delegate.sample(pos)
        if not s.in_interpolation_loop:
            raise ContractViolationError("sampling a cell cache outside the interpolation loop")
        h = s.horizontal_cell_block_count
        v = s.vertical_cell_block_count
        x, y, z = s.cell_block_x, s.cell_block_y, s.cell_block_z
        if 0 <= x < h and 0 <= y < v and 0 <= z < h:
            return self.cache[((v - 1 - y) * h + x) * h + z]
        return self.delegate.sample(pos)


_WRAPPERS = {
    "interpolated": DensityInterpolator,
    "flat_cache": FlatCache,
    "cache_2d": Cache2D,
    "cache_once": CacheOnce,
    "cache_all_in_cell": CellCache,
}


class _CornerApplier:
    """Walks one vertical column of cell corners."""

    def __init__(self, sampler: "ChunkNoiseSampler"):
        self.sampler = sampler

    def at(self, index: int) -> "ChunkNoiseSampler":
        s = self.sampler
        s.start_block_y = (index + s.minimum_cell_y) * s.vertical_cell_block_count
        s.sample_unique_index += 1
        s.cell_block_y = 0
        s.index = index
        return s

    def fill(self, densities: list[float], function: df.DensityFunction) -> None:
        for i in range(len(densities)):
            densities[i] = function.sample(self.at(i))


# -- the sampler -----------------------------------------------------------


class ChunkNoiseSampler:
    def __init__(
        self,
        noise_config: NoiseConfig,
        chunk_pos: ChunkPos,
        shape: GenerationShapeConfig | None = None,
        *,
        blocks: Any = None,
        fluid_sampler: FluidLevelSampler | None = None,
        resolver: BlockStateResolver | None = None,
        beardifier: df.DensityFunction | None = None,
    ):
        settings = noise_config.settings
        self.noise_config = noise_config
        self.chunk_pos = chunk_pos
        self.shape = shape if shape is not None else settings.shape

        h = self.shape.horizontal_cell_block_count
        v = self.shape.vertical_cell_block_count
        self.horizontal_cell_block_count = h
        self.vertical_cell_block_count = v
        self.horizontal_cell_count = CHUNK_WIDTH // h
        self.vertical_cell_count = self.shape.height // v
        self.minimum_cell_y = self.shape.min_y // v
        self.start_cell_x = chunk_pos.start_x // h
        self.start_cell_z = chunk_pos.start_z // h
        self.start_biome_x = chunk_pos.start_x >> 2
        self.start_biome_z = chunk_pos.start_z >> 2
        self.horizontal_biome_end = (self.horizontal_cell_count * h) >> 2

        self.start_block_x = 0
        self.start_block_y = 0
        self.start_block_z = 0
        self.cell_block_x = 0
        self.cell_block_y = 0
        self.cell_block_z = 0
        self.index = 0
        self.sample_unique_index = 0
        self.cache_once_unique_index = 0
        self.in_interpolation_loop = False
        self.sampling_for_caches = False

        self.beardifier = beardifier if beardifier is not None else df.Beardifier()
        self.interpolators: list[DensityInterpolator] = []
        self.cell_caches: list[CellCache] = []
        self._converted: dict[df.DensityFunction, df.DensityFunction] = {}
        self._corner_applier = _CornerApplier(self)
        self._surface_heights: dict[tuple[int, int], int] = {}

        self.router = noise_config.router.map(self.convert)
        self.final_density = self.convert(
            df.Wrapped("cache_all_in_cell", df.add(noise_config.router.final_density, df.Beardifier()))
        )

        if resolver is None:
            resolver = self._default_resolver(blocks, fluid_sampler)
        if not callable(getattr(resolver, "resolve", None)):
            raise ContractViolationError(
                f"block-state resolver {type(resolver).__name__} has no resolve()"
            )
        self.resolver = resolver

    def _default_resolver(self, blocks: Any, fluid_sampler: FluidLevelSampler | None):
        settings = self.noise_config.settings
        if blocks is None:
            raise ContractViolationError("the default block-state chain needs a block registry")
        air = blocks.default_state("air")
        lava = blocks.default_state("lava")
        if fluid_sampler is None:
            fluid_sampler = FluidLevelSampler.for_settings(settings.sea_level, settings.default_fluid, lava)
        if settings.aquifers_enabled:
            router = self.router
            aquifer: SeaLevelAquifer | NoiseAquifer = NoiseAquifer(
                self.chunk_pos.start_x,
                self.chunk_pos.start_z,
                self.shape.min_y,
                self.shape.height,
                barrier=router.barrier,
                floodedness=router.fluid_level_floodedness,
                spread=router.fluid_level_spread,
                fluid_type=router.lava,
                erosion=router.erosion,
                depth=router.depth,
                random_deriver=self.noise_config.aquifer_random_deriver,
                fluid_sampler=fluid_sampler,
                surface_height=self.estimate_surface_height,
                lava=lava,
                water=blocks.default_state("water"),
                air=air,
            )
        else:
            aquifer = SeaLevelAquifer(fluid_sampler, air=air)
        chain: list[BlockStateResolver] = [AquiferResolver(aquifer, self.final_density)]
        if settings.ore_veins_enabled:
            copper, iron = vanilla_vein_types(blocks)
            chain.append(
                OreVeinSampler(
                    self.router.vein_toggle,
                    self.router.vein_ridged,
                    self.router.vein_gap,
                    self.noise_config.ore_random_deriver,
                    copper,
                    iron,
                )
            )
        return ChainedResolver(chain)

    # position

    @property
    def block_x(self) -> int:
        return self.start_block_x + self.cell_block_x

    @property
    def block_y(self) -> int:
        return self.start_block_y + self.cell_block_y

    @property
    def block_z(self) -> int:
        return self.start_block_z + self.cell_block_z

    def estimate_surface_height(self, block_x: int, block_z: int) -> int:
        """Highest cell-aligned y where the jaggedness-free density is clearly solid.

        Columns are snapped to the 4x4 biome grid and memoized; a column that
        never turns solid reports the largest 32-bit int.
        """
        column = ((block_x >> 2) << 2, (block_z >> 2) << 2)
        estimate = self._surface_heights.get(column)
        if estimate is None:
            estimate = self._compute_surface_height(*column)
            self._surface_heights[column] = estimate
        return estimate

    def _compute_surface_height(self, x: int, z: int) -> int:
        initial = self.router.initial_density_without_jaggedness
        min_y = self.shape.min_y
        for y in range(min_y + self.shape.height, min_y - 1, -self.vertical_cell_block_count):
            if initial.sample(df.BlockPos(x, y, z)) > 0.390625:
                return y
        return (1 << 31) - 1

    # conversion

    def convert(self, function: df.DensityFunction) -> df.DensityFunction:
        """Swap markers for chunk-scoped wrappers; equal subtrees share one wrapper."""
        return function.map(self._convert_node)

    def _convert_node(self, function: df.DensityFunction) -> df.DensityFunction:
        converted = self._converted.get(function)
        if converted is None:
            converted = self._convert_uncached(function)
            self._converted[function] = converted
        return converted

    def _convert_uncached(self, function: df.DensityFunction) -> df.DensityFunction:
        if isinstance(function, df.Wrapped):
            wrapper = _WRAPPERS[function.kind](self, function.argument)
            if isinstance(wrapper, DensityInterpolator):
                self.interpolators.append(wrapper)
            elif isinstance(wrapper, CellCache):
                self.cell_caches.append(wrapper)
            return wrapper
        if isinstance(function, df.BlendAlpha):
            return df.Constant(1.0)
        if isinstance(function, df.BlendOffset):
            return df.Constant(0.0)
        if isinstance(function, df.Beardifier):
            return self.beardifier
        if isinstance(function, df.Reference):
            return function.argument
        return function

    # applier over the current cell, y from the top

    def at(self, index: int) -> "ChunkNoiseSampler":
        h = self.horizontal_cell_block_count
        j, self.cell_block_z = divmod(index, h)
        self.cell_block_x = j % h
        self.cell_block_y = self.vertical_cell_block_count - 1 - j // h
        self.index = index
        return self

    def fill(self, densities: list[float], function: df.DensityFunction) -> None:
        h = self.horizontal_cell_block_count
        self.index = 0
        for y in range(self.vertical_cell_block_count - 1, -1, -1):
            self.cell_block_y = y
            for x in range(h):
                self.cell_block_x = x
                for z in range(h):
                    self.cell_block_z = z
                    densities[self.index] = function.sample(self)
                    self.index += 1
        self.index = 0

    # grid walk primitives

    def _sample_density(self, start: bool, cell_x: int) -> None:
        self.start_block_x = cell_x * self.horizontal_cell_block_count
        self.cell_block_x = 0
        for i in range(self.horizontal_cell_count + 1):
            self.start_block_z = (self.start_cell_z + i) * self.horizontal_cell_block_count
            self.cell_block_z = 0
            self.cache_once_unique_index += 1
            for interpolator in self.interpolators:
                buffer = interpolator.start_buffer if start else interpolator.end_buffer
                interpolator.fill(buffer[i], self._corner_applier)
        self.cache_once_unique_index += 1

    def sample_start_density(self) -> None:
        if self.in_interpolation_loop:
            raise ContractViolationError("interpolation started twice")
        self.in_interpolation_loop = True
        self.sample_unique_index = 0
        self._sample_density(True, self.start_cell_x)

    def sample_end_density(self, cell_x: int) -> None:
        self._sample_density(False, self.start_cell_x + cell_x + 1)
        self.start_block_x = (self.start_cell_x + cell_x) * self.horizontal_cell_block_count

    def on_sampled_cell_corners(self, cell_y: int, cell_z: int) -> None:
        for interpolator in self.interpolators:
            interpolator.on_sampled_cell_corners(cell_y, cell_z)
        self.sampling_for_caches = True
        self.start_block_y = (cell_y + self.minimum_cell_y) * self.vertical_cell_block_count
        self.start_block_z = (self.start_cell_z + cell_z) * self.horizontal_cell_block_count
        self.cache_once_unique_index += 1
        for cache in self.cell_caches:
            cache.delegate.fill(cache.cache, self)
        self.cache_once_unique_index += 1
        self.sampling_for_caches = False

    def interpolate_y(self, block_y: int, delta: float) -> None:
        self.cell_block_y = block_y - self.start_block_y
        for interpolator in self.interpolators:
            interpolator.interpolate_y(delta)

    def interpolate_x(self, block_x: int, delta: float) -> None:
        self.cell_block_x = block_x - self.start_block_x
        for interpolator in self.interpolators:
            interpolator.interpolate_x(delta)

    def interpolate_z(self, block_z: int, delta: float) -> None:
        self.cell_block_z = block_z - self.start_block_z
        self.sample_unique_index += 1
        for interpolator in self.interpolators:
            interpolator.interpolate_z(delta)

    def swap_buffers(self) -> None:
        for interpolator in self.interpolators:
            interpolator.swap_buffers()

    def stop_interpolation(self) -> None:
        if not self.in_interpolation_loop:
            raise ContractViolationError("interpolation stopped without being started")
        self.in_interpolation_loop = False

    def sample_block_state(self) -> int | None:
        return self.resolver.resolve(self)

    # full walks

    def walk(self) -> Iterator[tuple[int, int, int]]:
        """Drive the grid and yield ``(local_x, local_y, local_z)`` at every block.

        Cells are visited x-major, then z, then y from the top down; a block
        on a shared cell face is written by whichever cell reaches it last.
        """
        h = self.horizontal_cell_block_count
        v = self.vertical_cell_block_count
        start_x = self.chunk_pos.start_x
        start_z = self.chunk_pos.start_z
        min_y = self.shape.min_y
        cells_xz = self.horizontal_cell_count
        cell_height = self.vertical_cell_count

        self.sample_start_density()
        for cell_x in range(cells_xz):
            self.sample_end_density(cell_x)
            for cell_z in range(cells_xz):
                for cell_y in range(cell_height - 1, -1, -1):
                    self.on_sampled_cell_corners(cell_y, cell_z)
                    for dy in range(v - 1, -1, -1):
                        y = (self.minimum_cell_y + cell_y) * v + dy
                        self.interpolate_y(y, dy / v)
                        for dx in range(h):
                            x = start_x + cell_x * h + dx
                            self.interpolate_x(x, dx / h)
                            for dz in range(h):
                                z = start_z + cell_z * h + dz
                                self.interpolate_z(z, dz / h)
                                yield x & 15, y - min_y, z & 15
            self.swap_buffers()
        self.stop_interpolation()

    def populate_noise(self, default_block: int | None = None) -> np.ndarray:
        """Resolve every block of the column; unresolved blocks get ``default_block``."""
        if default_block is None:
            default_block = self.noise_config.settings.default_block
        result = np.zeros(CHUNK_WIDTH * CHUNK_WIDTH * self.shape.height, dtype=np.int32)
        for local_x, local_y, local_z in self.walk():
            state = self.sample_block_state()
            if state is None:
                state = default_block
            result[block_index(self.shape, local_x, local_y, local_z)] = state
        LOGGER.debug("populated chunk %s", self.chunk_pos)
        return result

    def sample_density_grid(self) -> np.ndarray:
        """Interpolated final density per block, indexed ``[local_x, local_y, local_z]``."""
        out = np.zeros((CHUNK_WIDTH, self.shape.height, CHUNK_WIDTH), dtype=np.float64)
        for local_x, local_y, local_z in self.walk():
            out[local_x, local_y, local_z] = self.final_density.sample(self)
        return out


def generate_chunk(
    *,
    noise_config: NoiseConfig,
    chunk_x: int,
    chunk_z: int,
    blocks: Any,
    shape: GenerationShapeConfig | None = None,
) -> np.ndarray:
    """Chunk contract: (seed-bound config, chunk_x, chunk_z) -> deterministic block ids."""
    sampler = ChunkNoiseSampler(
        noise_config, ChunkPos(int(chunk_x), int(chunk_z)), shape, blocks=blocks
    )
    return sampler.populate_noise()
