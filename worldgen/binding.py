"""Seed binding: attach seed-derived random streams to abstract noise leaves."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Mapping, Union

from perlin.double_perlin import DoublePerlin, NoiseParameters
from perlin.rng import Xoroshiro128PlusPlus, XoroshiroSplitter
from worldgen import density as df
from worldgen.errors import UnknownRegistryKeyError

LOGGER = logging.getLogger(__name__)

TERRAIN_DOMAIN = "terrain"

NoiseLookup = Union[Callable[[str], NoiseParameters], Mapping[str, NoiseParameters]]

_NOISE_CARRIERS = (
    df.Noise,
    df.ShiftA,
    df.ShiftB,
    df.Shift,
    df.ShiftedNoise,
    df.WeirdScaledSampler,
)


def _as_lookup(noises: NoiseLookup) -> Callable[[str], NoiseParameters]:
    if callable(noises):
        return noises

    def lookup(key: str) -> NoiseParameters:
        try:
            return noises[key]
        except KeyError:
            raise UnknownRegistryKeyError("noise", key) from None

    return lookup


class SeedBinder:
    """One binding pass over any number of trees for one world seed.

    Samplers are shared per noise id and equal subtrees are rebound once;
    both are safe because every split is a pure function of the splitter
    state and the key.
    """

    def __init__(self, world_seed: int, noises: NoiseLookup):
        self.world_seed = int(world_seed)
        self.splitter: XoroshiroSplitter = Xoroshiro128PlusPlus.from_seed(
            self.world_seed
        ).next_splitter()
        self._lookup = _as_lookup(noises)
        self._samplers: dict[str, DoublePerlin] = {}
        self._memo: dict[df.DensityFunction, df.DensityFunction] = {}

    def sampler_for(self, noise_id: str) -> DoublePerlin:
        sampler = self._samplers.get(noise_id)
        if sampler is None:
            params = self._lookup(noise_id)
            sampler = DoublePerlin(self.splitter.split_id(noise_id), params)
            self._samplers[noise_id] = sampler
        return sampler

    def bind(self, node: df.DensityFunction) -> df.DensityFunction:
        bound = self._memo.get(node)
        if bound is not None:
            return bound

        # Pre-order: the node's own stream is derived before its children's.
        if isinstance(node, _NOISE_CARRIERS):
            holder = df.NoiseHolder(node.noise.id, self.sampler_for(node.noise.id))
            rebuilt = replace(node, noise=holder)
        elif isinstance(node, df.BlendedNoiseLeaf):
            random = self.splitter.split_id(TERRAIN_DOMAIN)
            rebuilt = df.BlendedNoiseLeaf(node.sampler.copy_with_random(random))
        else:
            rebuilt = node
        bound = rebuilt.map_children(self.bind)

        self._memo[node] = bound
        return bound


def bind(tree: df.DensityFunction, world_seed: int, noises: NoiseLookup) -> df.DensityFunction:
    """Return a copy of ``tree`` with every noise leaf seeded for ``world_seed``."""
    binder = SeedBinder(world_seed, noises)
    bound = binder.bind(tree)
    LOGGER.debug(
        "bound %d noise samplers for seed %d", len(binder._samplers), binder.world_seed
    )
    return bound
