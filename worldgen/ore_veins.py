from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from perlin.core import clamped_map
from perlin.rng import XoroshiroSplitter
from worldgen import density as df

f32 = np.float32

_MIN_DENSITY = float(f32(0.4))
_RICH_DENSITY = float(f32(0.6))
_MIN_CHANCE = float(f32(0.1))
_MAX_CHANCE = float(f32(0.3))
_GAP_THRESHOLD = float(f32(-0.3))
_RICHNESS_CHANCE = f32(0.7)
_RAW_BLOCK_CHANCE = f32(0.02)
_EDGE_ROUNDOFF_BEGIN = 20
_MAX_EDGE_ROUNDOFF = 0.2


@dataclass(frozen=True)
class VeinType:
    ore: int
    raw_ore_block: int
    filler: int
    min_y: int
    max_y: int


def vanilla_vein_types(blocks) -> tuple[VeinType, VeinType]:
    """``(copper, iron)`` resolved against a block registry."""
    copper = VeinType(
        ore=blocks.default_state("copper_ore"),
        raw_ore_block=blocks.default_state("raw_copper_block"),
        filler=blocks.default_state("granite"),
        min_y=0,
        max_y=50,
    )
    iron = VeinType(
        ore=blocks.default_state("deepslate_iron_ore"),
        raw_ore_block=blocks.default_state("raw_iron_block"),
        filler=blocks.default_state("tuff"),
        min_y=-60,
        max_y=-8,
    )
    return copper, iron


class OreVeinSampler:
    """Large copper/iron veins carved out of the router's vein functions.

    Every decision is keyed on the block position through ``split_pos``, so
    the result does not depend on traversal order.
    """

    def __init__(
        self,
        vein_toggle: df.DensityFunction,
        vein_ridged: df.DensityFunction,
        vein_gap: df.DensityFunction,
        random_deriver: XoroshiroSplitter,
        copper: VeinType,
        iron: VeinType,
    ):
        self.vein_toggle = vein_toggle
        self.vein_ridged = vein_ridged
        self.vein_gap = vein_gap
        self.random_deriver = random_deriver
        self.copper = copper
        self.iron = iron

    def resolve(self, pos: df.NoisePos) -> int | None:
        toggle = self.vein_toggle.sample(pos)
        vein = self.copper if toggle > 0.0 else self.iron
        strength = abs(toggle)
        y = pos.block_y
        above = vein.max_y - y
        below = y - vein.min_y
        if above < 0 or below < 0:
            return None

        closest = min(above, below)
        falloff = clamped_map(closest, 0.0, _EDGE_ROUNDOFF_BEGIN, -_MAX_EDGE_ROUNDOFF, 0.0)
        if strength + falloff < _MIN_DENSITY:
            return None

        random = self.random_deriver.split_pos(pos.block_x, y, pos.block_z)
        if random.next_f32() > _RICHNESS_CHANCE:
            return None
        if self.vein_ridged.sample(pos) >= 0.0:
            return None

        chance = clamped_map(strength, _MIN_DENSITY, _RICH_DENSITY, _MIN_CHANCE, _MAX_CHANCE)
        if float(random.next_f32()) < chance and self.vein_gap.sample(pos) > _GAP_THRESHOLD:
            if random.next_f32() < _RAW_BLOCK_CHANCE:
                return vein.raw_ore_block
            return vein.ore
        return vein.filler
