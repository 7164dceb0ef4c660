from perlin.rng import Xoroshiro128PlusPlus
from worldgen import density as df
from worldgen.aquifer import LAVA_LEVEL, FluidLevel, FluidLevelSampler, NoiseAquifer, SeaLevelAquifer

WATER = 86
LAVA = 102
AIR = 0


def test_fluid_level_fills_strictly_below_max_y():
    level = FluidLevel(63, WATER)
    assert level.block_state(62) == WATER
    assert level.block_state(63) == AIR
    assert level.block_state(100, air=7) == 7


def test_lava_below_fixed_line_for_a_normal_sea():
    sampler = FluidLevelSampler.for_settings(63, WATER, LAVA)
    assert sampler.threshold == LAVA_LEVEL
    assert sampler.fluid_level_at(0, -55, 0).state_id == LAVA
    assert sampler.fluid_level_at(0, -54, 0).state_id == WATER
    assert sampler.fluid_level_at(0, 62, 0).block_state(62) == WATER


def test_low_sea_keeps_its_fluid_down_to_sea_level():
    sampler = FluidLevelSampler.for_settings(-60, WATER, LAVA)
    assert sampler.threshold == -60
    assert sampler.fluid_level_at(0, -61, 0).state_id == LAVA
    assert sampler.fluid_level_at(0, -60, 0).state_id == WATER


def test_sea_level_aquifer():
    aquifer = SeaLevelAquifer(FluidLevelSampler.for_settings(63, WATER, LAVA), air=AIR)
    assert aquifer.apply(0, 10, 0, 0.5) is None
    assert aquifer.apply(0, 10, 0, 0.0) == WATER
    assert aquifer.apply(0, 63, 0, -1.0) == AIR
    assert aquifer.apply(0, 100, 0, -1.0) == AIR
    assert aquifer.apply(0, -60, 0, -1.0) == LAVA
    assert aquifer.apply_at(df.BlockPos(0, 10, 0), -1.0) == WATER


def _noise_aquifer(
    floodedness,
    *,
    sea_level=63,
    spread=0.0,
    fluid_type=0.0,
    erosion=0.0,
    depth=0.0,
    surface=10_000,
    seed=0,
):
    return NoiseAquifer(
        0,
        0,
        -64,
        384,
        barrier=df.Constant(0.0),
        floodedness=df.Constant(floodedness),
        spread=df.Constant(spread),
        fluid_type=df.Constant(fluid_type),
        erosion=df.Constant(erosion),
        depth=df.Constant(depth),
        random_deriver=Xoroshiro128PlusPlus.from_seed(seed).next_splitter(),
        fluid_sampler=FluidLevelSampler.for_settings(sea_level, WATER, LAVA),
        surface_height=lambda x, z: surface,
        lava=LAVA,
        water=WATER,
        air=AIR,
    )


COLUMNS = [(0, 0), (5, 11), (15, 15), (8, 2)]


def test_flooded_aquifer_matches_the_sea():
    aquifer = _noise_aquifer(1.0)
    sea = SeaLevelAquifer(FluidLevelSampler.for_settings(63, WATER, LAVA), air=AIR)
    for x, z in COLUMNS:
        for y in range(0, 120, 3):
            assert aquifer.apply(x, y, z, -0.5) == sea.apply(x, y, z, -0.5)
        assert aquifer.apply(x, 20, z, 0.5) is None
        assert aquifer.apply(x, -60, z, -0.5) == LAVA


def test_dry_aquifer_leaves_caves_empty_below_sea_level():
    aquifer = _noise_aquifer(-1.0)
    for x, z in COLUMNS:
        assert all(aquifer.apply(x, y, z, -0.5) == AIR for y in range(-50, 120, 5))


def test_deep_dark_is_always_dry():
    aquifer = _noise_aquifer(1.0, erosion=-0.5, depth=1.0)
    for x, z in COLUMNS:
        assert all(aquifer.apply(x, y, z, -0.5) == AIR for y in range(-50, 60, 5))


def test_partly_flooded_aquifer_has_its_own_surface():
    # floor(0.93 * 10 / 3) * 3 = 9 above the middle of the 40-block band at -40..-1.
    water = _noise_aquifer(0.6, sea_level=-60, spread=0.93, fluid_type=0.0)
    lava = _noise_aquifer(0.6, sea_level=-60, spread=0.93, fluid_type=0.5)
    for x, z in COLUMNS:
        for y in range(-25, -13):
            assert water.apply(x, y, z, -0.5) == WATER
            assert lava.apply(x, y, z, -0.5) == LAVA


def test_aquifer_is_deterministic_per_seed():
    a = _noise_aquifer(0.6, spread=0.4)
    b = _noise_aquifer(0.6, spread=0.4)
    sample = [(x, y, z) for x in range(0, 16, 3) for y in range(-40, 80, 7) for z in range(0, 16, 5)]
    assert [a.apply(*p, -0.1) for p in sample] == [b.apply(*p, -0.1) for p in sample]
