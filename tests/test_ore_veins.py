from perlin.rng import Xoroshiro128PlusPlus
from worldgen import density as df
from worldgen.ore_veins import OreVeinSampler, VeinType, vanilla_vein_types
from worldgen.registry import Registry

COPPER = VeinType(ore=10, raw_ore_block=11, filler=12, min_y=0, max_y=50)
IRON = VeinType(ore=20, raw_ore_block=21, filler=22, min_y=-60, max_y=-8)


def _sampler(toggle, ridged=-1.0, gap=1.0):
    deriver = Xoroshiro128PlusPlus.from_seed(0).next_splitter()
    return OreVeinSampler(df.Constant(toggle), df.Constant(ridged), df.Constant(gap), deriver, COPPER, IRON)


def test_toggle_picks_the_vein_and_its_height_band():
    copper = _sampler(0.9)
    hits = {copper.resolve(df.BlockPos(x, 25, z)) for x in range(8) for z in range(8)}
    assert hits <= {None, 10, 11, 12}
    assert hits & {10, 11, 12}
    assert copper.resolve(df.BlockPos(0, 60, 0)) is None
    assert copper.resolve(df.BlockPos(0, -1, 0)) is None

    iron = _sampler(-0.9)
    hits = {iron.resolve(df.BlockPos(x, -30, z)) for x in range(8) for z in range(8)}
    assert hits <= {None, 20, 21, 22}
    assert iron.resolve(df.BlockPos(0, 25, 0)) is None


def test_weak_or_ridged_veins_leave_the_block_alone():
    assert all(_sampler(0.1).resolve(df.BlockPos(x, 25, 0)) is None for x in range(16))
    assert all(_sampler(0.9, ridged=0.5).resolve(df.BlockPos(x, 25, 0)) is None for x in range(16))


def test_edges_fade_out():
    # Two blocks from the top of the band, falloff pushes a 0.5 vein under the threshold.
    assert all(_sampler(0.5).resolve(df.BlockPos(x, 48, 0)) is None for x in range(16))


def test_result_is_keyed_on_position():
    a = _sampler(0.9)
    b = _sampler(0.9)
    positions = [df.BlockPos(x, 10 + x, -x) for x in range(32)]
    forward = [a.resolve(p) for p in positions]
    backward = [b.resolve(p) for p in reversed(positions)]
    assert forward == backward[::-1]


def test_vanilla_vein_types_resolve_against_blocks():
    blocks = Registry.load().blocks
    copper, iron = vanilla_vein_types(blocks)
    assert copper.ore == blocks.default_state("copper_ore")
    assert iron.filler == blocks.default_state("tuff")
    assert (iron.min_y, iron.max_y) == (-60, -8)
