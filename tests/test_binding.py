import pytest

from perlin.double_perlin import NoiseParameters
from worldgen import density as df
from worldgen.binding import SeedBinder, bind
from worldgen.errors import UnknownRegistryKeyError

NOISES = {
    "minecraft:offset": NoiseParameters(-3, (1.0, 1.0, 1.0, 0.0)),
    "minecraft:jagged": NoiseParameters(-16, (1.0,) * 16),
}


def _tree():
    offset = df.NoiseHolder("minecraft:offset")
    return df.add(
        df.Noise(offset, 0.25, 0.25),
        df.mul(df.Constant(0.5), df.ShiftedNoise(df.ShiftA(offset), df.ZERO, df.ShiftB(offset), 1.0, 0.0, df.NoiseHolder("minecraft:jagged"))),
    )


POSITIONS = [df.BlockPos(x, y, z) for x, y, z in [(0, 0, 0), (17, -40, 3), (-1234, 90, 55), (40000, 7, -40000)]]


def test_bound_tree_is_deterministic():
    a = bind(_tree(), 42, NOISES)
    b = bind(_tree(), 42, NOISES)
    assert [a.sample(p) for p in POSITIONS] == [b.sample(p) for p in POSITIONS]


def test_different_seeds_differ():
    a = bind(_tree(), 42, NOISES)
    b = bind(_tree(), 43, NOISES)
    assert [a.sample(p) for p in POSITIONS] != [b.sample(p) for p in POSITIONS]


def test_input_tree_is_left_unbound():
    tree = _tree()
    bound = bind(tree, 42, NOISES)
    assert all(p is None for p in _samplers(tree))
    assert all(p is not None for p in _samplers(bound))
    assert [tree.sample(p) for p in POSITIONS] == [0.0] * len(POSITIONS)


def test_one_sampler_per_noise_id():
    binder = SeedBinder(7, NOISES)
    bound = binder.bind(_tree())
    offsets = {id(h.sampler) for h in _holders(bound) if h.id == "minecraft:offset"}
    assert len(offsets) == 1
    assert binder.sampler_for("minecraft:offset") is next(
        h.sampler for h in _holders(bound) if h.id == "minecraft:offset"
    )


def test_binding_is_independent_of_what_else_is_bound():
    noise = df.Noise(df.NoiseHolder("minecraft:offset"), 1.0, 1.0)
    alone = bind(noise, 99, NOISES)

    binder = SeedBinder(99, NOISES)
    binder.bind(df.Noise(df.NoiseHolder("minecraft:jagged"), 1.0, 1.0))
    after_other = binder.bind(noise)
    assert [alone.sample(p) for p in POSITIONS] == [after_other.sample(p) for p in POSITIONS]


def test_blended_noise_gets_the_terrain_stream():
    from perlin.blended import BlendedNoise

    leaf = df.BlendedNoiseLeaf(
        BlendedNoise.unseeded(xz_scale=0.25, y_scale=0.125, xz_factor=80.0, y_factor=160.0, smear_scale_multiplier=8.0)
    )
    a = bind(leaf, 1, NOISES)
    b = bind(leaf, 1, NOISES)
    c = bind(leaf, 2, NOISES)
    pos = df.BlockPos(100, 64, -100)
    assert a.sample(pos) == b.sample(pos)
    assert a.sample(pos) != c.sample(pos)
    assert a.sampler is not leaf.sampler


def test_unknown_noise_is_reported():
    with pytest.raises(UnknownRegistryKeyError):
        bind(df.Noise(df.NoiseHolder("minecraft:nope")), 0, NOISES)


def _holders(node):
    for n in df.walk(node):
        holder = getattr(n, "noise", None)
        if isinstance(holder, df.NoiseHolder):
            yield holder


def _samplers(node):
    return [h.sampler for h in _holders(node)]
