import json

import pytest

from worldgen import density as df
from worldgen.errors import (
    ConfigurationError,
    MalformedDescriptorError,
    UnknownRegistryKeyError,
    UnsupportedFeatureError,
)
from worldgen.registry import Registry, normalize_id
from worldgen.spline import SplineFunction


@pytest.fixture(scope="module")
def registry():
    return Registry.load()


def test_normalize_id():
    assert normalize_id("overworld/continents") == "minecraft:overworld/continents"
    assert normalize_id("custom:thing") == "custom:thing"


def test_noise_parameters(registry):
    params = registry.noise_parameters("temperature")
    assert params.first_octave == -10
    assert params.amplitudes == (1.5, 0.0, 1.0, 0.0, 0.0, 0.0)
    assert registry.noise_parameters("minecraft:temperature") is params


def test_reference_resolution_and_memo(registry):
    fn = registry.density_function("overworld/continents")
    assert isinstance(fn, df.Reference)
    assert fn.id == "minecraft:overworld/continents"
    assert isinstance(fn.argument, df.Wrapped)
    assert fn.argument.kind == "flat_cache"
    shifted = fn.argument.argument
    assert isinstance(shifted, df.ShiftedNoise)
    assert shifted.noise == df.NoiseHolder("minecraft:continentalness")
    assert shifted.shift_y == df.Constant(0.0)
    assert registry.density_function("minecraft:overworld/continents") is fn


def test_codec_covers_operators(registry):
    parse = registry.parse_density_function
    assert parse(1.5) == df.Constant(1.5)
    assert parse({"type": "minecraft:constant", "argument": 2}) == df.Constant(2.0)
    assert parse({"type": "add", "argument1": 1, "argument2": 2}) == df.add(df.Constant(1.0), df.Constant(2.0))
    assert parse({"type": "minecraft:squeeze", "argument": 0}) == df.Unary("squeeze", df.ZERO)
    assert parse({"type": "minecraft:cache_once", "argument": 0}) == df.Wrapped("cache_once", df.ZERO)
    assert parse({"type": "minecraft:clamp", "input": 3, "min": -1, "max": 1}) == df.Clamp(df.Constant(3.0), -1.0, 1.0)
    assert parse({"type": "minecraft:blend_alpha"}) == df.BlendAlpha()
    assert parse({"type": "minecraft:beardifier"}) == df.Beardifier()
    assert parse({"type": "minecraft:spline", "spline": 0.25}) == df.Constant(0.25)


def test_nested_splines_parse(registry):
    offset = registry.density_function("overworld/offset")
    splines = [n for n in df.walk(offset) if isinstance(n, SplineFunction)]
    assert splines
    assert any(isinstance(p.value, type(splines[0].spline)) for p in splines[0].spline.points)


def test_weird_scaled_sampler_parses(registry):
    fn = registry.density_function("overworld/caves/spaghetti_2d")
    weird = [n for n in df.walk(fn) if isinstance(n, df.WeirdScaledSampler)]
    assert [w.rarity for w in weird] == ["type_2"]


def test_unknown_type_is_unsupported(registry):
    with pytest.raises(UnsupportedFeatureError):
        registry.parse_density_function({"type": "minecraft:end_islands"})


def test_missing_fields_are_malformed(registry):
    with pytest.raises(MalformedDescriptorError):
        registry.parse_density_function({"type": "minecraft:clamp", "input": 0})
    with pytest.raises(MalformedDescriptorError):
        registry.parse_density_function(True)


def test_unknown_keys(registry):
    with pytest.raises(UnknownRegistryKeyError) as info:
        registry.density_function("does_not_exist")
    assert info.value.registry == "density_function"
    assert isinstance(info.value, ConfigurationError)
    with pytest.raises(UnknownRegistryKeyError):
        registry.parse_density_function({"type": "minecraft:noise", "noise": "minecraft:nope", "xz_scale": 1, "y_scale": 1})


def test_inline_noise_parameters_unsupported(registry):
    payload = {"type": "minecraft:noise", "noise": {"firstOctave": 0, "amplitudes": [1]}, "xz_scale": 1, "y_scale": 1}
    with pytest.raises(UnsupportedFeatureError):
        registry.parse_density_function(payload)


def test_noise_settings(registry):
    settings = registry.noise_settings("overworld")
    assert settings.shape.min_y == -64
    assert settings.shape.height == 384
    assert settings.sea_level == 63
    assert settings.default_block == registry.blocks.default_state("stone")
    assert settings.default_fluid == registry.blocks.default_state("water")
    assert settings.aquifers_enabled
    assert settings.ore_veins_enabled
    assert settings.router.final_density != df.ZERO
    assert settings.router.get("vein_toggle") != df.ZERO
    with pytest.raises(MalformedDescriptorError):
        settings.router.get("not_a_field")

    nether = registry.noise_settings("minecraft:nether")
    assert nether.default_block == registry.blocks.default_state("netherrack")
    assert nether.shape.height == 128


def test_blocks(registry):
    blocks = registry.blocks
    assert blocks.default_state("air") == 0
    assert blocks.default_state("minecraft:stone") == 1
    assert blocks.state_from_json({"Name": "minecraft:water", "Properties": {"level": "0"}}) == 86
    assert blocks.is_valid_state(95)
    assert not blocks.is_valid_state(3)
    assert 25964 in blocks.valid_state_ids()
    with pytest.raises(UnknownRegistryKeyError):
        blocks.default_state("minecraft:cobblestone")
    with pytest.raises(MalformedDescriptorError):
        blocks.state_from_json({"Properties": {}})


def test_data_directory_shadows_bundled_entries(tmp_path):
    target = tmp_path / "density_function" / "overworld"
    target.mkdir(parents=True)
    (target / "continents.json").write_text(json.dumps(0.5), encoding="utf-8")
    custom = tmp_path / "density_function" / "custom"
    custom.mkdir(parents=True)
    (custom / "ramp.json").write_text(
        json.dumps({"type": "minecraft:y_clamped_gradient", "from_y": 0, "to_y": 10, "from_value": 0, "to_value": 1}),
        encoding="utf-8",
    )

    registry = Registry.load(tmp_path)
    assert registry.density_function("overworld/continents").argument == df.Constant(0.5)
    assert df.evaluate(registry.density_function("custom/ramp"), 0, 5, 0) == 0.5
    assert registry.density_function("overworld/erosion").id == "minecraft:overworld/erosion"


def test_missing_data_directory(tmp_path):
    with pytest.raises(MalformedDescriptorError):
        Registry.load(tmp_path / "absent")
