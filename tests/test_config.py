from pathlib import Path

import pytest

from worldgen.config import (
    DEFAULT_OUTPUT_DIR,
    DEFAULT_SETTINGS_KEY,
    FixtureConfig,
    load_config_from_env,
)
from worldgen.errors import ConfigurationError


def test_defaults_from_empty_env():
    config = load_config_from_env({})
    assert config.datapack_dir is None
    assert config.output_dir == Path(DEFAULT_OUTPUT_DIR)
    assert config.workers == 1
    assert config.settings_key == DEFAULT_SETTINGS_KEY
    assert config.shape is None


def test_values_from_env(tmp_path):
    config = load_config_from_env(
        {
            "TERRAIN_FIXTURES_DATAPACK": str(tmp_path),
            "TERRAIN_FIXTURES_OUTPUT": str(tmp_path / "out"),
            "TERRAIN_FIXTURES_WORKERS": "4",
            "TERRAIN_FIXTURES_SETTINGS": "minecraft:nether",
        }
    )
    assert config.datapack_dir == tmp_path
    assert config.output_dir == tmp_path / "out"
    assert config.workers == 4
    assert config.settings_key == "minecraft:nether"


def test_bad_workers():
    with pytest.raises(ConfigurationError):
        load_config_from_env({"TERRAIN_FIXTURES_WORKERS": "many"})
    with pytest.raises(ConfigurationError):
        FixtureConfig(workers=0)
