"""Run configuration for the fixture driver, read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from worldgen.errors import ConfigurationError
from worldgen.shape import GenerationShapeConfig

ENV_DATAPACK = "TERRAIN_FIXTURES_DATAPACK"
ENV_OUTPUT = "TERRAIN_FIXTURES_OUTPUT"
ENV_WORKERS = "TERRAIN_FIXTURES_WORKERS"
ENV_SETTINGS = "TERRAIN_FIXTURES_SETTINGS"

DEFAULT_SETTINGS_KEY = "minecraft:overworld"
DEFAULT_OUTPUT_DIR = "fixtures_output"


@dataclass(frozen=True)
class FixtureConfig:
    datapack_dir: Path | None = None
    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)
    workers: int = 1
    settings_key: str = DEFAULT_SETTINGS_KEY
    shape: GenerationShapeConfig | None = None

    def __post_init__(self):
        if self.workers < 1:
            raise ConfigurationError(f"workers must be >= 1, got {self.workers}")


def _parse_workers(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{ENV_WORKERS} must be an integer, got {raw!r}") from None


def load_config_from_env(env: Mapping[str, str] | None = None) -> FixtureConfig:
    env = os.environ if env is None else env
    datapack = env.get(ENV_DATAPACK) or None
    return FixtureConfig(
        datapack_dir=Path(datapack) if datapack else None,
        output_dir=Path(env.get(ENV_OUTPUT) or DEFAULT_OUTPUT_DIR),
        workers=_parse_workers(env.get(ENV_WORKERS) or "1"),
        settings_key=env.get(ENV_SETTINGS) or DEFAULT_SETTINGS_KEY,
    )
