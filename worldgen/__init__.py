from __future__ import annotations

from worldgen.aquifer import FluidLevel, FluidLevelSampler, SeaLevelAquifer
from worldgen.binding import SeedBinder, bind
from worldgen.chunks import ChunkNoiseSampler, generate_chunk
from worldgen.config import FixtureConfig, load_config_from_env
from worldgen.density import BlockPos, DensityFunction, evaluate
from worldgen.errors import (
    ConfigurationError,
    ContractViolationError,
    FixtureError,
    MalformedDescriptorError,
    UnknownRegistryKeyError,
    UnsupportedFeatureError,
)
from worldgen.fixtures import (
    JsonDirectorySink,
    MemorySink,
    RunSummary,
    TestDescriptor,
    parse_descriptors,
    run_descriptor,
    run_fixtures,
    sample_density_lattice,
)
from worldgen.registry import Registry
from worldgen.router import ChunkGeneratorSettings, NoiseConfig, NoiseRouter
from worldgen.shape import OVERWORLD, ChunkPos, GenerationShapeConfig, block_index, local_from_index

__all__ = [
    "BlockPos",
    "ChunkGeneratorSettings",
    "ChunkNoiseSampler",
    "ChunkPos",
    "ConfigurationError",
    "ContractViolationError",
    "DensityFunction",
    "FixtureConfig",
    "FixtureError",
    "FluidLevel",
    "FluidLevelSampler",
    "GenerationShapeConfig",
    "JsonDirectorySink",
    "MalformedDescriptorError",
    "MemorySink",
    "NoiseConfig",
    "NoiseRouter",
    "OVERWORLD",
    "Registry",
    "RunSummary",
    "SeaLevelAquifer",
    "SeedBinder",
    "TestDescriptor",
    "UnknownRegistryKeyError",
    "UnsupportedFeatureError",
    "bind",
    "block_index",
    "evaluate",
    "generate_chunk",
    "load_config_from_env",
    "local_from_index",
    "parse_descriptors",
    "run_descriptor",
    "run_fixtures",
    "sample_density_lattice",
]
