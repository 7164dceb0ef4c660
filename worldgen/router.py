from __future__ import annotations

from dataclasses import dataclass, fields
from typing import TYPE_CHECKING

from perlin.rng import XoroshiroSplitter
from worldgen import density as df
from worldgen.binding import SeedBinder
from worldgen.errors import (
    MalformedDescriptorError,
    UnknownRegistryKeyError,
    UnsupportedFeatureError,
)
from worldgen.shape import GenerationShapeConfig

if TYPE_CHECKING:
    from worldgen.registry import Registry


@dataclass(frozen=True)
class NoiseRouter:
    barrier: df.DensityFunction = df.ZERO
    fluid_level_floodedness: df.DensityFunction = df.ZERO
    fluid_level_spread: df.DensityFunction = df.ZERO
    lava: df.DensityFunction = df.ZERO
    temperature: df.DensityFunction = df.ZERO
    vegetation: df.DensityFunction = df.ZERO
    continents: df.DensityFunction = df.ZERO
    erosion: df.DensityFunction = df.ZERO
    depth: df.DensityFunction = df.ZERO
    ridges: df.DensityFunction = df.ZERO
    initial_density_without_jaggedness: df.DensityFunction = df.ZERO
    final_density: df.DensityFunction = df.ZERO
    vein_toggle: df.DensityFunction = df.ZERO
    vein_ridged: df.DensityFunction = df.ZERO
    vein_gap: df.DensityFunction = df.ZERO

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def from_json(cls, payload: dict, registry: "Registry") -> "NoiseRouter":
        if not isinstance(payload, dict):
            raise MalformedDescriptorError("noise_router must be an object")
        unknown = set(payload) - set(cls.field_names())
        if unknown:
            raise MalformedDescriptorError(f"unknown noise_router fields: {sorted(unknown)}")
        return cls(**{k: registry.parse_density_function(v) for k, v in payload.items()})

    def get(self, name: str) -> df.DensityFunction:
        if name not in self.field_names():
            raise MalformedDescriptorError(f"no router function named {name!r}")
        return getattr(self, name)

    def map(self, visitor) -> "NoiseRouter":
        """Apply ``visitor`` to every field, in declaration order."""
        return NoiseRouter(**{name: visitor(getattr(self, name)) for name in self.field_names()})


@dataclass(frozen=True)
class ChunkGeneratorSettings:
    shape: GenerationShapeConfig
    default_block: int
    default_fluid: int
    sea_level: int
    aquifers_enabled: bool
    ore_veins_enabled: bool
    legacy_random_source: bool
    router: NoiseRouter

    @classmethod
    def from_json(cls, payload: dict, registry: "Registry") -> "ChunkGeneratorSettings":
        try:
            blocks = registry.blocks
            return cls(
                shape=GenerationShapeConfig.from_json(payload["noise"]),
                default_block=blocks.state_from_json(payload["default_block"]),
                default_fluid=blocks.state_from_json(payload["default_fluid"]),
                sea_level=int(payload["sea_level"]),
                aquifers_enabled=bool(payload.get("aquifers_enabled", False)),
                ore_veins_enabled=bool(payload.get("ore_veins_enabled", False)),
                legacy_random_source=bool(payload.get("legacy_random_source", False)),
                router=NoiseRouter.from_json(payload["noise_router"], registry),
            )
        except UnknownRegistryKeyError:
            raise
        except KeyError as exc:
            raise MalformedDescriptorError(f"noise settings missing {exc}") from None


@dataclass(frozen=True)
class NoiseConfig:
    """A seed-bound router plus the random derivers ore veins and aquifers draw from."""

    seed: int
    settings: ChunkGeneratorSettings
    router: NoiseRouter
    ore_random_deriver: XoroshiroSplitter
    aquifer_random_deriver: XoroshiroSplitter

    @classmethod
    def create(
        cls, settings: ChunkGeneratorSettings, registry: "Registry", seed: int
    ) -> "NoiseConfig":
        if settings.legacy_random_source:
            raise UnsupportedFeatureError("legacy random source is not supported")
        binder = SeedBinder(int(seed), registry.noise_parameters)
        router = settings.router.map(binder.bind)
        return cls(
            seed=int(seed),
            settings=settings,
            router=router,
            ore_random_deriver=binder.splitter.split_id("ore").next_splitter(),
            aquifer_random_deriver=binder.splitter.split_id("aquifer").next_splitter(),
        )
