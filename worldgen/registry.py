"""Data-pack style registries: noise parameters, density functions, settings, blocks.

A registry reads vanilla-format JSON from one or more root directories laid
out like a data pack's ``worldgen`` folder::

    <root>/noise/<path>.json
    <root>/density_function/<path>.json
    <root>/noise_settings/<path>.json
    <root>/blocks.json

Later roots shadow earlier ones, so a user data directory can override or
extend the bundled snapshot entry by entry.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

import numpy as np

from perlin.blended import BlendedNoise
from perlin.double_perlin import NoiseParameters
from worldgen import density as df
from worldgen.errors import (
    MalformedDescriptorError,
    UnknownRegistryKeyError,
    UnsupportedFeatureError,
)
from worldgen.spline import Spline, SplineFunction, SplinePoint

LOGGER = logging.getLogger(__name__)

BUNDLED_DATA_DIR = Path(__file__).resolve().parent / "data"

DEFAULT_NAMESPACE = "minecraft"


def normalize_id(key: str) -> str:
    key = str(key)
    return key if ":" in key else f"{DEFAULT_NAMESPACE}:{key}"


def _id_to_relpath(key: str) -> str:
    namespace, path = normalize_id(key).split(":", 1)
    if namespace == DEFAULT_NAMESPACE:
        return path
    return f"{namespace}/{path}"


@dataclass(frozen=True)
class BlockInfo:
    name: str
    id: int
    default_state_id: int
    first_state_id: int
    last_state_id: int


class BlockRegistry:
    def __init__(self, blocks: Iterable[BlockInfo]):
        self._by_name: dict[str, BlockInfo] = {}
        for b in blocks:
            self._by_name[b.name] = b

    @classmethod
    def from_json(cls, payload: list[dict]) -> "BlockRegistry":
        blocks = []
        for entry in payload:
            default = int(entry["default_state_id"])
            blocks.append(
                BlockInfo(
                    name=normalize_id(entry["name"]),
                    id=int(entry["id"]),
                    default_state_id=default,
                    first_state_id=int(entry.get("first_state_id", default)),
                    last_state_id=int(entry.get("last_state_id", default)),
                )
            )
        return cls(blocks)

    def __contains__(self, name: str) -> bool:
        return normalize_id(name) in self._by_name

    def __len__(self) -> int:
        return len(self._by_name)

    def get(self, name: str) -> BlockInfo:
        try:
            return self._by_name[normalize_id(name)]
        except KeyError:
            raise UnknownRegistryKeyError("block", name) from None

    def default_state(self, name: str) -> int:
        return self.get(name).default_state_id

    def state_from_json(self, payload: Any) -> int:
        """Resolve a ``{"Name": ..., "Properties": ...}`` record to its block's default state."""
        if isinstance(payload, str):
            return self.default_state(payload)
        if not isinstance(payload, dict) or "Name" not in payload:
            raise MalformedDescriptorError(f"bad block state: {payload!r}")
        return self.default_state(payload["Name"])

    def is_valid_state(self, state_id: int) -> bool:
        return any(b.first_state_id <= state_id <= b.last_state_id for b in self._by_name.values())

    def valid_state_ids(self) -> np.ndarray:
        ids = [
            np.arange(b.first_state_id, b.last_state_id + 1, dtype=np.int32)
            for b in self._by_name.values()
        ]
        if not ids:
            return np.zeros(0, dtype=np.int32)
        return np.unique(np.concatenate(ids))


# -- density function codec -----------------------------------------------

_WRAPPER_TYPES = {f"{DEFAULT_NAMESPACE}:{k}" for k in df.WRAPPER_KINDS}
_BINARY_TYPES = {f"{DEFAULT_NAMESPACE}:{k}" for k in df.BINARY_KINDS}
_UNARY_TYPES = {f"{DEFAULT_NAMESPACE}:{k}" for k in df.UNARY_KINDS}


def _field(payload: dict, name: str) -> Any:
    try:
        return payload[name]
    except KeyError:
        raise MalformedDescriptorError(
            f"{payload.get('type', 'density function')} is missing '{name}'"
        ) from None


class Registry:
    """Lazy, memoizing view over the data directories."""

    def __init__(self, roots: Iterable[Path]):
        self.roots = tuple(Path(r) for r in roots)
        self._noise_cache: dict[str, NoiseParameters] = {}
        self._function_cache: dict[str, df.DensityFunction] = {}
        self._settings_cache: dict[str, Any] = {}
        self._blocks: BlockRegistry | None = None

    @classmethod
    def load(cls, datapack_dir: str | Path | None = None) -> "Registry":
        roots = [BUNDLED_DATA_DIR]
        if datapack_dir is not None:
            path = Path(datapack_dir)
            if not path.is_dir():
                raise MalformedDescriptorError(f"data directory not found: {path}")
            roots.append(path)
        LOGGER.debug("registry roots: %s", ", ".join(str(r) for r in roots))
        return cls(roots)

    def _find(self, relpath: str) -> Path | None:
        for root in reversed(self.roots):
            candidate = root / relpath
            if candidate.is_file():
                return candidate
        return None

    def _read_entry(self, registry: str, key: str) -> Any:
        path = self._find(f"{registry}/{_id_to_relpath(key)}.json")
        if path is None:
            raise UnknownRegistryKeyError(registry, normalize_id(key))
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)

    # noise parameters

    def noise_parameters(self, key: str) -> NoiseParameters:
        key = normalize_id(key)
        params = self._noise_cache.get(key)
        if params is None:
            payload = self._read_entry("noise", key)
            try:
                params = NoiseParameters.from_json(payload)
            except (KeyError, TypeError, ValueError) as exc:
                raise MalformedDescriptorError(f"bad noise parameters {key}") from exc
            self._noise_cache[key] = params
        return params

    # density functions

    def density_function(self, key: str) -> df.DensityFunction:
        key = normalize_id(key)
        fn = self._function_cache.get(key)
        if fn is None:
            payload = self._read_entry("density_function", key)
            fn = df.Reference(key, self.parse_density_function(payload))
            self._function_cache[key] = fn
        return fn

    def parse_density_function(self, payload: Any) -> df.DensityFunction:
        if isinstance(payload, bool):
            raise MalformedDescriptorError(f"bad density function: {payload!r}")
        if isinstance(payload, (int, float)):
            return df.Constant(float(payload))
        if isinstance(payload, str):
            return self.density_function(payload)
        if not isinstance(payload, dict):
            raise MalformedDescriptorError(f"bad density function: {payload!r}")

        kind = normalize_id(_field(payload, "type"))
        parse = self.parse_density_function

        if kind in _WRAPPER_TYPES:
            return df.Wrapped(kind.split(":", 1)[1], parse(_field(payload, "argument")))
        if kind in _BINARY_TYPES:
            return df.Binary(
                kind.split(":", 1)[1],
                parse(_field(payload, "argument1")),
                parse(_field(payload, "argument2")),
            )
        if kind in _UNARY_TYPES:
            return df.Unary(kind.split(":", 1)[1], parse(_field(payload, "argument")))

        name = kind.split(":", 1)[1]
        if name == "constant":
            return df.Constant(float(_field(payload, "argument")))
        if name == "clamp":
            return df.Clamp(
                parse(_field(payload, "input")),
                float(_field(payload, "min")),
                float(_field(payload, "max")),
            )
        if name == "range_choice":
            return df.RangeChoice(
                parse(_field(payload, "input")),
                float(_field(payload, "min_inclusive")),
                float(_field(payload, "max_exclusive")),
                parse(_field(payload, "when_in_range")),
                parse(_field(payload, "when_out_of_range")),
            )
        if name == "y_clamped_gradient":
            return df.YClampedGradient(
                int(_field(payload, "from_y")),
                int(_field(payload, "to_y")),
                float(_field(payload, "from_value")),
                float(_field(payload, "to_value")),
            )
        if name == "noise":
            return df.Noise(
                self._noise_holder(_field(payload, "noise")),
                float(_field(payload, "xz_scale")),
                float(_field(payload, "y_scale")),
            )
        if name == "shifted_noise":
            return df.ShiftedNoise(
                parse(_field(payload, "shift_x")),
                parse(_field(payload, "shift_y")),
                parse(_field(payload, "shift_z")),
                float(_field(payload, "xz_scale")),
                float(_field(payload, "y_scale")),
                self._noise_holder(_field(payload, "noise")),
            )
        if name == "shift_a":
            return df.ShiftA(self._noise_holder(_field(payload, "argument")))
        if name == "shift_b":
            return df.ShiftB(self._noise_holder(_field(payload, "argument")))
        if name == "shift":
            return df.Shift(self._noise_holder(_field(payload, "argument")))
        if name == "weird_scaled_sampler":
            return df.WeirdScaledSampler(
                parse(_field(payload, "input")),
                self._noise_holder(_field(payload, "noise")),
                str(_field(payload, "rarity_value_mapper")),
            )
        if name == "old_blended_noise":
            return df.BlendedNoiseLeaf(
                BlendedNoise.unseeded(
                    xz_scale=float(_field(payload, "xz_scale")),
                    y_scale=float(_field(payload, "y_scale")),
                    xz_factor=float(_field(payload, "xz_factor")),
                    y_factor=float(_field(payload, "y_factor")),
                    smear_scale_multiplier=float(_field(payload, "smear_scale_multiplier")),
                )
            )
        if name == "blend_alpha":
            return df.BlendAlpha()
        if name == "blend_offset":
            return df.BlendOffset()
        if name == "beardifier":
            return df.Beardifier()
        if name == "blend_density":
            return df.BlendDensity(parse(_field(payload, "argument")))
        if name == "spline":
            spline = _field(payload, "spline")
            if isinstance(spline, (int, float)) and not isinstance(spline, bool):
                return df.Constant(float(np.float32(spline)))
            return SplineFunction(self.parse_spline(spline))

        raise UnsupportedFeatureError(f"unsupported density function type: {kind}")

    def _noise_holder(self, ref: Any) -> df.NoiseHolder:
        if not isinstance(ref, str):
            raise UnsupportedFeatureError("inline noise parameters are not supported")
        key = normalize_id(ref)
        # Fail at parse time rather than at bind time.
        self.noise_parameters(key)
        return df.NoiseHolder(key)

    def parse_spline(self, payload: Any) -> Spline:
        if not isinstance(payload, dict):
            raise MalformedDescriptorError(f"bad spline: {payload!r}")
        coordinate = self.parse_density_function(_field(payload, "coordinate"))
        points = []
        for point in _field(payload, "points"):
            value = _field(point, "value")
            if isinstance(value, dict):
                value = self.parse_spline(value)
            else:
                value = np.float32(value)
            points.append(
                SplinePoint(
                    location=np.float32(_field(point, "location")),
                    value=value,
                    derivative=np.float32(_field(point, "derivative")),
                )
            )
        try:
            return Spline(coordinate, tuple(points))
        except ValueError as exc:
            raise MalformedDescriptorError(str(exc)) from exc

    # settings and blocks

    def noise_settings(self, key: str):
        from worldgen.router import ChunkGeneratorSettings

        key = normalize_id(key)
        settings = self._settings_cache.get(key)
        if settings is None:
            payload = self._read_entry("noise_settings", key)
            settings = ChunkGeneratorSettings.from_json(payload, self)
            self._settings_cache[key] = settings
        return settings

    @property
    def blocks(self) -> BlockRegistry:
        if self._blocks is None:
            path = self._find("blocks.json")
            if path is None:
                raise UnknownRegistryKeyError("file", "blocks.json")
            with path.open("r", encoding="utf-8") as f:
                self._blocks = BlockRegistry.from_json(json.load(f))
        return self._blocks
