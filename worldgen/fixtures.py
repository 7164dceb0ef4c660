"""Golden-fixture driver: descriptors in, ordered sample arrays out.

Each descriptor is an independent test case. A bad descriptor or an
unresolvable registry key skips that case only; the rest of the batch
still runs and still gets written.
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import Future, ProcessPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Iterator, Protocol, Sequence, Union

from viz.export import fixture_to_json_bytes
from worldgen import density as df
from worldgen.binding import bind
from worldgen.chunks import ChunkNoiseSampler
from worldgen.config import DEFAULT_SETTINGS_KEY
from worldgen.errors import (
    ConfigurationError,
    ContractViolationError,
    MalformedDescriptorError,
)
from worldgen.registry import Registry
from worldgen.router import NoiseConfig
from worldgen.shape import CHUNK_WIDTH, OVERWORLD, ChunkPos, GenerationShapeConfig

LOGGER = logging.getLogger(__name__)

KIND_DENSITY = "density"
KIND_CONFIG = "config"
KIND_CHUNK = "chunk"

DESCRIPTOR_FILES = {
    "density_function_tests.json": KIND_DENSITY,
    "config_function_tests.json": KIND_CONFIG,
    "chunk_tests.json": KIND_CHUNK,
}

STATUS_WRITTEN = "written"
STATUS_SKIPPED = "skipped"
STATUS_FATAL = "fatal"

_I64_MIN, _I64_MAX = -(1 << 63), (1 << 63) - 1
_I32_MIN, _I32_MAX = -(1 << 31), (1 << 31) - 1


@dataclass(frozen=True)
class TestDescriptor:
    __test__ = False

    name: str
    seed: int
    x: int
    z: int
    kind: str
    function: str | None = None
    registry_key: str | None = None


def _int_field(record: dict, key: str, lo: int, hi: int) -> int:
    if key not in record:
        raise MalformedDescriptorError(f"descriptor is missing '{key}'")
    value = record[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedDescriptorError(f"'{key}' must be an integer, got {value!r}")
    if not lo <= value <= hi:
        raise MalformedDescriptorError(f"'{key}' out of range: {value}")
    return value


def parse_descriptor(record: Any, kind: str | None = None) -> TestDescriptor:
    if not isinstance(record, dict):
        raise MalformedDescriptorError(f"descriptor must be an object, got {type(record).__name__}")
    name = record.get("name")
    if not isinstance(name, str) or not name or "/" in name or "\\" in name or name in (".", ".."):
        raise MalformedDescriptorError(f"bad descriptor name: {name!r}")

    seed = _int_field(record, "seed", _I64_MIN, _I64_MAX)
    x = _int_field(record, "x", _I32_MIN, _I32_MAX)
    z = _int_field(record, "z", _I32_MIN, _I32_MAX)

    function = record.get("function")
    registry_key = record.get("registry_key")
    for key, value in (("function", function), ("registry_key", registry_key)):
        if value is not None and (not isinstance(value, str) or not value):
            raise MalformedDescriptorError(f"'{key}' must be a non-empty string in {name}")

    if kind is None:
        kind = record.get("kind")
    if kind is None:
        if function is not None and registry_key is not None:
            raise MalformedDescriptorError(f"{name}: give either 'function' or 'registry_key'")
        if registry_key is not None:
            kind = KIND_DENSITY
        elif function is not None:
            kind = KIND_CONFIG
        else:
            raise MalformedDescriptorError(f"{name}: needs 'function' or 'registry_key'")

    if kind == KIND_DENSITY and registry_key is None:
        raise MalformedDescriptorError(f"{name}: density tests need 'registry_key'")
    if kind == KIND_CONFIG and function is None:
        raise MalformedDescriptorError(f"{name}: config tests need 'function'")
    if kind not in (KIND_DENSITY, KIND_CONFIG, KIND_CHUNK):
        raise MalformedDescriptorError(f"{name}: unknown test kind {kind!r}")

    return TestDescriptor(
        name=name,
        seed=seed,
        x=x,
        z=z,
        kind=kind,
        function=function,
        registry_key=registry_key,
    )


ParsedRecord = Union[TestDescriptor, MalformedDescriptorError]


def parse_descriptors(records: Iterable[Any], kind: str | None = None) -> Iterator[ParsedRecord]:
    """Yield a descriptor per record, or the error that record raised."""
    for i, record in enumerate(records):
        try:
            yield parse_descriptor(record, kind)
        except MalformedDescriptorError as exc:
            LOGGER.error("descriptor #%d rejected: %s", i, exc)
            yield exc


def read_descriptor_file(path: str | Path, kind: str | None = None) -> list[ParsedRecord]:
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            records = json.load(f)
    except (OSError, ValueError) as exc:
        raise MalformedDescriptorError(f"{path}: {exc}") from exc
    if not isinstance(records, list):
        raise MalformedDescriptorError(f"{path}: expected a JSON array of descriptors")
    return list(parse_descriptors(records, kind))


def discover_descriptors(directory: str | Path) -> list[ParsedRecord]:
    """Read every known descriptor file present in ``directory``.

    A file that cannot be read contributes a single error record, so the
    other files still run and the bad one is reported as skipped.
    """
    directory = Path(directory)
    parsed: list[ParsedRecord] = []
    for filename, kind in DESCRIPTOR_FILES.items():
        path = directory / filename
        if not path.is_file():
            LOGGER.info("no %s in %s", filename, directory)
            continue
        try:
            parsed.extend(read_descriptor_file(path, kind))
        except MalformedDescriptorError as exc:
            LOGGER.error("descriptor file rejected: %s", exc)
            parsed.append(exc)
    return parsed


# -- sampling --------------------------------------------------------------


def sample_density_lattice(
    function: df.DensityFunction,
    chunk_pos: ChunkPos,
    shape: GenerationShapeConfig = OVERWORLD,
) -> list[list]:
    """``[x, y, z, value]`` over the chunk's 17 x (height + 1) x 17 lattice.

    x is the outer loop, then y, then z; all coordinates are absolute.
    """
    out: list[list] = []
    for dx in range(CHUNK_WIDTH + 1):
        x = chunk_pos.start_x + dx
        for y in range(shape.min_y, shape.max_y + 1):
            for dz in range(CHUNK_WIDTH + 1):
                z = chunk_pos.start_z + dz
                out.append([x, y, z, function.sample(df.BlockPos(x, y, z))])
    return out


@dataclass(frozen=True)
class FixtureResult:
    name: str
    status: str
    payload: Any = None
    error: str | None = None


def _produce(
    descriptor: TestDescriptor,
    registry: Registry,
    settings_key: str,
    shape: GenerationShapeConfig | None,
) -> Any:
    chunk_pos = ChunkPos(descriptor.x, descriptor.z)
    shape = shape if shape is not None else OVERWORLD

    if descriptor.kind == KIND_DENSITY:
        tree = registry.density_function(descriptor.registry_key)
        bound = bind(tree, descriptor.seed, registry.noise_parameters)
        return sample_density_lattice(bound, chunk_pos, shape)

    settings = registry.noise_settings(settings_key)
    config = NoiseConfig.create(settings, registry, descriptor.seed)
    if descriptor.kind == KIND_CONFIG:
        return sample_density_lattice(config.router.get(descriptor.function), chunk_pos, shape)

    sampler = ChunkNoiseSampler(config, chunk_pos, shape, blocks=registry.blocks)
    return sampler.populate_noise().tolist()


def run_descriptor(
    descriptor: TestDescriptor,
    registry: Registry,
    *,
    settings_key: str = DEFAULT_SETTINGS_KEY,
    shape: GenerationShapeConfig | None = None,
) -> FixtureResult:
    try:
        payload = _produce(descriptor, registry, settings_key, shape)
    except ConfigurationError as exc:
        LOGGER.error("skipping %s: %s", descriptor.name, exc)
        return FixtureResult(descriptor.name, STATUS_SKIPPED, error=str(exc))
    except ContractViolationError as exc:
        LOGGER.exception("sampling %s aborted", descriptor.name)
        return FixtureResult(descriptor.name, STATUS_FATAL, error=str(exc))
    except Exception as exc:
        LOGGER.exception("fixture %s failed", descriptor.name)
        return FixtureResult(descriptor.name, STATUS_FATAL, error=f"{type(exc).__name__}: {exc}")
    return FixtureResult(descriptor.name, STATUS_WRITTEN, payload=payload)


# -- sinks -----------------------------------------------------------------


class FixtureSink(Protocol):
    def write(self, name: str, payload: Any) -> None: ...  # pragma: no cover


class JsonDirectorySink:
    """Writes ``<name>.json`` per fixture, byte-for-byte reproducible."""

    def __init__(self, output_dir: str | Path):
        self.output_dir = Path(output_dir)

    def write(self, name: str, payload: Any) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / f"{name}.json"
        path.write_bytes(fixture_to_json_bytes(payload))
        LOGGER.info("wrote %s", path.resolve())
        return path


class MemorySink:
    def __init__(self):
        self.fixtures: dict[str, Any] = {}

    def write(self, name: str, payload: Any) -> None:
        self.fixtures[name] = payload


@dataclass
class RunSummary:
    written: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    fatal: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.skipped and not self.fatal

    def record(self, result: FixtureResult) -> None:
        {
            STATUS_WRITTEN: self.written,
            STATUS_SKIPPED: self.skipped,
            STATUS_FATAL: self.fatal,
        }[result.status].append(result.name)


# One registry per worker process, built on first use.
_WORKER_REGISTRY: dict[str | None, Registry] = {}


def _run_in_worker(
    descriptor: TestDescriptor,
    datapack_dir: str | None,
    settings_key: str,
    shape: GenerationShapeConfig | None,
) -> FixtureResult:
    registry = _WORKER_REGISTRY.get(datapack_dir)
    if registry is None:
        registry = Registry.load(datapack_dir)
        _WORKER_REGISTRY[datapack_dir] = registry
    return run_descriptor(descriptor, registry, settings_key=settings_key, shape=shape)


def run_fixtures(
    items: Iterable[ParsedRecord],
    sink: FixtureSink,
    *,
    registry: Registry | None = None,
    datapack_dir: str | Path | None = None,
    settings_key: str = DEFAULT_SETTINGS_KEY,
    shape: GenerationShapeConfig | None = None,
    workers: int = 1,
) -> RunSummary:
    """Run every descriptor and hand each produced payload to ``sink``.

    Malformed records (as yielded by ``parse_descriptors``) count as skipped.
    With ``workers > 1`` cases run in separate processes, each loading its
    own registry from ``datapack_dir``; results are still written in input
    order.
    """
    summary = RunSummary()
    descriptors: list[TestDescriptor] = []
    for item in items:
        if isinstance(item, TestDescriptor):
            descriptors.append(item)
        else:
            summary.skipped.append(f"<malformed: {item}>")

    if workers <= 1:
        if registry is None:
            registry = Registry.load(datapack_dir)
        results: Iterable[FixtureResult] = (
            run_descriptor(d, registry, settings_key=settings_key, shape=shape) for d in descriptors
        )
        _collect(results, sink, summary)
    else:
        pack = str(datapack_dir) if datapack_dir is not None else None
        with ProcessPoolExecutor(max_workers=int(workers)) as executor:
            futures = [
                executor.submit(_run_in_worker, d, pack, settings_key, shape) for d in descriptors
            ]
            _collect(results_from_futures(descriptors, futures), sink, summary)

    LOGGER.info(
        "fixtures: %d written, %d skipped, %d fatal",
        len(summary.written),
        len(summary.skipped),
        len(summary.fatal),
    )
    return summary


def results_from_futures(
    descriptors: Sequence[TestDescriptor], futures: Sequence[Future]
) -> Iterator[FixtureResult]:
    """Yield each future's result in order; a worker that died counts as fatal for its case."""
    for descriptor, future in zip(descriptors, futures):
        try:
            yield future.result()
        except Exception as exc:
            LOGGER.exception("worker for %s failed", descriptor.name)
            yield FixtureResult(descriptor.name, STATUS_FATAL, error=f"{type(exc).__name__}: {exc}")


def _collect(results: Iterable[FixtureResult], sink: FixtureSink, summary: RunSummary) -> None:
    for result in results:
        if result.status == STATUS_WRITTEN:
            sink.write(result.name, result.payload)
        summary.record(result)
