"""Density-function tree.

Every node is an immutable, structurally comparable dataclass. A node's
value at a block position is a pure function of the node and the position;
the only state lives in the chunk-scoped wrappers that ``worldgen.chunks``
substitutes for ``Wrapped`` markers during a grid walk.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Callable, Protocol

from perlin.blended import BlendedNoise
from perlin.core import clamped_map
from perlin.double_perlin import DoublePerlin

_INF = math.inf


class NoisePos(Protocol):
    @property
    def block_x(self) -> int: ...  # pragma: no cover

    @property
    def block_y(self) -> int: ...  # pragma: no cover

    @property
    def block_z(self) -> int: ...  # pragma: no cover


class Applier(Protocol):
    def at(self, index: int) -> NoisePos: ...  # pragma: no cover

    def fill(self, densities: list[float], function: "DensityFunction") -> None: ...  # pragma: no cover


@dataclass(frozen=True)
class BlockPos:
    block_x: int
    block_y: int
    block_z: int


def java_min(a: float, b: float) -> float:
    if a != a:
        return a
    if a == 0.0 and b == 0.0 and math.copysign(1.0, b) < 0.0:
        return b
    return a if a <= b else b


def java_max(a: float, b: float) -> float:
    if a != a:
        return a
    if a == 0.0 and b == 0.0 and math.copysign(1.0, a) < 0.0:
        return b
    return a if a >= b else b


def java_clamp(value: float, lo: float, hi: float) -> float:
    return lo if value < lo else java_min(value, hi)


Visitor = Callable[["DensityFunction"], "DensityFunction"]


class DensityFunction:
    """Base class of all nodes."""

    def sample(self, pos: NoisePos) -> float:
        raise NotImplementedError

    def fill(self, densities: list[float], applier: Applier) -> None:
        applier.fill(densities, self)

    @property
    def min_value(self) -> float:
        return -_INF

    @property
    def max_value(self) -> float:
        return _INF

    def map_children(self, fn: Visitor) -> "DensityFunction":
        return self

    def map(self, visitor: Visitor) -> "DensityFunction":
        """Rebuild bottom-up, handing every rebuilt node to ``visitor``."""
        return visitor(self.map_children(lambda child: child.map(visitor)))


def evaluate(node: DensityFunction, x: int, y: int, z: int) -> float:
    return node.sample(BlockPos(int(x), int(y), int(z)))


# -- noise holders ---------------------------------------------------------


@dataclass(frozen=True)
class NoiseHolder:
    """A noise parameters id plus the sampler bound to it, if any."""

    id: str
    sampler: DoublePerlin | None = None

    def sample(self, x: float, y: float, z: float) -> float:
        if self.sampler is None:
            return 0.0
        return self.sampler.sample(x, y, z)

    @property
    def max_value(self) -> float:
        if self.sampler is None:
            return 2.0
        return self.sampler.max_value


# -- leaves ----------------------------------------------------------------


@dataclass(frozen=True)
class Constant(DensityFunction):
    value: float

    def sample(self, pos: NoisePos) -> float:
        return self.value

    def fill(self, densities: list[float], applier: Applier) -> None:
        for i in range(len(densities)):
            densities[i] = self.value

    @property
    def min_value(self) -> float:
        return self.value

    @property
    def max_value(self) -> float:
        return self.value


ZERO = Constant(0.0)


@dataclass(frozen=True)
class YClampedGradient(DensityFunction):
    from_y: int
    to_y: int
    from_value: float
    to_value: float

    def sample(self, pos: NoisePos) -> float:
        return clamped_map(
            float(pos.block_y),
            float(self.from_y),
            float(self.to_y),
            self.from_value,
            self.to_value,
        )

    @property
    def min_value(self) -> float:
        return min(self.from_value, self.to_value)

    @property
    def max_value(self) -> float:
        return max(self.from_value, self.to_value)


@dataclass(frozen=True)
class Noise(DensityFunction):
    noise: NoiseHolder
    xz_scale: float = 1.0
    y_scale: float = 1.0

    def sample(self, pos: NoisePos) -> float:
        return self.noise.sample(
            pos.block_x * self.xz_scale,
            pos.block_y * self.y_scale,
            pos.block_z * self.xz_scale,
        )

    @property
    def min_value(self) -> float:
        return -self.noise.max_value

    @property
    def max_value(self) -> float:
        return self.noise.max_value


def _offset_sample(noise: NoiseHolder, x: float, y: float, z: float) -> float:
    return noise.sample(x * 0.25, y * 0.25, z * 0.25) * 4.0


@dataclass(frozen=True)
class ShiftA(DensityFunction):
    noise: NoiseHolder

    def sample(self, pos: NoisePos) -> float:
        return _offset_sample(self.noise, float(pos.block_x), 0.0, float(pos.block_z))

    @property
    def min_value(self) -> float:
        return -self.max_value

    @property
    def max_value(self) -> float:
        return self.noise.max_value * 4.0


@dataclass(frozen=True)
class ShiftB(DensityFunction):
    noise: NoiseHolder

    def sample(self, pos: NoisePos) -> float:
        return _offset_sample(self.noise, float(pos.block_z), float(pos.block_x), 0.0)

    @property
    def min_value(self) -> float:
        return -self.max_value

    @property
    def max_value(self) -> float:
        return self.noise.max_value * 4.0


@dataclass(frozen=True)
class Shift(DensityFunction):
    noise: NoiseHolder

    def sample(self, pos: NoisePos) -> float:
        return _offset_sample(
            self.noise, float(pos.block_x), float(pos.block_y), float(pos.block_z)
        )

    @property
    def min_value(self) -> float:
        return -self.max_value

    @property
    def max_value(self) -> float:
        return self.noise.max_value * 4.0


@dataclass(frozen=True)
class BlendedNoiseLeaf(DensityFunction):
    """The terrain-shaping leaf; needs its own random stream once bound."""

    sampler: BlendedNoise

    def sample(self, pos: NoisePos) -> float:
        return self.sampler.sample(pos.block_x, pos.block_y, pos.block_z)

    @property
    def min_value(self) -> float:
        return -self.sampler.max_value

    @property
    def max_value(self) -> float:
        return self.sampler.max_value


@dataclass(frozen=True)
class BlendAlpha(DensityFunction):
    def sample(self, pos: NoisePos) -> float:
        return 1.0

    @property
    def min_value(self) -> float:
        return 1.0

    @property
    def max_value(self) -> float:
        return 1.0


@dataclass(frozen=True)
class BlendOffset(DensityFunction):
    def sample(self, pos: NoisePos) -> float:
        return 0.0

    @property
    def min_value(self) -> float:
        return 0.0

    @property
    def max_value(self) -> float:
        return 0.0


@dataclass(frozen=True)
class Beardifier(DensityFunction):
    """Structure terrain adaptation; contributes nothing unless replaced."""

    def sample(self, pos: NoisePos) -> float:
        return 0.0

    @property
    def min_value(self) -> float:
        return 0.0

    @property
    def max_value(self) -> float:
        return 0.0


# -- combinators -----------------------------------------------------------

BINARY_KINDS = ("add", "mul", "min", "max")


@dataclass(frozen=True)
class Binary(DensityFunction):
    kind: str
    argument1: DensityFunction
    argument2: DensityFunction

    def __post_init__(self):
        if self.kind not in BINARY_KINDS:
            raise ValueError(f"unknown binary operation: {self.kind}")

    def _scaling(self) -> tuple[DensityFunction, float] | None:
        """``(input, factor)`` when a mul has a constant operand.

        Such a product is a plain scale of the other side: it always samples
        the input, and a zero factor keeps the input's sign.
        """
        if self.kind != "mul":
            return None
        if isinstance(self.argument1, Constant):
            return self.argument2, self.argument1.value
        if isinstance(self.argument2, Constant):
            return self.argument1, self.argument2.value
        return None

    def sample(self, pos: NoisePos) -> float:
        scaling = self._scaling()
        if scaling is not None:
            return scaling[0].sample(pos) * scaling[1]
        d = self.argument1.sample(pos)
        kind = self.kind
        if kind == "add":
            return d + self.argument2.sample(pos)
        if kind == "mul":
            return 0.0 if d == 0.0 else d * self.argument2.sample(pos)
        if kind == "min":
            if d < self.argument2.min_value:
                return d
            return java_min(d, self.argument2.sample(pos))
        if d > self.argument2.max_value:
            return d
        return java_max(d, self.argument2.sample(pos))

    def fill(self, densities: list[float], applier: Applier) -> None:
        scaling = self._scaling()
        if scaling is not None:
            function, factor = scaling
            function.fill(densities, applier)
            for i, d in enumerate(densities):
                densities[i] = d * factor
            return
        self.argument1.fill(densities, applier)
        kind = self.kind
        if kind == "add":
            other = [0.0] * len(densities)
            self.argument2.fill(other, applier)
            for i, v in enumerate(other):
                densities[i] += v
        elif kind == "mul":
            for i, d in enumerate(densities):
                densities[i] = 0.0 if d == 0.0 else d * self.argument2.sample(applier.at(i))
        elif kind == "min":
            bound = self.argument2.min_value
            for i, d in enumerate(densities):
                if not d < bound:
                    densities[i] = java_min(d, self.argument2.sample(applier.at(i)))
        else:
            bound = self.argument2.max_value
            for i, d in enumerate(densities):
                if not d > bound:
                    densities[i] = java_max(d, self.argument2.sample(applier.at(i)))

    @property
    def min_value(self) -> float:
        return self._bounds()[0]

    @property
    def max_value(self) -> float:
        return self._bounds()[1]

    def _bounds(self) -> tuple[float, float]:
        a_lo, a_hi = self.argument1.min_value, self.argument1.max_value
        b_lo, b_hi = self.argument2.min_value, self.argument2.max_value
        if self.kind == "add":
            return a_lo + b_lo, a_hi + b_hi
        if self.kind == "min":
            return min(a_lo, b_lo), min(a_hi, b_hi)
        if self.kind == "max":
            return max(a_lo, b_lo), max(a_hi, b_hi)
        products = [p for p in (a_lo * b_lo, a_lo * b_hi, a_hi * b_lo, a_hi * b_hi) if p == p]
        if not products:
            return -_INF, _INF
        return min(products), max(products)

    def map_children(self, fn: Visitor) -> DensityFunction:
        return replace(self, argument1=fn(self.argument1), argument2=fn(self.argument2))


def add(a: DensityFunction, b: DensityFunction) -> Binary:
    return Binary("add", a, b)


def mul(a: DensityFunction, b: DensityFunction) -> Binary:
    return Binary("mul", a, b)


UNARY_KINDS = ("abs", "square", "cube", "half_negative", "quarter_negative", "squeeze")


def _apply_unary(kind: str, d: float) -> float:
    if kind == "abs":
        return abs(d)
    if kind == "square":
        return d * d
    if kind == "cube":
        return d * d * d
    if kind == "half_negative":
        return d if d > 0.0 else d * 0.5
    if kind == "quarter_negative":
        return d if d > 0.0 else d * 0.25
    e = java_clamp(d, -1.0, 1.0)
    return e / 2.0 - e * e * e / 24.0


@dataclass(frozen=True)
class Unary(DensityFunction):
    kind: str
    argument: DensityFunction

    def __post_init__(self):
        if self.kind not in UNARY_KINDS:
            raise ValueError(f"unknown unary operation: {self.kind}")

    def sample(self, pos: NoisePos) -> float:
        return _apply_unary(self.kind, self.argument.sample(pos))

    def fill(self, densities: list[float], applier: Applier) -> None:
        self.argument.fill(densities, applier)
        for i, d in enumerate(densities):
            densities[i] = _apply_unary(self.kind, d)

    @property
    def min_value(self) -> float:
        lo = _apply_unary(self.kind, self.argument.min_value)
        hi = _apply_unary(self.kind, self.argument.max_value)
        if self.kind in ("abs", "square") and self.argument.min_value < 0.0 < self.argument.max_value:
            return 0.0
        return min(lo, hi)

    @property
    def max_value(self) -> float:
        lo = _apply_unary(self.kind, self.argument.min_value)
        hi = _apply_unary(self.kind, self.argument.max_value)
        return max(lo, hi)

    def map_children(self, fn: Visitor) -> DensityFunction:
        return replace(self, argument=fn(self.argument))


@dataclass(frozen=True)
class Clamp(DensityFunction):
    input: DensityFunction
    min: float
    max: float

    def sample(self, pos: NoisePos) -> float:
        return java_clamp(self.input.sample(pos), self.min, self.max)

    def fill(self, densities: list[float], applier: Applier) -> None:
        self.input.fill(densities, applier)
        for i, d in enumerate(densities):
            densities[i] = java_clamp(d, self.min, self.max)

    @property
    def min_value(self) -> float:
        return self.min

    @property
    def max_value(self) -> float:
        return self.max

    def map_children(self, fn: Visitor) -> DensityFunction:
        return replace(self, input=fn(self.input))


@dataclass(frozen=True)
class RangeChoice(DensityFunction):
    input: DensityFunction
    min_inclusive: float
    max_exclusive: float
    when_in_range: DensityFunction
    when_out_of_range: DensityFunction

    def sample(self, pos: NoisePos) -> float:
        d = self.input.sample(pos)
        if self.min_inclusive <= d < self.max_exclusive:
            return self.when_in_range.sample(pos)
        return self.when_out_of_range.sample(pos)

    def fill(self, densities: list[float], applier: Applier) -> None:
        self.input.fill(densities, applier)
        for i, d in enumerate(densities):
            if self.min_inclusive <= d < self.max_exclusive:
                densities[i] = self.when_in_range.sample(applier.at(i))
            else:
                densities[i] = self.when_out_of_range.sample(applier.at(i))

    @property
    def min_value(self) -> float:
        return min(self.when_in_range.min_value, self.when_out_of_range.min_value)

    @property
    def max_value(self) -> float:
        return max(self.when_in_range.max_value, self.when_out_of_range.max_value)

    def map_children(self, fn: Visitor) -> DensityFunction:
        return replace(
            self,
            input=fn(self.input),
            when_in_range=fn(self.when_in_range),
            when_out_of_range=fn(self.when_out_of_range),
        )


def _tunnel_rarity(value: float) -> float:
    if value < -0.5:
        return 0.75
    if value < 0.0:
        return 1.0
    if value < 0.5:
        return 1.5
    return 2.0


def _cave_rarity(value: float) -> float:
    if value < -0.75:
        return 0.5
    if value < -0.5:
        return 0.75
    if value < 0.5:
        return 1.0
    if value < 0.75:
        return 2.0
    return 3.0


RARITY_MAPPERS = {
    "type_1": (_tunnel_rarity, 2.0),
    "type_2": (_cave_rarity, 3.0),
}


@dataclass(frozen=True)
class WeirdScaledSampler(DensityFunction):
    input: DensityFunction
    noise: NoiseHolder
    rarity: str

    def __post_init__(self):
        if self.rarity not in RARITY_MAPPERS:
            raise ValueError(f"unknown rarity mapper: {self.rarity}")

    def _apply(self, pos: NoisePos, density: float) -> float:
        scale = RARITY_MAPPERS[self.rarity][0](density)
        return scale * abs(
            self.noise.sample(pos.block_x / scale, pos.block_y / scale, pos.block_z / scale)
        )

    def sample(self, pos: NoisePos) -> float:
        return self._apply(pos, self.input.sample(pos))

    def fill(self, densities: list[float], applier: Applier) -> None:
        self.input.fill(densities, applier)
        for i, d in enumerate(densities):
            densities[i] = self._apply(applier.at(i), d)

    @property
    def min_value(self) -> float:
        return 0.0

    @property
    def max_value(self) -> float:
        return RARITY_MAPPERS[self.rarity][1] * self.noise.max_value

    def map_children(self, fn: Visitor) -> DensityFunction:
        return replace(self, input=fn(self.input))


@dataclass(frozen=True)
class ShiftedNoise(DensityFunction):
    shift_x: DensityFunction
    shift_y: DensityFunction
    shift_z: DensityFunction
    xz_scale: float
    y_scale: float
    noise: NoiseHolder

    def sample(self, pos: NoisePos) -> float:
        x = pos.block_x * self.xz_scale + self.shift_x.sample(pos)
        y = pos.block_y * self.y_scale + self.shift_y.sample(pos)
        z = pos.block_z * self.xz_scale + self.shift_z.sample(pos)
        return self.noise.sample(x, y, z)

    @property
    def min_value(self) -> float:
        return -self.noise.max_value

    @property
    def max_value(self) -> float:
        return self.noise.max_value

    def map_children(self, fn: Visitor) -> DensityFunction:
        return replace(
            self,
            shift_x=fn(self.shift_x),
            shift_y=fn(self.shift_y),
            shift_z=fn(self.shift_z),
        )


@dataclass(frozen=True)
class BlendDensity(DensityFunction):
    """Blends toward pre-existing terrain; without neighbours it is the identity."""

    argument: DensityFunction

    def sample(self, pos: NoisePos) -> float:
        return self.argument.sample(pos)

    def fill(self, densities: list[float], applier: Applier) -> None:
        self.argument.fill(densities, applier)

    def map_children(self, fn: Visitor) -> DensityFunction:
        return replace(self, argument=fn(self.argument))


WRAPPER_KINDS = ("interpolated", "flat_cache", "cache_2d", "cache_once", "cache_all_in_cell")


@dataclass(frozen=True)
class Wrapped(DensityFunction):
    """Caching/interpolation marker; only a chunk sampler gives it behaviour."""

    kind: str
    argument: DensityFunction

    def __post_init__(self):
        if self.kind not in WRAPPER_KINDS:
            raise ValueError(f"unknown wrapper: {self.kind}")

    def sample(self, pos: NoisePos) -> float:
        return self.argument.sample(pos)

    def fill(self, densities: list[float], applier: Applier) -> None:
        self.argument.fill(densities, applier)

    @property
    def min_value(self) -> float:
        return self.argument.min_value

    @property
    def max_value(self) -> float:
        return self.argument.max_value

    def map_children(self, fn: Visitor) -> DensityFunction:
        return replace(self, argument=fn(self.argument))


@dataclass(frozen=True)
class Reference(DensityFunction):
    """A named registry entry, kept so trees print and compare by origin."""

    id: str
    argument: DensityFunction

    def sample(self, pos: NoisePos) -> float:
        return self.argument.sample(pos)

    def fill(self, densities: list[float], applier: Applier) -> None:
        self.argument.fill(densities, applier)

    @property
    def min_value(self) -> float:
        return self.argument.min_value

    @property
    def max_value(self) -> float:
        return self.argument.max_value

    def map_children(self, fn: Visitor) -> DensityFunction:
        return replace(self, argument=fn(self.argument))


def walk(node: DensityFunction):
    """Yield nodes pre-order, children left to right."""
    yield node
    children: list[DensityFunction] = []

    def collect(child: DensityFunction) -> DensityFunction:
        children.append(child)
        return child

    node.map_children(collect)
    for child in children:
        yield from walk(child)
