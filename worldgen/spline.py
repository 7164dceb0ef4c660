"""Cubic Hermite splines evaluated in single precision."""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field, replace
from typing import Union

import numpy as np

from .density import DensityFunction, NoisePos, Visitor

f32 = np.float32

_ONE = f32(1.0)

SplineValue = Union["Spline", np.float32]


@dataclass(frozen=True)
class SplinePoint:
    location: np.float32
    value: SplineValue
    derivative: np.float32


def _value_at(value: SplineValue, pos: NoisePos) -> np.float32:
    if isinstance(value, Spline):
        return value.apply(pos)
    return value


def _lerp(delta: np.float32, start: np.float32, end: np.float32) -> np.float32:
    return start + delta * (end - start)


@dataclass(frozen=True)
class Spline:
    """A piecewise curve over one coordinate function.

    Point values may themselves be splines, which is how the vanilla
    terrain shapers nest continentalness, erosion and weirdness.
    """

    coordinate: DensityFunction
    points: tuple[SplinePoint, ...]
    _locations: tuple = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if not self.points:
            raise ValueError("a spline needs at least one point")
        locations = tuple(f32(p.location) for p in self.points)
        for a, b in zip(locations, locations[1:]):
            if not a < b:
                raise ValueError("spline locations must be strictly increasing")
        object.__setattr__(self, "_locations", locations)

    def apply(self, pos: NoisePos) -> np.float32:
        point = f32(self.coordinate.sample(pos))
        # NaN compares false everywhere, which lands on the last segment.
        i = bisect.bisect_right(self._locations, point) - 1 if point == point else len(self.points) - 1
        last = len(self.points) - 1
        if i < 0:
            return self._outside(point, 0, pos)
        if i == last:
            return self._outside(point, last, pos)

        p0 = self.points[i]
        p1 = self.points[i + 1]
        g = p0.location
        h = p1.location
        k = (point - g) / (h - g)
        n = _value_at(p0.value, pos)
        o = _value_at(p1.value, pos)
        p = p0.derivative * (h - g) - (o - n)
        q = -p1.derivative * (h - g) + (o - n)
        return f32(_lerp(k, n, o) + k * (_ONE - k) * _lerp(k, p, q))

    def _outside(self, point: np.float32, index: int, pos: NoisePos) -> np.float32:
        pt = self.points[index]
        value = _value_at(pt.value, pos)
        if pt.derivative == 0.0:
            return value
        return f32(value + pt.derivative * (point - pt.location))

    def map_coordinates(self, fn: Visitor) -> "Spline":
        coordinate = fn(self.coordinate)
        points = tuple(
            replace(p, value=p.value.map_coordinates(fn)) if isinstance(p.value, Spline) else p
            for p in self.points
        )
        return Spline(coordinate, points)


@dataclass(frozen=True)
class SplineFunction(DensityFunction):
    spline: Spline

    def sample(self, pos: NoisePos) -> float:
        return float(self.spline.apply(pos))

    def map_children(self, fn: Visitor) -> DensityFunction:
        return SplineFunction(self.spline.map_coordinates(fn))
