from __future__ import annotations

import math


def fade(t):
    """Quintic fade curve used by Improved Perlin Noise (2002)."""
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


def lerp(a, b, t):
    return a + t * (b - a)


def lerp2(dx: float, dy: float, x0y0: float, x1y0: float, x0y1: float, x1y1: float) -> float:
    return lerp(lerp(x0y0, x1y0, dx), lerp(x0y1, x1y1, dx), dy)


def lerp3(
    dx: float,
    dy: float,
    dz: float,
    x0y0z0: float,
    x1y0z0: float,
    x0y1z0: float,
    x1y1z0: float,
    x0y0z1: float,
    x1y0z1: float,
    x0y1z1: float,
    x1y1z1: float,
) -> float:
    return lerp(
        lerp2(dx, dy, x0y0z0, x1y0z0, x0y1z0, x1y1z0),
        lerp2(dx, dy, x0y0z1, x1y0z1, x0y1z1, x1y1z1),
        dz,
    )


def lerp_progress(value: float, start: float, end: float) -> float:
    return (value - start) / (end - start)


def clamped_lerp(start: float, end: float, t: float) -> float:
    if t < 0.0:
        return start
    if t > 1.0:
        return end
    return lerp(start, end, t)


def clamped_map(
    value: float, old_start: float, old_end: float, new_start: float, new_end: float
) -> float:
    return clamped_lerp(new_start, new_end, lerp_progress(value, old_start, old_end))


_PRECISION_WRAP = 3.3554432e7


def maintain_precision(value: float) -> float:
    """Wrap a coordinate into +-2^24 so octave inputs keep their fractional bits."""
    return value - math.floor(value / _PRECISION_WRAP + 0.5) * _PRECISION_WRAP


# Twelve cube-edge directions, padded to 16 so a hash can be masked instead of reduced.
GRADIENTS = (
    (1.0, 1.0, 0.0),
    (-1.0, 1.0, 0.0),
    (1.0, -1.0, 0.0),
    (-1.0, -1.0, 0.0),
    (1.0, 0.0, 1.0),
    (-1.0, 0.0, 1.0),
    (1.0, 0.0, -1.0),
    (-1.0, 0.0, -1.0),
    (0.0, 1.0, 1.0),
    (0.0, -1.0, 1.0),
    (0.0, 1.0, -1.0),
    (0.0, -1.0, -1.0),
    (1.0, 1.0, 0.0),
    (0.0, -1.0, 1.0),
    (-1.0, 1.0, 0.0),
    (0.0, -1.0, -1.0),
)


def grad(h: int, x: float, y: float, z: float) -> float:
    gx, gy, gz = GRADIENTS[h & 15]
    return gx * x + gy * y + gz * z
