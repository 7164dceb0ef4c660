from __future__ import annotations

import math

from .core import fade, grad, lerp3
from .rng import Xoroshiro128PlusPlus

_I32_MIN = -(1 << 31)
_I32_MAX = (1 << 31) - 1

# float32(1e-7) widened to double, as the reference snaps smeared y with it.
_SMEAR_EPSILON = 1.0000000116860974e-07


def floor_i32(value: float) -> int:
    """Floor through a saturating int cast, wrapping like 32-bit ``i - 1``; NaN floors to 0."""
    if value != value:
        return 0
    if value >= _I32_MAX:
        return _I32_MAX
    if value < _I32_MIN:
        return _I32_MAX
    return math.floor(value)


class Perlin3D:
    """Improved Perlin noise with a random origin and a seeded permutation."""

    def __init__(self, random: Xoroshiro128PlusPlus):
        self.x_origin = random.next_f64() * 256.0
        self.y_origin = random.next_f64() * 256.0
        self.z_origin = random.next_f64() * 256.0

        perm = list(range(256))
        for i in range(256):
            j = random.next_bounded_i32(256 - i)
            perm[i], perm[i + j] = perm[i + j], perm[i]
        self.perm = tuple(perm)

    def _map(self, v: int) -> int:
        return self.perm[v & 255]

    def sample(
        self, x: float, y: float, z: float, y_scale: float = 0.0, y_max: float = 0.0
    ) -> float:
        tx = x + self.x_origin
        ty = y + self.y_origin
        tz = z + self.z_origin

        xi = floor_i32(tx)
        yi = floor_i32(ty)
        zi = floor_i32(tz)

        xf = tx - xi
        yf = ty - yi
        zf = tz - zi

        if y_scale != 0.0:
            clipped = y_max if 0.0 <= y_max < yf else yf
            y_snap = floor_i32(clipped / y_scale + _SMEAR_EPSILON) * y_scale
        else:
            y_snap = 0.0

        return self._sample_cell(xi, yi, zi, xf, yf - y_snap, zf, yf)

    def _sample_cell(
        self,
        xi: int,
        yi: int,
        zi: int,
        xf: float,
        yf: float,
        zf: float,
        fade_y: float,
    ) -> float:
        m = self._map
        a = m(xi)
        b = m(xi + 1)
        aa = m(a + yi)
        ab = m(a + yi + 1)
        ba = m(b + yi)
        bb = m(b + yi + 1)

        d000 = grad(m(aa + zi), xf, yf, zf)
        d100 = grad(m(ba + zi), xf - 1.0, yf, zf)
        d010 = grad(m(ab + zi), xf, yf - 1.0, zf)
        d110 = grad(m(bb + zi), xf - 1.0, yf - 1.0, zf)
        d001 = grad(m(aa + zi + 1), xf, yf, zf - 1.0)
        d101 = grad(m(ba + zi + 1), xf - 1.0, yf, zf - 1.0)
        d011 = grad(m(ab + zi + 1), xf, yf - 1.0, zf - 1.0)
        d111 = grad(m(bb + zi + 1), xf - 1.0, yf - 1.0, zf - 1.0)

        return lerp3(
            fade(xf),
            fade(fade_y),
            fade(zf),
            d000,
            d100,
            d010,
            d110,
            d001,
            d101,
            d011,
            d111,
        )
