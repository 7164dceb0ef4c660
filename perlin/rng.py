from __future__ import annotations

import hashlib
import math

import numpy as np

_MASK64 = 0xFFFFFFFFFFFFFFFF
_MASK32 = 0xFFFFFFFF

# Golden-ratio constants used to expand a 64-bit seed into 128 bits.
_SILVER = 0x6A09E667F3BCC909
_GOLDEN = 0x9E3779B97F4A7C15

_F64_UNIT = float(np.float32(1.110223e-16))
_F32_UNIT = np.float32(5.9604645e-8)


def to_i64(value: int) -> int:
    value &= _MASK64
    return value - (1 << 64) if value >= (1 << 63) else value


def to_i32(value: int) -> int:
    value &= _MASK32
    return value - (1 << 32) if value >= (1 << 31) else value


def _rotl(value: int, shift: int) -> int:
    return ((value << shift) | (value >> (64 - shift))) & _MASK64


def mix_stafford13(seed: int) -> int:
    seed &= _MASK64
    seed = ((seed ^ (seed >> 30)) * 0xBF58476D1CE4E5B9) & _MASK64
    seed = ((seed ^ (seed >> 27)) * 0x94D049BB133111EB) & _MASK64
    return seed ^ (seed >> 31)


def hash_block_pos(x: int, y: int, z: int) -> int:
    """Positional hash matching the reference ``hashCode(x, y, z)``."""
    l = to_i64(to_i32(x * 3129871) ^ to_i64(z * 116129781) ^ y)
    l = to_i64(l * l * 42317861 + l * 11)
    return l >> 16


def namespaced(identifier: str) -> str:
    identifier = str(identifier)
    return identifier if ":" in identifier else f"minecraft:{identifier}"


class Xoroshiro128PlusPlus:
    """Xoroshiro128++ stream with the splitting behaviour terrain noise relies on.

    State is held as two unsigned 64-bit integers; every public integer
    result is reinterpreted as a signed 64/32-bit value.
    """

    def __init__(self, lo: int, hi: int):
        lo &= _MASK64
        hi &= _MASK64
        if (lo | hi) == 0:
            lo, hi = _GOLDEN, _SILVER
        self.lo = lo
        self.hi = hi
        self._next_gaussian: float | None = None

    @classmethod
    def from_seed(cls, seed: int) -> "Xoroshiro128PlusPlus":
        lo = (int(seed) ^ _SILVER) & _MASK64
        hi = (lo + _GOLDEN) & _MASK64
        return cls(mix_stafford13(lo), mix_stafford13(hi))

    def _next_raw(self) -> int:
        lo = self.lo
        hi = self.hi
        out = (_rotl((lo + hi) & _MASK64, 17) + lo) & _MASK64
        x = hi ^ lo
        self.lo = _rotl(lo, 49) ^ x ^ ((x << 21) & _MASK64)
        self.hi = _rotl(x, 28)
        return out

    def next_i64(self) -> int:
        return to_i64(self._next_raw())

    def next_i32(self) -> int:
        return to_i32(self._next_raw())

    def next_bits(self, bits: int) -> int:
        return self._next_raw() >> (64 - int(bits))

    def next_bounded_i32(self, bound: int) -> int:
        bound = int(bound)
        if bound <= 0:
            raise ValueError("bound must be positive")
        l = self._next_raw() & _MASK32
        m = l * bound
        n = m & _MASK32
        if n < bound:
            threshold = ((1 << 32) - bound) % bound
            while n < threshold:
                l = self._next_raw() & _MASK32
                m = l * bound
                n = m & _MASK32
        return to_i32(m >> 32)

    def next_between(self, lo: int, hi: int) -> int:
        return self.next_bounded_i32(hi - lo + 1) + lo

    def next_bool(self) -> bool:
        return (self._next_raw() & 1) != 0

    def next_f64(self) -> float:
        return self.next_bits(53) * _F64_UNIT

    def next_f32(self) -> np.float32:
        return np.float32(self.next_bits(24)) * _F32_UNIT

    def next_gaussian(self) -> float:
        if self._next_gaussian is not None:
            spare = self._next_gaussian
            self._next_gaussian = None
            return spare
        while True:
            d = 2.0 * self.next_f64() - 1.0
            e = 2.0 * self.next_f64() - 1.0
            f = d * d + e * e
            if f < 1.0 and f != 0.0:
                g = math.sqrt(-2.0 * math.log(f) / f)
                self._next_gaussian = e * g
                return d * g

    def next_triangular(self, mode: float, deviation: float) -> float:
        return mode + deviation * (self.next_f64() - self.next_f64())

    def skip(self, count: int) -> None:
        for _ in range(int(count)):
            self._next_raw()

    def split(self) -> "Xoroshiro128PlusPlus":
        return Xoroshiro128PlusPlus(self._next_raw(), self._next_raw())

    def next_splitter(self) -> "XoroshiroSplitter":
        return XoroshiroSplitter(self._next_raw(), self._next_raw())


class XoroshiroSplitter:
    """Derives independent named streams; every split is a pure function of state and key."""

    def __init__(self, lo: int, hi: int):
        self.lo = int(lo) & _MASK64
        self.hi = int(hi) & _MASK64

    def split_string(self, key: str) -> Xoroshiro128PlusPlus:
        digest = hashlib.md5(str(key).encode("utf-8")).digest()
        lo = int.from_bytes(digest[0:8], "big")
        hi = int.from_bytes(digest[8:16], "big")
        return Xoroshiro128PlusPlus(lo ^ self.lo, hi ^ self.hi)

    def split_id(self, identifier: str) -> Xoroshiro128PlusPlus:
        return self.split_string(namespaced(identifier))

    def split_i64(self, seed: int) -> Xoroshiro128PlusPlus:
        seed = int(seed) & _MASK64
        return Xoroshiro128PlusPlus(seed ^ self.lo, seed ^ self.hi)

    def split_pos(self, x: int, y: int, z: int) -> Xoroshiro128PlusPlus:
        h = hash_block_pos(int(x), int(y), int(z)) & _MASK64
        return Xoroshiro128PlusPlus(h ^ self.lo, self.hi)
