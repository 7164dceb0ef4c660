from __future__ import annotations

from dataclasses import dataclass

from .octave import OctavePerlin
from .rng import Xoroshiro128PlusPlus

_SECOND_INPUT_FACTOR = 1.0181268882175227
_TARGET_DEVIATION = 0.16666666666666666


@dataclass(frozen=True)
class NoiseParameters:
    first_octave: int
    amplitudes: tuple[float, ...]

    @classmethod
    def from_json(cls, payload: dict) -> "NoiseParameters":
        return cls(
            first_octave=int(payload["firstOctave"]),
            amplitudes=tuple(float(a) for a in payload["amplitudes"]),
        )


def _amplitude_for_span(octaves: int) -> float:
    return 0.1 * (1.0 + 1.0 / (octaves + 1))


class DoublePerlin:
    """Two decorrelated octave samplers summed and rescaled toward unit deviation."""

    def __init__(
        self,
        random: Xoroshiro128PlusPlus,
        params: NoiseParameters,
        *,
        legacy: bool = False,
    ):
        self.params = params
        self.first = OctavePerlin(random, params.first_octave, params.amplitudes, legacy=legacy)
        self.second = OctavePerlin(random, params.first_octave, params.amplitudes, legacy=legacy)

        lo = None
        hi = None
        for i, a in enumerate(params.amplitudes):
            if a != 0.0:
                lo = i if lo is None else min(lo, i)
                hi = i if hi is None else max(hi, i)
        span = 0 if lo is None else hi - lo

        self.amplitude = _TARGET_DEVIATION / _amplitude_for_span(span)
        self.max_value = (self.first.max_value + self.second.max_value) * self.amplitude

    def sample(self, x: float, y: float, z: float) -> float:
        d = x * _SECOND_INPUT_FACTOR
        e = y * _SECOND_INPUT_FACTOR
        f = z * _SECOND_INPUT_FACTOR
        return (self.first.sample(x, y, z) + self.second.sample(d, e, f)) * self.amplitude
