from __future__ import annotations

from typing import Iterable, Sequence

from .core import maintain_precision
from .noise_3d import Perlin3D
from .rng import Xoroshiro128PlusPlus


def calculate_amplitudes(octaves: Iterable[int]) -> tuple[int, list[float]]:
    """Turn a set of octave indices into ``(first_octave, amplitudes)`` with 1.0 at each index."""
    ordered = sorted(int(o) for o in octaves)
    if not ordered:
        raise ValueError("need at least one octave")
    lowest = -ordered[0]
    highest = ordered[-1]
    amplitudes = [0.0] * (lowest + highest + 1)
    for o in ordered:
        amplitudes[o + lowest] = 1.0
    return -lowest, amplitudes


class OctavePerlin:
    """Sum of Perlin octaves, lowest frequency first.

    ``legacy`` construction draws every octave from one shared stream (and
    burns 262 calls for each silent octave); the default construction gives
    each octave its own ``octave_<n>`` sub-stream.
    """

    def __init__(
        self,
        random: Xoroshiro128PlusPlus,
        first_octave: int,
        amplitudes: Sequence[float],
        *,
        legacy: bool = False,
    ):
        self.first_octave = int(first_octave)
        self.amplitudes = tuple(float(a) for a in amplitudes)
        n = len(self.amplitudes)
        j = -self.first_octave
        samplers: list[Perlin3D | None] = [None] * n

        if legacy:
            first = Perlin3D(random)
            if 0 <= j < n and self.amplitudes[j] != 0.0:
                samplers[j] = first
            for k in range(j - 1, -1, -1):
                if k < n and self.amplitudes[k] != 0.0:
                    samplers[k] = Perlin3D(random)
                else:
                    random.skip(262)
        else:
            splitter = random.next_splitter()
            for k in range(n):
                if self.amplitudes[k] != 0.0:
                    octave = self.first_octave + k
                    samplers[k] = Perlin3D(splitter.split_string(f"octave_{octave}"))

        self.samplers = tuple(samplers)

        self.persistence = 2.0 ** (n - 1) / (2.0**n - 1.0)
        self.lacunarity = 2.0 ** (-j)

        lacunarities = []
        persistences = []
        lac = self.lacunarity
        per = self.persistence
        for _ in range(n):
            lacunarities.append(lac)
            persistences.append(per)
            lac *= 2.0
            per /= 2.0
        self._lacunarities = tuple(lacunarities)
        self._persistences = tuple(persistences)

        self.max_value = self.total_amplitude(2.0)

    def total_amplitude(self, scale: float) -> float:
        total = 0.0
        for sampler, amplitude, persistence in zip(
            self.samplers, self.amplitudes, self._persistences
        ):
            if sampler is not None:
                total += amplitude * scale * persistence
        return total

    def octave(self, index: int) -> Perlin3D | None:
        pos = len(self.samplers) - 1 - int(index)
        if 0 <= pos < len(self.samplers):
            return self.samplers[pos]
        return None

    def sample(self, x: float, y: float, z: float) -> float:
        total = 0.0
        for sampler, amplitude, lac, per in zip(
            self.samplers, self.amplitudes, self._lacunarities, self._persistences
        ):
            if sampler is None:
                continue
            g = sampler.sample(
                maintain_precision(x * lac),
                maintain_precision(y * lac),
                maintain_precision(z * lac),
            )
            total += amplitude * g * per
        return total
