from __future__ import annotations

from .core import clamped_lerp, maintain_precision
from .octave import OctavePerlin, calculate_amplitudes
from .rng import Xoroshiro128PlusPlus

_BASE_SCALE = 684.412

_MAIN_OCTAVES = calculate_amplitudes(range(-15, 1))
_SELECTOR_OCTAVES = calculate_amplitudes(range(-7, 1))


class BlendedNoise:
    """Terrain-shaping noise: an 8-octave selector blends two 16-octave fields.

    Each octave samples with a y-smear so terrain forms horizontal bands
    instead of floating blobs. The lower/upper samplers are skipped entirely
    when the selector saturates.
    """

    def __init__(
        self,
        random: Xoroshiro128PlusPlus,
        *,
        xz_scale: float,
        y_scale: float,
        xz_factor: float,
        y_factor: float,
        smear_scale_multiplier: float,
    ):
        first, amps = _MAIN_OCTAVES
        sel_first, sel_amps = _SELECTOR_OCTAVES
        self.lower = OctavePerlin(random, first, amps, legacy=True)
        self.upper = OctavePerlin(random, first, amps, legacy=True)
        self.selector = OctavePerlin(random, sel_first, sel_amps, legacy=True)

        self.xz_scale = float(xz_scale)
        self.y_scale = float(y_scale)
        self.xz_factor = float(xz_factor)
        self.y_factor = float(y_factor)
        self.smear_scale_multiplier = float(smear_scale_multiplier)

        self.xz_scale_scaled = _BASE_SCALE * self.xz_scale
        self.y_scale_scaled = _BASE_SCALE * self.y_scale
        self.max_value = self.lower.total_amplitude(self.y_scale_scaled + 2.0)

    @classmethod
    def unseeded(cls, **params: float) -> "BlendedNoise":
        """Instance used before seed binding; always drawn from seed 0."""
        return cls(Xoroshiro128PlusPlus.from_seed(0), **params)

    def copy_with_random(self, random: Xoroshiro128PlusPlus) -> "BlendedNoise":
        return BlendedNoise(
            random,
            xz_scale=self.xz_scale,
            y_scale=self.y_scale,
            xz_factor=self.xz_factor,
            y_factor=self.y_factor,
            smear_scale_multiplier=self.smear_scale_multiplier,
        )

    def sample(self, block_x: int, block_y: int, block_z: int) -> float:
        d = block_x * self.xz_scale_scaled
        e = block_y * self.y_scale_scaled
        f = block_z * self.xz_scale_scaled

        g = d / self.xz_factor
        h = e / self.y_factor
        i = f / self.xz_factor

        j = self.y_scale_scaled * self.smear_scale_multiplier
        k = j / self.y_factor

        n = 0.0
        o = 1.0
        for p in range(8):
            sampler = self.selector.octave(p)
            if sampler is not None:
                n += (
                    sampler.sample(
                        maintain_precision(g * o),
                        maintain_precision(h * o),
                        maintain_precision(i * o),
                        k * o,
                        h * o,
                    )
                    / o
                )
            o /= 2.0

        q = (n / 10.0 + 1.0) / 2.0
        upper_only = q >= 1.0
        lower_only = q <= 0.0

        lo_sum = 0.0
        hi_sum = 0.0
        o = 1.0
        for r in range(16):
            s = maintain_precision(d * o)
            t = maintain_precision(e * o)
            u = maintain_precision(f * o)
            v = j * o

            if not upper_only:
                sampler = self.lower.octave(r)
                if sampler is not None:
                    lo_sum += sampler.sample(s, t, u, v, e * o) / o

            if not lower_only:
                sampler = self.upper.octave(r)
                if sampler is not None:
                    hi_sum += sampler.sample(s, t, u, v, e * o) / o

            o /= 2.0

        return clamped_lerp(lo_sum / 512.0, hi_sum / 512.0, q) / 128.0
