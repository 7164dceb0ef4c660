from .blended import BlendedNoise
from .double_perlin import DoublePerlin, NoiseParameters
from .noise_3d import Perlin3D
from .octave import OctavePerlin
from .rng import Xoroshiro128PlusPlus, XoroshiroSplitter

__all__ = [
    "BlendedNoise",
    "DoublePerlin",
    "NoiseParameters",
    "OctavePerlin",
    "Perlin3D",
    "Xoroshiro128PlusPlus",
    "XoroshiroSplitter",
]
