from __future__ import annotations

import sys
import time
from pathlib import Path


def _timeit(label: str, fn) -> float:
    t0 = time.perf_counter()
    fn()
    t1 = time.perf_counter()
    ms = (t1 - t0) * 1000.0
    print(f"{label}: {ms:.2f} ms")
    return ms


def main() -> None:
    """Quick CPU benchmark: direct lattice sampling vs. the interpolated grid walk.

    The grid walk evaluates the router only at cell corners, so it should
    beat the scalar lattice by a wide margin on the same chunk.
    """

    root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(root))

    from worldgen.chunks import ChunkNoiseSampler
    from worldgen.fixtures import sample_density_lattice
    from worldgen.registry import Registry
    from worldgen.router import NoiseConfig
    from worldgen.shape import ChunkPos, GenerationShapeConfig

    seed = 0
    chunk = ChunkPos(7, 4)
    registry = Registry.load()
    settings = registry.noise_settings("overworld")
    config = NoiseConfig.create(settings, registry, seed)
    # A 64-block band keeps the scalar run short.
    band = GenerationShapeConfig(min_y=0, height=64, size_horizontal=1, size_vertical=2)

    _timeit(
        "Scalar: final_density lattice 17x65x17",
        lambda: sample_density_lattice(config.router.final_density, chunk, band),
    )
    _timeit(
        "Grid: density walk 16x64x16",
        lambda: ChunkNoiseSampler(config, chunk, band, blocks=registry.blocks).sample_density_grid(),
    )
    _timeit(
        "Grid: populate_noise 16x384x16",
        lambda: ChunkNoiseSampler(config, chunk, blocks=registry.blocks).populate_noise(),
    )


if __name__ == "__main__":
    main()
