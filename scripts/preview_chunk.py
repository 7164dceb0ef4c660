from __future__ import annotations

import logging
import sys
from pathlib import Path


def main(argv: list[str] | None = None) -> int:
    """Render PNG slices of one chunk.

    Usage: ``preview_chunk.py SEED CHUNK_X CHUNK_Z [OUT_DIR]``

    Writes ``blocks_x<i>.png`` (block ids) and ``density_x<i>.png``
    (interpolated final density) for every fourth x slice, plus the raw
    block volume as ``blocks.npy``.
    """

    root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(root))

    from viz.export import array_to_npy_bytes, chunk_slice_png_bytes, density_slice_png_bytes
    from worldgen.chunks import ChunkNoiseSampler
    from worldgen.config import load_config_from_env
    from worldgen.registry import Registry
    from worldgen.router import NoiseConfig
    from worldgen.shape import ChunkPos

    logging.basicConfig(
        level=logging.INFO,
        format="[%(asctime)s] %(levelname)s %(message)s",
    )
    log = logging.getLogger("preview_chunk")

    argv = sys.argv[1:] if argv is None else argv
    if len(argv) < 3:
        log.error("usage: preview_chunk.py SEED CHUNK_X CHUNK_Z [OUT_DIR]")
        return 2
    seed, chunk_x, chunk_z = (int(a) for a in argv[:3])
    out_dir = Path(argv[3]) if len(argv) > 3 else root / "assets"
    out_dir.mkdir(parents=True, exist_ok=True)

    config = load_config_from_env()
    registry = Registry.load(config.datapack_dir)
    settings = registry.noise_settings(config.settings_key)
    noise_config = NoiseConfig.create(settings, registry, seed)
    chunk = ChunkPos(chunk_x, chunk_z)
    shape = config.shape or settings.shape

    ids = ChunkNoiseSampler(noise_config, chunk, shape, blocks=registry.blocks).populate_noise()
    grid = ChunkNoiseSampler(noise_config, chunk, shape, blocks=registry.blocks).sample_density_grid()

    palette = {
        registry.blocks.default_state("air"): (200, 225, 255),
        registry.blocks.default_state("water"): (40, 90, 200),
        registry.blocks.default_state("lava"): (230, 100, 20),
        settings.default_block: (120, 120, 120),
    }
    for i in range(0, 16, 4):
        (out_dir / f"blocks_x{i}.png").write_bytes(
            chunk_slice_png_bytes(ids, shape.height, axis="x", index=i, palette=palette)
        )
        (out_dir / f"density_x{i}.png").write_bytes(density_slice_png_bytes(grid, axis="x", index=i))
    (out_dir / "blocks.npy").write_bytes(
        array_to_npy_bytes(ids.reshape(16, shape.height, 16))
    )
    log.info("wrote previews for chunk %s (seed %d) to %s", chunk, seed, out_dir)
    return 0


if __name__ == "__main__":
    sys.exit(main())
