from __future__ import annotations

import io
import json
from typing import Any, Mapping

import numpy as np
from PIL import Image

CHUNK_WIDTH = 16


def fixture_to_json_bytes(payload: Any) -> bytes:
    """Deterministic JSON: sorted object keys, compact separators, UTF-8."""
    text = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return text.encode("utf-8")


def array_to_npy_bytes(z: np.ndarray) -> bytes:
    z = np.asarray(z)
    out = io.BytesIO()
    np.save(out, z)
    return out.getvalue()


def block_ids_to_volume(ids: np.ndarray, height: int) -> np.ndarray:
    """Reshape a flat chunk array into ``[local_x, local_y, local_z]``."""
    ids = np.asarray(ids)
    expected = CHUNK_WIDTH * CHUNK_WIDTH * int(height)
    if ids.ndim != 1 or ids.size != expected:
        raise ValueError(f"expected a flat array of {expected} block ids")
    return ids.reshape(CHUNK_WIDTH, int(height), CHUNK_WIDTH)


def _slice(volume: np.ndarray, axis: str, index: int) -> np.ndarray:
    """A vertical slice with world-up at the top of the image."""
    if axis == "x":
        plane = volume[index, :, :]
    elif axis == "z":
        plane = volume[:, :, index].T
    else:
        raise ValueError("axis must be 'x' or 'z'")
    return np.ascontiguousarray(plane[::-1, :])


def _id_color(state_id: int) -> tuple[int, int, int]:
    # Knuth multiplicative hash spreads neighbouring ids across the colour wheel.
    h = (int(state_id) * 2654435761) & 0xFFFFFF
    return (h >> 16) & 0xFF, (h >> 8) & 0xFF, h & 0xFF


def chunk_slice_png_bytes(
    ids: np.ndarray,
    height: int,
    *,
    axis: str = "x",
    index: int = 0,
    palette: Mapping[int, tuple[int, int, int]] | None = None,
) -> bytes:
    """Render one vertical slice of a chunk's block ids as an RGB PNG."""
    plane = _slice(block_ids_to_volume(ids, height), axis, int(index))
    palette = dict(palette or {})
    rgb = np.zeros(plane.shape + (3,), dtype=np.uint8)
    for state_id in np.unique(plane):
        color = palette.get(int(state_id))
        if color is None:
            color = _id_color(int(state_id))
        rgb[plane == state_id] = color

    out = io.BytesIO()
    Image.fromarray(rgb).save(out, format="PNG")
    return out.getvalue()


def density_slice_png_bytes(grid: np.ndarray, *, axis: str = "x", index: int = 0) -> bytes:
    """Grayscale slice of a ``(16, height, 16)`` density grid; solid (> 0) is bright.

    Values are min/max normalized to [0, 255]. Degenerate (constant) slices
    become all zeros.
    """
    grid = np.asarray(grid, dtype=np.float64)
    if grid.ndim != 3:
        raise ValueError("expected a 3D density grid")
    z = _slice(grid, axis, int(index))

    zmin = float(np.min(z))
    zmax = float(np.max(z))
    if zmax == zmin:
        img = np.zeros(z.shape, dtype=np.uint8)
    else:
        zn = (z - zmin) / (zmax - zmin)
        img = np.clip(zn * 255.0, 0.0, 255.0).astype(np.uint8)

    out = io.BytesIO()
    Image.fromarray(img).save(out, format="PNG")
    return out.getvalue()
