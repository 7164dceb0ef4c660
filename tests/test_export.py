import io
import json

import numpy as np
import pytest
from PIL import Image

from viz.export import (
    array_to_npy_bytes,
    block_ids_to_volume,
    chunk_slice_png_bytes,
    density_slice_png_bytes,
    fixture_to_json_bytes,
)


def test_fixture_json_is_sorted_and_compact():
    data = fixture_to_json_bytes({"b": [1, 2.5], "a": "x"})
    assert data == b'{"a":"x","b":[1,2.5]}'
    assert json.loads(data) == {"a": "x", "b": [1, 2.5]}


def test_array_to_npy_bytes_roundtrip():
    z = np.arange(6, dtype=np.int32).reshape(2, 3)
    data = array_to_npy_bytes(z)
    out = np.load(io.BytesIO(data))
    assert np.array_equal(out, z)


def test_block_ids_to_volume_layout():
    height = 4
    ids = np.arange(16 * 16 * height, dtype=np.int32)
    volume = block_ids_to_volume(ids, height)
    assert volume.shape == (16, height, 16)
    assert volume[1, 2, 3] == 1 * height * 16 + 2 * 16 + 3
    with pytest.raises(ValueError):
        block_ids_to_volume(ids[:-1], height)


def test_chunk_slice_png_puts_world_up_at_the_top():
    height = 8
    volume = np.zeros((16, height, 16), dtype=np.int32)
    volume[:, : height // 2, :] = 1
    palette = {0: (255, 255, 255), 1: (0, 0, 0)}

    data = chunk_slice_png_bytes(volume.ravel(), height, axis="x", index=3, palette=palette)
    assert data[:8] == b"\x89PNG\r\n\x1a\n"
    img = np.array(Image.open(io.BytesIO(data)))
    assert img.shape == (height, 16, 3)
    assert tuple(img[0, 0]) == (255, 255, 255)
    assert tuple(img[-1, 0]) == (0, 0, 0)


def test_chunk_slice_unknown_ids_get_a_stable_colour():
    ids = np.full(16 * 16 * 2, 25964, dtype=np.int32)
    a = chunk_slice_png_bytes(ids, 2, axis="z", index=0)
    b = chunk_slice_png_bytes(ids, 2, axis="z", index=15)
    assert a == b


def test_density_slice_png_constant_grid():
    grid = np.full((16, 8, 16), 0.25)
    img = Image.open(io.BytesIO(density_slice_png_bytes(grid, axis="z", index=2)))
    arr = np.array(img)
    assert img.size == (16, 8)
    assert arr.min() == 0
    assert arr.max() == 0


def test_density_slice_png_normalizes():
    grid = np.zeros((16, 8, 16))
    grid[:, 7, :] = 1.0
    arr = np.array(Image.open(io.BytesIO(density_slice_png_bytes(grid, axis="x", index=0))))
    assert arr[0].tolist() == [255] * 16
    assert arr[1:].max() == 0


def test_bad_axis():
    with pytest.raises(ValueError):
        density_slice_png_bytes(np.zeros((16, 8, 16)), axis="y")
