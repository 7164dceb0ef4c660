import math

import numpy as np

from perlin.core import GRADIENTS, clamped_lerp, clamped_map, fade, grad, lerp, lerp3, maintain_precision


def test_fade_endpoints():
    t = np.array([0.0, 1.0], dtype=np.float64)
    out = fade(t)
    assert out[0] == 0.0
    assert out[1] == 1.0


def test_lerp_basic():
    a = np.array([0.0, 10.0])
    b = np.array([10.0, 20.0])
    t = np.array([0.0, 0.5])
    out = lerp(a, b, t)
    assert np.allclose(out, np.array([0.0, 15.0]))


def test_lerp3_corners():
    corners = [float(i) for i in range(8)]
    assert lerp3(0.0, 0.0, 0.0, *corners) == 0.0
    assert lerp3(1.0, 0.0, 0.0, *corners) == 1.0
    assert lerp3(0.0, 1.0, 0.0, *corners) == 2.0
    assert lerp3(0.0, 0.0, 1.0, *corners) == 4.0
    assert lerp3(1.0, 1.0, 1.0, *corners) == 7.0
    assert lerp3(0.5, 0.5, 0.5, *corners) == 3.5


def test_clamped_lerp_and_map():
    assert clamped_lerp(2.0, 4.0, -1.0) == 2.0
    assert clamped_lerp(2.0, 4.0, 2.0) == 4.0
    assert clamped_lerp(2.0, 4.0, 0.5) == 3.0
    assert clamped_map(-64.0, -64.0, 320.0, 1.5, -1.5) == 1.5
    assert clamped_map(400.0, -64.0, 320.0, 1.5, -1.5) == -1.5


def test_maintain_precision_wraps_large_coordinates():
    assert maintain_precision(12.5) == 12.5
    wrapped = maintain_precision(3.3554432e7 + 7.25)
    assert wrapped == 7.25
    assert abs(maintain_precision(-1.0e9)) <= 3.3554432e7 / 2


def test_grad_uses_masked_hash():
    assert grad(0, 1.0, 2.0, 3.0) == 3.0
    assert grad(16, 1.0, 2.0, 3.0) == 3.0
    assert grad(11, 1.0, 2.0, 3.0) == -5.0
    assert not math.isnan(grad(15, 0.5, 0.5, 0.5))


def test_gradient_table_is_cube_edges():
    assert len(GRADIENTS) == 16
    for g in GRADIENTS:
        assert sorted(abs(c) for c in g) == [0.0, 1.0, 1.0]
    assert GRADIENTS[12:] == (GRADIENTS[0], GRADIENTS[9], GRADIENTS[1], GRADIENTS[11])
