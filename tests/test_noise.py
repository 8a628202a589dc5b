"""Unit tests for noise field construction.

Tests for pencil_lic.renderer.noise:
    - Sparse mode: one unit cell per distinct anchor point, ratio formula
    - Sparse mode: fractional coordinates truncate, outside points skipped
    - Dense mode: ratio formula, lit fraction, seeded reproducibility
    - Degenerate (zero-ratio) images rejected

Run:
    pytest tests/test_noise.py -v
"""

import numpy as np
import pytest

from pencil_lic.renderer.noise import NoiseField, build_noise, uniform_dot_pattern
from pencil_lic.utils import validators


@pytest.fixture
def gray():
    return np.full((40, 50), 0.5, dtype=np.float32)


def test_sparse_mass_invariant(gray):
    points = [(0, 0), (10.0, 5.0), (49, 39), (25.5, 20.9), (3, 30)]

    noise = build_noise(gray, points)

    assert isinstance(noise, NoiseField)
    assert noise.field.shape == gray.shape
    assert noise.field.dtype == np.float32
    assert np.count_nonzero(noise.field) == len(points)
    assert np.all(noise.field[noise.field != 0] == 1.0)
    assert noise.ratio == pytest.approx(1.2 * len(points) / (40 * 50))


def test_sparse_truncates_coordinates(gray):
    noise = build_noise(gray, [(25.9, 20.9)])
    assert noise.field[20, 25] == 1.0
    assert noise.field[21, 26] == 0.0


def test_sparse_skips_points_outside(gray):
    noise = build_noise(gray, [(-3.0, 4.0), (50.0, 0.0), (5.0, 5.0)])

    assert np.count_nonzero(noise.field) == 1
    assert noise.field[5, 5] == 1.0
    # Ratio counts every supplied point
    assert noise.ratio == pytest.approx(1.2 * 3 / (40 * 50))


def test_sparse_accepts_numpy_points(gray):
    points = np.array([[1.0, 2.0], [3.0, 4.0]])
    noise = build_noise(gray, points)
    assert np.count_nonzero(noise.field) == 2


def test_dense_ratio_and_density():
    gray = np.zeros((64, 64), dtype=np.float32)
    area = 64 * 64

    noise = build_noise(gray, None, rng=np.random.default_rng(0))

    assert noise.ratio == pytest.approx(1.5 * int(0.2 * area) / area)
    assert set(np.unique(noise.field)) <= {0.0, 1.0}
    lit = np.count_nonzero(noise.field) / area
    # 1 − exp(−0.3) ≈ 0.259
    assert 0.22 < lit < 0.30


def test_dense_empty_points_list_is_dense(gray):
    noise = build_noise(gray, [], rng=np.random.default_rng(3))
    assert np.count_nonzero(noise.field) > 100


def test_dense_reproducible_with_seed(gray):
    a = build_noise(gray, None, rng=np.random.default_rng(42))
    b = build_noise(gray, None, rng=np.random.default_rng(42))
    c = build_noise(gray, None, rng=np.random.default_rng(43))

    np.testing.assert_array_equal(a.field, b.field)
    assert not np.array_equal(a.field, c.field)


def test_dense_custom_gains(gray):
    cfg = validators.NoiseConfig(dense_target_frac=0.5, dense_ratio_gain=2.0)
    noise = build_noise(gray, None, cfg, np.random.default_rng(0))
    assert noise.ratio == pytest.approx(2.0 * int(0.5 * 2000) / 2000)


def test_dense_tiny_image_rejected():
    with pytest.raises(ValueError, match="Degenerate"):
        build_noise(np.zeros((2, 2), dtype=np.float32), None, rng=np.random.default_rng(0))


def test_uniform_dot_pattern_shape_check():
    with pytest.raises(ValueError):
        uniform_dot_pattern((4, 4), np.zeros((5, 4)), 3, np.random.default_rng(0))


def test_uniform_dot_pattern_zero_candidates():
    field = uniform_dot_pattern((4, 6), None, 0, np.random.default_rng(0))
    assert field.shape == (4, 6)
    assert not field.any()


def test_uniform_dot_pattern_ignores_reference_tone():
    dark = np.zeros((20, 30), dtype=np.float32)
    bright = np.ones((20, 30), dtype=np.float32)

    a = uniform_dot_pattern((20, 30), dark, 120, np.random.default_rng(8))
    b = uniform_dot_pattern((20, 30), bright, 120, np.random.default_rng(8))

    np.testing.assert_array_equal(a, b)
