"""Unit tests for the line integral convolution engine.

Tests for pencil_lic.renderer.lic:
    - Closed form: uniform image + uniform noise → 1 − (1 − v) / ratio
    - Explicit reference loop: uniform image + single centre impulse
    - Boundary: out-of-bounds samples excluded (reference with edge noise)
    - Vectorized engine == per-pixel convolve_pixel (colour, random fields)
    - Output shape follows input shape (2-D, (H, W, 1), 3-channel)
    - Dimension / dtype / ratio contracts fail fast
    - Thread count does not change the result
    - Progress callback and seeded jitter reproducibility

Reference model (uniform image, zero jitter):
    The photometric weight is the same constant for every sample and cancels,
    leaving tone = 1 − (1 − v) · Σ_t G1 Σ_s inb·noise / (ratio · Σ_t G1 Σ_s inb).

Run:
    pytest tests/test_lic.py -v
"""

import math

import numpy as np
import pytest

from pencil_lic.renderer.lic import (
    bilateral_prefilter,
    convolve_pixel,
    draw_jitter,
    gauss,
    line_integral_convolution,
)
from pencil_lic.utils import validators


TAU = math.pi / 6.0
T = 24
S = 24
LENGTH = 7.0
SIGMA_ANGLE = 4.0


def reference_tone_uniform(value, noise, orientation, x, y, ratio):
    """Explicit loop for a uniform image of intensity ``value``, no jitter."""
    height, width = noise.shape
    num = 0.0
    den = 0.0
    for t in range(-T, T + 1):
        theta = TAU / T * t + orientation
        hits = 0.0
        inside = 0
        for s in range(-S, S + 1):
            scale = LENGTH / S * s
            xx = int(x + scale * math.cos(theta))
            yy = int(y + scale * math.sin(theta))
            if 0 <= xx < width and 0 <= yy < height:
                hits += float(noise[yy, xx])
                inside += 1
        g1 = math.exp(-theta * theta / (2 * SIGMA_ANGLE ** 2))
        num += g1 * hits
        den += g1 * inside
    return 1.0 - (1.0 - value) * num / (ratio * den)


@pytest.fixture
def uniform_gray():
    return np.full((8, 8), 0.5, dtype=np.float32)


@pytest.fixture
def zero_jitter():
    return np.zeros((8, 8), dtype=np.int64)


def test_gauss_normalized():
    assert gauss(0.0, 2.0) == pytest.approx(1.0 / (math.sqrt(2 * math.pi) * 2.0))
    assert gauss(2.0, 2.0) == pytest.approx(math.exp(-0.5) / (math.sqrt(2 * math.pi) * 2.0))


def test_uniform_noise_closed_form(uniform_gray, zero_jitter):
    orientation = np.zeros((8, 8), dtype=np.float32)
    noise = np.ones((8, 8), dtype=np.float32)

    tone = line_integral_convolution(uniform_gray, orientation, noise, 1.0, jitter=zero_jitter)
    np.testing.assert_allclose(tone, 0.5, atol=1e-5)

    tone = line_integral_convolution(uniform_gray, orientation, noise, 2.0, jitter=zero_jitter)
    np.testing.assert_allclose(tone, 0.75, atol=1e-5)


def test_single_impulse_matches_reference(uniform_gray, zero_jitter):
    orientation = np.zeros((8, 8), dtype=np.float32)
    noise = np.zeros((8, 8), dtype=np.float32)
    noise[4, 4] = 1.0
    ratio = 1.2 / 64

    tone = line_integral_convolution(uniform_gray, orientation, noise, ratio, jitter=zero_jitter)

    for y in range(8):
        for x in range(8):
            expected = reference_tone_uniform(0.5, noise, 0.0, x, y, ratio)
            assert tone[y, x] == pytest.approx(expected, abs=1e-4), (x, y)

    # The impulse darkens its own pixel and leaves far pixels white
    assert tone[4, 4] < 0.0
    assert tone[0, 0] == pytest.approx(1.0, abs=1e-6)


def test_out_of_bounds_samples_excluded(uniform_gray, zero_jitter):
    orientation = np.zeros((8, 8), dtype=np.float32)
    noise = np.zeros((8, 8), dtype=np.float32)
    noise[:, 0] = 1.0
    noise[:, 7] = 1.0

    tone = line_integral_convolution(uniform_gray, orientation, noise, 1.0, jitter=zero_jitter)

    assert np.all(np.isfinite(tone))
    for x, y in [(0, 0), (7, 7), (0, 4), (7, 3)]:
        expected = reference_tone_uniform(0.5, noise, 0.0, x, y, 1.0)
        assert tone[y, x] == pytest.approx(expected, abs=1e-5), (x, y)


def test_engine_matches_convolve_pixel():
    rng = np.random.default_rng(7)
    image = rng.uniform(0.0, 1.0, size=(10, 12, 3)).astype(np.float32)
    orientation = rng.uniform(0.0, math.pi, size=(10, 12)).astype(np.float32)
    noise = (rng.uniform(size=(10, 12)) < 0.3).astype(np.float32)
    jitter = draw_jitter((10, 12), 2, rng)
    cfg = validators.ConvolutionConfig()
    ratio = 0.3

    tone = line_integral_convolution(image, orientation, noise, ratio, cfg, jitter=jitter)
    bilateral = bilateral_prefilter(image, cfg)

    assert tone.shape == image.shape
    for x, y in [(0, 0), (11, 9), (5, 4), (11, 0), (0, 9)]:
        expected = convolve_pixel(bilateral, noise, orientation, x, y, ratio, int(jitter[y, x]), cfg)
        np.testing.assert_allclose(tone[y, x], expected, rtol=1e-4, atol=1e-4)


def test_output_shapes(zero_jitter):
    orientation = np.zeros((8, 8), dtype=np.float32)
    noise = np.ones((8, 8), dtype=np.float32)

    for shape in [(8, 8), (8, 8, 1), (8, 8, 3)]:
        image = np.full(shape, 0.25, dtype=np.float32)
        tone = line_integral_convolution(image, orientation, noise, 1.0, jitter=zero_jitter)
        assert tone.shape == shape
        assert tone.dtype == np.float32
        np.testing.assert_allclose(tone, 0.25, atol=1e-5)


def test_dimension_mismatch_fails_fast(uniform_gray):
    noise = np.ones((8, 8), dtype=np.float32)
    with pytest.raises(ValueError, match="orientation"):
        line_integral_convolution(uniform_gray, np.zeros((8, 9), dtype=np.float32), noise, 1.0)
    with pytest.raises(ValueError, match="orientation"):
        line_integral_convolution(uniform_gray, np.zeros((8, 8, 2), dtype=np.float32), noise, 1.0)
    with pytest.raises(ValueError, match="noise"):
        line_integral_convolution(
            uniform_gray, np.zeros((8, 8), dtype=np.float32), np.ones((7, 8), dtype=np.float32), 1.0
        )


def test_contract_violations(uniform_gray):
    orientation = np.zeros((8, 8), dtype=np.float32)
    with pytest.raises(ValueError, match="float"):
        line_integral_convolution(uniform_gray, orientation, np.ones((8, 8), dtype=np.uint8), 1.0)
    with pytest.raises(ValueError, match="ratio"):
        line_integral_convolution(uniform_gray, orientation, np.ones((8, 8), dtype=np.float32), 0.0)
    with pytest.raises(ValueError, match="channels"):
        line_integral_convolution(
            np.zeros((8, 8, 2), dtype=np.float32), orientation, np.ones((8, 8), dtype=np.float32), 1.0
        )


def test_thread_count_does_not_change_result():
    rng = np.random.default_rng(11)
    image = rng.uniform(size=(20, 9)).astype(np.float32)
    orientation = rng.uniform(0.0, math.pi, size=(20, 9)).astype(np.float32)
    noise = (rng.uniform(size=(20, 9)) < 0.25).astype(np.float32)
    jitter = draw_jitter((20, 9), 2, rng)

    serial = line_integral_convolution(
        image, orientation, noise, 0.3,
        validators.ConvolutionConfig(workers=1), jitter=jitter
    )
    parallel = line_integral_convolution(
        image, orientation, noise, 0.3,
        validators.ConvolutionConfig(workers=4, band_rows=3), jitter=jitter
    )
    np.testing.assert_allclose(serial, parallel, rtol=0, atol=1e-6)


def test_progress_reports_all_rows(uniform_gray):
    calls = []
    line_integral_convolution(
        uniform_gray,
        np.zeros((8, 8), dtype=np.float32),
        np.ones((8, 8), dtype=np.float32),
        1.0,
        validators.ConvolutionConfig(band_rows=3, workers=2),
        rng=np.random.default_rng(0),
        progress=lambda done, total: calls.append((done, total))
    )
    assert [c[1] for c in calls] == [8, 8, 8]
    assert [c[0] for c in calls] == sorted(c[0] for c in calls)
    assert calls[-1] == (8, 8)


def test_seeded_jitter_reproducible():
    rng = np.random.default_rng(5)
    image = rng.uniform(size=(10, 10)).astype(np.float32)
    orientation = rng.uniform(0.0, math.pi, size=(10, 10)).astype(np.float32)
    noise = (rng.uniform(size=(10, 10)) < 0.3).astype(np.float32)

    a = line_integral_convolution(image, orientation, noise, 0.3, rng=np.random.default_rng(1))
    b = line_integral_convolution(image, orientation, noise, 0.3, rng=np.random.default_rng(1))
    c = line_integral_convolution(image, orientation, noise, 0.3, rng=np.random.default_rng(2))

    np.testing.assert_array_equal(a, b)
    assert not np.array_equal(a, c)


def test_draw_jitter_range():
    jitter = draw_jitter((50, 50), 2, np.random.default_rng(0))
    assert jitter.min() == -2
    assert jitter.max() == 2
    assert not draw_jitter((4, 4), 0, np.random.default_rng(0)).any()


def test_sharp_range_sigma_stays_finite():
    image = np.zeros((8, 8), dtype=np.float32)
    image[:, 4:] = 1.0
    cfg = validators.ConvolutionConfig(sigma_range=0.01)

    tone = line_integral_convolution(
        image,
        np.zeros((8, 8), dtype=np.float32),
        np.ones((8, 8), dtype=np.float32),
        1.0,
        cfg,
        rng=np.random.default_rng(0)
    )
    assert np.all(np.isfinite(tone))
