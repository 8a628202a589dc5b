"""Anisotropic line integral convolution (LIC) producing pencil tone.

For every pixel the engine sweeps 2T+1 stroke directions around the flow
orientation and, along each, samples 2S+1 points of a line of half length
``length``. Each sample contributes the noise under it, weighted by a
photometric Gaussian on the bilateral-smoothed image (edge-preserving range
term). Each direction is weighted by a Gaussian of its distance to the
pixel's jittered preferred angle (directional domain term). Darkness is the
weighted noise scaled by ``1 − I``; tone is ``1 − sum / (ratio · weight)``.

Architecture:
    - bilateral_prefilter: cv2.bilateralFilter on the float image
    - draw_jitter: one integer step k ∈ [−n, n] per pixel, drawn up front
    - convolve_pixel: pure per-pixel reference (scalar loops)
    - _convolve_band: the same arithmetic vectorized over a band of rows
    - line_integral_convolution: row bands mapped over a thread pool

Invariants:
    - Sample positions are truncated toward zero, as C integer casts do
    - Out-of-bounds samples contribute nothing (not an error)
    - The normalization denominator is floored at ``eps`` (no NaN/Inf)
    - Bands write disjoint rows; all inputs are read-only during the map
"""

import logging
import math
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Optional

import cv2
import numpy as np

from ..utils import compute, validators

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def gauss(x, sigma: float):
    """Normalized Gaussian density exp(−x² / 2σ²) / (√(2π) σ); scalars or arrays."""
    return np.exp(-(x * x) / (2.0 * sigma * sigma)) / (math.sqrt(2.0 * math.pi) * sigma)


def bilateral_prefilter(
    image: np.ndarray,
    cfg: Optional[validators.ConvolutionConfig] = None
) -> np.ndarray:
    """Edge-preserving smoothing of the source image.

    Parameters
    ----------
    image : np.ndarray
        (H, W) or (H, W, C) float image, C in {1, 3}

    Returns
    -------
    np.ndarray
        (H, W, C) float32 (always 3-D)
    """
    cfg = cfg or validators.ConvolutionConfig()
    height, width = compute.hw_of(image)
    dim = compute.channels_of(image)
    if dim not in (1, 3):
        raise ValueError(f"Bilateral pre-filter supports 1 or 3 channels, got {dim}")

    src = image.reshape(height, width) if dim == 1 else image
    smoothed = cv2.bilateralFilter(
        np.ascontiguousarray(src, dtype=np.float32),
        cfg.bilateral_d,
        cfg.bilateral_sigma_color,
        cfg.bilateral_sigma_space
    )
    return smoothed.reshape(height, width, dim)


def draw_jitter(
    shape,
    jitter_steps: int,
    rng: np.random.Generator
) -> np.ndarray:
    """Per-pixel integer jitter steps k, uniform in [−n, n]."""
    if jitter_steps <= 0:
        return np.zeros(shape, dtype=np.int64)
    return rng.integers(-jitter_steps, jitter_steps + 1, size=shape)


def jitter_angles(jitter: np.ndarray, cfg: validators.ConvolutionConfig) -> np.ndarray:
    """Convert jitter steps to preferred-angle offsets t_i = τ / n · k."""
    if cfg.jitter_steps <= 0:
        return np.zeros(jitter.shape, dtype=np.float64)
    return cfg.tau / cfg.jitter_steps * jitter.astype(np.float64)


def convolve_pixel(
    bilateral: np.ndarray,
    noise: np.ndarray,
    orientation: np.ndarray,
    x: int,
    y: int,
    ratio: float,
    jitter_step: int = 0,
    cfg: Optional[validators.ConvolutionConfig] = None
) -> np.ndarray:
    """Tone of a single pixel, computed directly with scalar loops.

    Parameters
    ----------
    bilateral : np.ndarray
        Bilateral-smoothed image, (H, W, C)
    noise : np.ndarray
        Noise field, (H, W)
    orientation : np.ndarray
        Quantized orientation, (H, W), radians
    x, y : int
        Pixel column and row
    ratio : float
        Noise normalization ratio (> 0)
    jitter_step : int
        k in [−n, n]
    cfg : ConvolutionConfig, optional

    Returns
    -------
    np.ndarray
        (C,) float64 tone values
    """
    cfg = cfg or validators.ConvolutionConfig()
    height, width, dim = bilateral.shape
    T, S = cfg.angular_steps, cfg.spatial_steps

    t_i = cfg.tau / cfg.jitter_steps * jitter_step if cfg.jitter_steps > 0 else 0.0
    center = [float(bilateral[y, x, c]) for c in range(dim)]

    total = [0.0] * dim
    weight = [0.0] * dim
    for t in range(-T, T + 1):
        theta = cfg.tau / T * t + float(orientation[y, x])
        cos_t, sin_t = math.cos(theta), math.sin(theta)
        s_sum = [0.0] * dim
        w_sum = [0.0] * dim
        for s in range(-S, S + 1):
            scale = cfg.length / S * s
            xx = int(x + scale * cos_t)
            yy = int(y + scale * sin_t)
            if xx < 0 or yy < 0 or xx >= width or yy >= height:
                continue
            n_val = float(noise[yy, xx])
            for c in range(dim):
                g2 = float(gauss(float(bilateral[yy, xx, c]) - center[c], cfg.sigma_range))
                s_sum[c] += g2 * n_val * (1.0 - center[c])
                w_sum[c] += g2
        g1 = float(gauss(t_i - theta, cfg.sigma_angle))
        for c in range(dim):
            total[c] += g1 * s_sum[c]
            weight[c] += g1 * w_sum[c]

    return np.array(
        [1.0 - total[c] / max(ratio * weight[c], cfg.eps) for c in range(dim)],
        dtype=np.float64
    )


def _convolve_band(
    bilateral: np.ndarray,
    noise: np.ndarray,
    orientation: np.ndarray,
    t_i: np.ndarray,
    y0: int,
    y1: int,
    ratio: float,
    cfg: validators.ConvolutionConfig
) -> np.ndarray:
    """Tone for rows [y0, y1), all columns; returns (y1 − y0, W, C) float64."""
    height, width, dim = bilateral.shape
    T, S = cfg.angular_steps, cfg.spatial_steps

    ys = np.arange(y0, y1, dtype=np.float64)[:, None]
    xs = np.arange(width, dtype=np.float64)[None, :]

    center = bilateral[y0:y1].astype(np.float64)
    darkness = 1.0 - center
    etf = orientation[y0:y1].astype(np.float64)
    t_band = t_i[y0:y1]

    total = np.zeros_like(center)
    weight = np.zeros_like(center)

    for t in range(-T, T + 1):
        theta = cfg.tau / T * t + etf
        cos_t = np.cos(theta)
        sin_t = np.sin(theta)
        s_sum = np.zeros_like(center)
        w_sum = np.zeros_like(center)

        for s in range(-S, S + 1):
            scale = cfg.length / S * s
            xx = np.trunc(xs + scale * cos_t).astype(np.intp)
            yy = np.trunc(ys + scale * sin_t).astype(np.intp)
            valid = (xx >= 0) & (yy >= 0) & (xx < width) & (yy < height)
            xc = np.clip(xx, 0, width - 1)
            yc = np.clip(yy, 0, height - 1)

            g2 = gauss(bilateral[yc, xc].astype(np.float64) - center, cfg.sigma_range)
            g2 *= valid[..., None]
            s_sum += g2 * noise[yc, xc][..., None] * darkness
            w_sum += g2

        g1 = gauss(t_band - theta, cfg.sigma_angle)[..., None]
        total += g1 * s_sum
        weight += g1 * w_sum

    return 1.0 - total / np.maximum(ratio * weight, cfg.eps)


def line_integral_convolution(
    image: np.ndarray,
    orientation: np.ndarray,
    noise: np.ndarray,
    ratio: float,
    cfg: Optional[validators.ConvolutionConfig] = None,
    rng: Optional[np.random.Generator] = None,
    jitter: Optional[np.ndarray] = None,
    progress: Optional[ProgressCallback] = None
) -> np.ndarray:
    """Synthesize the pencil tone image.

    Parameters
    ----------
    image : np.ndarray
        Source image, (H, W) or (H, W, C) float, C in {1, 3}
    orientation : np.ndarray
        Quantized stroke orientation, (H, W) float, radians
    noise : np.ndarray
        Noise field, (H, W) float
    ratio : float
        Noise normalization ratio, must be > 0
    cfg : ConvolutionConfig, optional
        Discretization, Gaussian widths, bilateral and threading parameters
    rng : np.random.Generator, optional
        Draws the per-pixel jitter; a fresh default generator if omitted
    jitter : np.ndarray, optional
        (H, W) integer steps overriding the random draw (zeros disable jitter)
    progress : callable, optional
        Called as progress(rows_done, rows_total) after each band

    Returns
    -------
    np.ndarray
        float32 tone image with the same shape as ``image``

    Raises
    ------
    ValueError
        On dimension mismatch, non-float fields, unsupported channel count
        or non-positive ratio
    """
    cfg = cfg or validators.ConvolutionConfig()
    height, width = compute.hw_of(image)
    compute.check_same_hw(image, orientation, "orientation")
    compute.check_same_hw(image, noise, "noise")
    for name, field in (("orientation", orientation), ("noise", noise)):
        if not np.issubdtype(field.dtype, np.floating):
            raise ValueError(f"{name} must be a float array, got dtype {field.dtype}")
    if not ratio > 0.0:
        raise ValueError(f"ratio must be positive, got {ratio}")

    if jitter is None:
        rng = rng if rng is not None else np.random.default_rng()
        jitter = draw_jitter((height, width), cfg.jitter_steps, rng)
    else:
        compute.check_same_hw(image, jitter, "jitter")
    t_i = jitter_angles(jitter, cfg)

    bilateral = bilateral_prefilter(image, cfg).astype(np.float64)
    noise64 = noise.astype(np.float64)
    tone = np.empty(bilateral.shape, dtype=np.float32)

    bands = [(y0, min(y0 + cfg.band_rows, height)) for y0 in range(0, height, cfg.band_rows)]
    workers = min(cfg.workers or os.cpu_count() or 1, len(bands))

    def run_band(y0: int, y1: int) -> int:
        tone[y0:y1] = _convolve_band(bilateral, noise64, orientation, t_i, y0, y1, ratio, cfg)
        return y1 - y0

    rows_done = 0

    def report(rows: int) -> None:
        nonlocal rows_done
        rows_done += rows
        logger.debug(f"LIC progress: {rows_done}/{height} rows")
        if progress is not None:
            progress(rows_done, height)

    if workers <= 1:
        for y0, y1 in bands:
            report(run_band(y0, y1))
    else:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(run_band, y0, y1) for y0, y1 in bands]
            for future in as_completed(futures):
                report(future.result())

    compute.assert_finite(tone, "tone")
    logger.debug(
        f"LIC done: {width}x{height}x{bilateral.shape[2]}, "
        f"{2 * cfg.angular_steps + 1}x{2 * cfg.spatial_steps + 1} samples/pixel, workers={workers}"
    )
    return tone.reshape(image.shape)
