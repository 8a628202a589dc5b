"""Pencil drawing pipeline: single-scale render and level-of-detail blend.

Single scale (``render``):
    1. Normalize pixel depth to float32
    2. Grayscale → orientation field + edge response
    3. Quantize orientation away from edges
    4. Dense or sparse noise field + normalization ratio
    5. Line integral convolution → tone image

Level of detail (``render_lod``):
    For l = levels … 1 the image is resized by 1 / 2^(l−1) (cubic), anchor
    points are scaled by the same factor, ``render`` runs at that size and the
    result is resized back to native size (cubic). The output is the mean of
    all levels: coarse passes contribute long smooth strokes, the native pass
    fine detail.

Randomness comes from one ``numpy.random.Generator`` threaded through every
stage and level, so a seed fully determines the output.

Usage:
    from pencil_lic import render_lod
    from pencil_lic.utils import fs, validators

    cfg = validators.load_renderer_config("configs/pencil_renderer.v1.yaml")
    img = fs.load_image("photo.jpg")
    tone = render_lod(img, levels=3, cfg=cfg, rng=np.random.default_rng(7))
"""

import logging
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from ..structure import estimate_structure
from ..utils import compute, logging_config, profiler, validators
from .lic import ProgressCallback, line_integral_convolution
from .noise import build_noise
from .quantize import quantize_orientation

logger = logging.getLogger(__name__)

Points = Optional[Sequence[Tuple[float, float]]]


def _timing_sink(name: str, elapsed: float) -> None:
    logger.debug(f"{name}: {elapsed:.3f} s")


def _make_rng(cfg: validators.PencilRendererV1, rng: Optional[np.random.Generator]) -> np.random.Generator:
    return rng if rng is not None else np.random.default_rng(cfg.randomness.seed)


def _resize(img: np.ndarray, size_wh: Tuple[int, int]) -> np.ndarray:
    """Cubic resize that keeps a trailing singleton channel axis."""
    resized = cv2.resize(img, size_wh, interpolation=cv2.INTER_CUBIC)
    if img.ndim == 3 and resized.ndim == 2:
        resized = resized[:, :, None]
    return resized


def render(
    image: np.ndarray,
    points: Points = None,
    cfg: Optional[validators.PencilRendererV1] = None,
    rng: Optional[np.random.Generator] = None,
    progress: Optional[ProgressCallback] = None
) -> np.ndarray:
    """Render a single-scale pencil drawing.

    Parameters
    ----------
    image : np.ndarray
        (H, W) or (H, W, C) image, C in {1, 3} (BGR), any depth
    points : sequence of (x, y), optional
        Stroke anchor points in pixels; None or empty uses dense noise
    cfg : PencilRendererV1, optional
        Renderer configuration (defaults reproduce the reference parameters)
    rng : np.random.Generator, optional
        Randomness source; seeded from ``cfg.randomness.seed`` if omitted
    progress : callable, optional
        Forwarded to the convolution as progress(rows_done, rows_total)

    Returns
    -------
    np.ndarray
        float32 tone image, same shape as ``image``, roughly in [0, 1]

    Raises
    ------
    ValueError
        On unsupported channel count or degenerate image size
    """
    cfg = cfg or validators.PencilRendererV1()
    rng = _make_rng(cfg, rng)

    img = compute.to_float01(image)
    dim = compute.channels_of(img)
    if dim not in (1, 3):
        raise ValueError(f"render supports 1- or 3-channel images, got {dim} channels")

    gray = compute.to_gray(img)

    with profiler.timer("structure", sink=_timing_sink):
        orientation, edge = estimate_structure(gray, cfg.structure)
    orientation = quantize_orientation(orientation, edge, cfg.quantization, out=orientation)

    noise = build_noise(gray, points, cfg.noise, rng)

    with profiler.timer("line_integral_convolution", sink=_timing_sink):
        tone = line_integral_convolution(
            img,
            orientation,
            noise.field,
            noise.ratio,
            cfg.convolution,
            rng=rng,
            progress=progress
        )
    return tone


def render_lod(
    image: np.ndarray,
    points: Points = None,
    levels: Optional[int] = None,
    cfg: Optional[validators.PencilRendererV1] = None,
    rng: Optional[np.random.Generator] = None,
    progress: Optional[ProgressCallback] = None
) -> np.ndarray:
    """Render at ``levels`` halved resolutions and average the results.

    Parameters
    ----------
    image : np.ndarray
        (H, W) or (H, W, C) image, C in {1, 3}, any depth
    points : sequence of (x, y), optional
        Anchor points at native resolution
    levels : int, optional
        Number of levels (>= 1); defaults to ``cfg.lod.levels``
    cfg : PencilRendererV1, optional
    rng : np.random.Generator, optional
        Shared by all levels, consumed coarsest level first
    progress : callable, optional
        Forwarded to every level's convolution

    Returns
    -------
    np.ndarray
        float32 tone image, same shape as ``image``

    Raises
    ------
    ValueError
        If levels < 1
    """
    cfg = cfg or validators.PencilRendererV1()
    levels = cfg.lod.levels if levels is None else int(levels)
    if levels < 1:
        raise ValueError(f"levels must be >= 1, got {levels}")
    rng = _make_rng(cfg, rng)

    img = compute.to_float01(image)
    height, width = compute.hw_of(img)
    accum = np.zeros(img.shape, dtype=np.float32)
    level_timer = profiler.TimerAccumulator("lod_level")

    for level in range(levels, 0, -1):
        scale = 1.0 / 2 ** (level - 1)
        logging_config.push_context(lod_level=level)
        try:
            with level_timer.measure():
                if level == 1:
                    small, small_points = img, points
                else:
                    size_wh = (max(1, int(round(width * scale))), max(1, int(round(height * scale))))
                    small = _resize(img, size_wh)
                    small_points = None if points is None else [(x * scale, y * scale) for x, y in points]

                tone = render(small, small_points, cfg, rng, progress)

                if tone.shape[:2] != (height, width):
                    tone = _resize(tone, (width, height))
                accum += tone
            logger.info(
                f"LOD level {level}/{levels} rendered at "
                f"{small.shape[1]}x{small.shape[0]} (scale {scale:g})"
            )
        finally:
            logging_config.pop_context(keys=["lod_level"])

    logger.debug(f"LOD mean level time: {level_timer.mean:.3f} s")
    return accum / float(levels)
