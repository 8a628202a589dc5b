"""Noise fields that seed the pencil texture.

Two modes:
    - Dense: uniform random unit dots over the whole image.
    - Sparse: one unit impulse per caller-supplied anchor point.

Each field comes with ``ratio``, the brightness normalization divisor used by
the line integral convolution. A field whose ratio would be zero is rejected
here rather than producing a division by zero downstream.
"""

import logging
from typing import NamedTuple, Optional, Sequence, Tuple

import numpy as np

from ..utils import validators

logger = logging.getLogger(__name__)


class NoiseField(NamedTuple):
    """Noise field and its normalization ratio."""
    field: np.ndarray
    ratio: float


def uniform_dot_pattern(
    shape: Tuple[int, int],
    reference: Optional[np.ndarray],
    n_candidates: int,
    rng: np.random.Generator
) -> np.ndarray:
    """Scatter unit dots at uniformly drawn pixel positions.

    Dot placement ignores the reference tone: brightness reaches the stroke
    only through the ``(1 − I)`` darkness factor applied during convolution.

    Parameters
    ----------
    shape : tuple
        (H, W) of the field
    reference : np.ndarray, optional
        Image the field is built for; only its size is checked, its values
        never bias where dots land
    n_candidates : int
        Number of draws; collisions merge, so about
        ``1 − exp(−n_candidates / area)`` of the pixels end up lit
    rng : np.random.Generator
        Source of randomness

    Returns
    -------
    np.ndarray
        (H, W) float32 field with values in {0, 1}
    """
    height, width = shape
    if reference is not None and reference.shape[:2] != (height, width):
        raise ValueError(
            f"reference image is {reference.shape[:2]} but the noise field is {(height, width)}"
        )

    field = np.zeros((height, width), dtype=np.float32)
    if n_candidates <= 0:
        return field

    xs = rng.integers(0, width, size=n_candidates)
    ys = rng.integers(0, height, size=n_candidates)
    field[ys, xs] = 1.0
    return field


def build_noise(
    gray: np.ndarray,
    points: Optional[Sequence[Tuple[float, float]]] = None,
    cfg: Optional[validators.NoiseConfig] = None,
    rng: Optional[np.random.Generator] = None
) -> NoiseField:
    """Build the noise field for an image.

    Parameters
    ----------
    gray : np.ndarray
        Grayscale source, shape (H, W); defines the field size
    points : sequence of (x, y), optional
        Anchor points in pixels (x = column). None or empty selects dense mode.
    cfg : NoiseConfig, optional
        Density and ratio gains
    rng : np.random.Generator, optional
        Used in dense mode; a fresh default generator if omitted

    Returns
    -------
    NoiseField
        ``field`` (H, W) float32 and strictly positive ``ratio``

    Raises
    ------
    ValueError
        If the image is too small for a non-zero ratio
    """
    cfg = cfg or validators.NoiseConfig()
    height, width = gray.shape[:2]
    area = width * height
    if area <= 0:
        raise ValueError(f"Cannot build noise for an empty image of shape {gray.shape}")

    if points is None or len(points) == 0:
        rng = rng if rng is not None else np.random.default_rng()
        n_target = int(cfg.dense_target_frac * area)
        n_candidates = int(cfg.dense_candidate_frac * area)
        field = uniform_dot_pattern((height, width), gray, n_candidates, rng)
        ratio = cfg.dense_ratio_gain * n_target / area
        mode = "dense"
    else:
        field = np.zeros((height, width), dtype=np.float32)
        skipped = 0
        for x, y in points:
            px, py = int(x), int(y)
            if 0 <= px < width and 0 <= py < height:
                field[py, px] = 1.0
            else:
                skipped += 1
        if skipped:
            logger.debug(f"{skipped}/{len(points)} anchor points fall outside {width}x{height}")
        ratio = cfg.sparse_ratio_gain * len(points) / area
        mode = "sparse"

    if ratio <= 0.0:
        raise ValueError(
            f"Degenerate noise normalization (ratio={ratio}) for a {width}x{height} image in "
            f"{mode} mode; the image is too small for the configured density"
        )

    logger.debug(f"Noise ({mode}): {int(np.count_nonzero(field))} live cells, ratio={ratio:.5f}")
    return NoiseField(field, float(ratio))
