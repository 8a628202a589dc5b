"""Structure-tensor flow field (dominant local stroke direction).

The smoothed structure tensor J = G * (∇I ∇Iᵀ) gives the dominant gradient
angle φ = ½·atan2(2·Jxy, Jxx − Jyy). Strokes follow the tangent, φ + π/2,
so they run along edges rather than across them.

Angles are in radians in image coordinates (x right, y down), matching the
sampling convention of the line integral convolution.
"""

import logging
from typing import Optional

import numpy as np
from skimage.feature import structure_tensor

from ..utils import validators

logger = logging.getLogger(__name__)


def orientation_field(
    gray: np.ndarray,
    cfg: Optional[validators.StructureConfig] = None
) -> np.ndarray:
    """Estimate per-pixel stroke orientation.

    Parameters
    ----------
    gray : np.ndarray
        Grayscale image, shape (H, W), float in [0, 1]
    cfg : StructureConfig, optional
        Uses ``flow_sigma`` (tensor smoothing, px)

    Returns
    -------
    orientation : np.ndarray
        Tangent angle in radians, shape (H, W), float32, range (0, π]

    Notes
    -----
    Flat regions have a zero tensor; atan2(0, 0) = 0 so they get π/2.
    """
    cfg = cfg or validators.StructureConfig()
    if gray.ndim != 2:
        raise ValueError(f"orientation_field expects a (H, W) grayscale image, got shape {gray.shape}")

    # rc order: rows (y) first, columns (x) second
    a_rr, a_rc, a_cc = structure_tensor(
        gray.astype(np.float64), sigma=cfg.flow_sigma, mode='nearest', order='rc'
    )
    gradient_angle = 0.5 * np.arctan2(2.0 * a_rc, a_cc - a_rr)
    return (gradient_angle + np.pi / 2.0).astype(np.float32)
