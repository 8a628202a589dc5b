"""Tone image diagnostics.

Provides:
    - local_variance: per-pixel variance in a box window
    - tone_stats: summary statistics written to render metadata

Used by:
    - LOD tests: multi-level output is smoother than a single level
    - scripts/render_pencil.py: metadata sidecar
"""

from typing import Dict

import cv2
import numpy as np


def local_variance(img: np.ndarray, ksize: int = 5) -> np.ndarray:
    """Compute local variance E[x²] − E[x]² over a ksize×ksize box.

    Parameters
    ----------
    img : np.ndarray
        (H, W) or (H, W, C) float image
    ksize : int
        Box window side, must be odd and >= 1

    Returns
    -------
    np.ndarray
        float64 variance map, same shape as img (clamped at 0)
    """
    if ksize < 1 or ksize % 2 == 0:
        raise ValueError(f"ksize must be a positive odd integer, got {ksize}")

    x = img.astype(np.float64)
    mean = cv2.blur(x, (ksize, ksize), borderType=cv2.BORDER_REFLECT)
    mean_sq = cv2.blur(x * x, (ksize, ksize), borderType=cv2.BORDER_REFLECT)
    return np.maximum(mean_sq - mean * mean, 0.0)


def tone_stats(img: np.ndarray) -> Dict[str, float]:
    """Min/max/mean/std and fraction of values outside [0, 1]."""
    x = img.astype(np.float64)
    return {
        'min': float(x.min()),
        'max': float(x.max()),
        'mean': float(x.mean()),
        'std': float(x.std()),
        'out_of_range_frac': float(np.mean((x < 0.0) | (x > 1.0))),
    }
