"""Orientation quantization against an edge-distance field.

Far from edges, strokes snap to a coarse hatch lattice
``ceil(θ / period) · period + offset`` (default period π, offset −π/4), which
collapses every direction onto one diagonal hatch. Within
``max(W, H) / threshold_divisor`` pixels of an edge the flow direction is kept
so strokes still trace the edge.

The quantizer owns the field while it runs: it returns a new array unless the
caller passes ``out=orientation`` explicitly.
"""

import logging
from typing import Optional

import numpy as np
from scipy import ndimage

from ..utils import compute, validators

logger = logging.getLogger(__name__)


def distance_to_edges(edge: np.ndarray, edge_cutoff: float = 0.25) -> np.ndarray:
    """Euclidean distance from every pixel to the nearest edge pixel.

    Parameters
    ----------
    edge : np.ndarray
        Edge response, shape (H, W), values in [0, 1]
    edge_cutoff : float
        Pixels with ``edge > edge_cutoff`` are edge pixels

    Returns
    -------
    distance : np.ndarray
        Shape (H, W), float32; 0 on edge pixels, +inf everywhere when there
        is no edge pixel at all
    """
    if edge.ndim != 2:
        raise ValueError(f"edge must be a (H, W) array, got shape {edge.shape}")

    edge_mask = edge > edge_cutoff
    if not edge_mask.any():
        return np.full(edge.shape, np.inf, dtype=np.float32)

    # EDT measures distance to the nearest zero, so edges become the zeros
    return ndimage.distance_transform_edt(~edge_mask).astype(np.float32)


def snap_to_lattice(
    theta: np.ndarray,
    period: float = np.pi,
    offset: float = -np.pi / 4.0
) -> np.ndarray:
    """Map angles onto the hatch lattice ``ceil(θ / period) · period + offset``."""
    return np.ceil(theta / period) * period + offset


def quantize_orientation(
    orientation: np.ndarray,
    edge: np.ndarray,
    cfg: Optional[validators.QuantizationConfig] = None,
    out: Optional[np.ndarray] = None
) -> np.ndarray:
    """Snap orientations outside the edge snap zone to the hatch lattice.

    Parameters
    ----------
    orientation : np.ndarray
        Stroke angle field, shape (H, W), radians
    edge : np.ndarray
        Edge response, shape (H, W), values in [0, 1]
    cfg : QuantizationConfig, optional
        Lattice and snap-zone parameters
    out : np.ndarray, optional
        Destination array; pass ``orientation`` itself for in-place update

    Returns
    -------
    np.ndarray
        Quantized orientation field, float32, shape (H, W)

    Raises
    ------
    ValueError
        If the fields do not share the same (H, W)
    """
    cfg = cfg or validators.QuantizationConfig()
    compute.check_same_hw(orientation, orientation, "orientation")
    compute.check_same_hw(orientation, edge, "edge")

    height, width = orientation.shape
    threshold = max(width, height) / cfg.threshold_divisor

    distance = distance_to_edges(edge, cfg.edge_cutoff)
    far = distance > threshold

    if out is None:
        out = orientation.astype(np.float32, copy=True)
    elif out is not orientation:
        compute.check_same_hw(orientation, out, "out")
        out[...] = orientation

    snapped = snap_to_lattice(
        out[far].astype(np.float64), cfg.hatch_period, cfg.hatch_offset
    )
    out[far] = snapped.astype(out.dtype)

    logger.debug(
        f"Quantized {int(far.sum())}/{far.size} orientations "
        f"(snap threshold {threshold:.2f} px)"
    )
    return out
