"""Difference-of-Gaussians edge response.

The response is an edge *strength* in [0, 1): 0 on flat or bright-side
regions, approaching 1 on the dark side of a luminance step. The orientation
quantizer binarizes it at ``QuantizationConfig.edge_cutoff``.
"""

import logging
from typing import Optional

import cv2
import numpy as np

from ..utils import validators

logger = logging.getLogger(__name__)


def dog_edges(
    gray: np.ndarray,
    cfg: Optional[validators.StructureConfig] = None
) -> np.ndarray:
    """Compute a DoG edge response map.

    Parameters
    ----------
    gray : np.ndarray
        Grayscale image, shape (H, W), float in [0, 1]
    cfg : StructureConfig, optional
        Detector parameters (dog_sigma, dog_k, dog_tau, dog_phi)

    Returns
    -------
    edge : np.ndarray
        Edge response, shape (H, W), float32 in [0, 1)

    Notes
    -----
    D = G(σ) * I − τ · G(kσ) * I. Pixels with D > 0 get 0; the others get
    −tanh(φ · D), a soft ramp that saturates on strong edges.
    """
    cfg = cfg or validators.StructureConfig()
    if gray.ndim != 2:
        raise ValueError(f"dog_edges expects a (H, W) grayscale image, got shape {gray.shape}")

    img = gray.astype(np.float32, copy=False)
    inner = cv2.GaussianBlur(img, (0, 0), sigmaX=cfg.dog_sigma, borderType=cv2.BORDER_REPLICATE)
    outer = cv2.GaussianBlur(
        img, (0, 0), sigmaX=cfg.dog_sigma * cfg.dog_k, borderType=cv2.BORDER_REPLICATE
    )
    diff = inner - cfg.dog_tau * outer

    edge = np.where(diff > 0.0, 0.0, -np.tanh(cfg.dog_phi * diff)).astype(np.float32)

    logger.debug(
        f"DoG edges: sigma={cfg.dog_sigma}, k={cfg.dog_k}, "
        f"mean response={float(edge.mean()):.4f}"
    )
    return edge
