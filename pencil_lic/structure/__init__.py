"""Image structure estimation consumed by the renderer.

Modules:
    - edges: difference-of-Gaussians edge response in [0, 1]
    - flow: structure-tensor stroke orientation in radians

Both operate on (H, W) float grayscale images and return arrays of the same
size.
"""

from typing import Optional, Tuple

import numpy as np

from ..utils import validators
from .edges import dog_edges
from .flow import orientation_field


def estimate_structure(
    gray: np.ndarray,
    cfg: Optional[validators.StructureConfig] = None
) -> Tuple[np.ndarray, np.ndarray]:
    """Return (orientation, edge) for a grayscale image."""
    cfg = cfg or validators.StructureConfig()
    return orientation_field(gray, cfg), dog_edges(gray, cfg)


__all__ = ['dog_edges', 'orientation_field', 'estimate_structure']
