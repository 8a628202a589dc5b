"""Numeric helpers shared by the structure and renderer layers.

Provides:
    - Pixel-depth normalization (uint8/uint16 → float32 [0, 1] and back)
    - Grayscale conversion for 1/3/4-channel inputs
    - Shape contracts (same H×W, finite values)

Invariants:
    - Images are numpy arrays (H, W) or (H, W, C), OpenCV BGR channel order
    - Float images are float32 after normalization
"""

from typing import Tuple

import cv2
import numpy as np


def to_float01(img: np.ndarray) -> np.ndarray:
    """Convert an image to float32.

    Parameters
    ----------
    img : np.ndarray
        Any depth. Integer depths are scaled by their full range
        (uint8 → /255, uint16 → /65535); float inputs are cast unchanged.

    Returns
    -------
    np.ndarray
        float32 image, same shape
    """
    if img.dtype == np.uint8:
        return img.astype(np.float32) / 255.0
    if img.dtype == np.uint16:
        return img.astype(np.float32) / 65535.0
    if np.issubdtype(img.dtype, np.integer) or img.dtype == np.bool_:
        return img.astype(np.float32)
    return img.astype(np.float32, copy=False)


def to_uint8(img: np.ndarray) -> np.ndarray:
    """Clip a [0, 1] float image and quantize to uint8."""
    return (np.clip(img, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)


def channels_of(img: np.ndarray) -> int:
    """Number of channels: 1 for (H, W), C for (H, W, C)."""
    if img.ndim == 2:
        return 1
    if img.ndim == 3:
        return img.shape[2]
    raise ValueError(f"Expected (H, W) or (H, W, C) image, got shape {img.shape}")


def to_gray(img: np.ndarray) -> np.ndarray:
    """Convert a float image to a single-channel (H, W) float32 image.

    1-channel inputs are passed through; 3-channel inputs are treated as BGR.
    """
    dim = channels_of(img)
    if dim == 1:
        return np.ascontiguousarray(img.reshape(img.shape[:2]), dtype=np.float32)
    if dim == 3:
        return cv2.cvtColor(img.astype(np.float32, copy=False), cv2.COLOR_BGR2GRAY)
    raise ValueError(f"Unsupported channel count {dim} for grayscale conversion")


def hw_of(arr: np.ndarray) -> Tuple[int, int]:
    """(H, W) of a 2-D or 3-D array."""
    if arr.ndim not in (2, 3):
        raise ValueError(f"Expected 2-D or 3-D array, got shape {arr.shape}")
    return int(arr.shape[0]), int(arr.shape[1])


def check_same_hw(
    reference: np.ndarray,
    other: np.ndarray,
    name: str,
    single_channel: bool = True
) -> None:
    """Fail fast when a derived field does not match the source image size.

    Parameters
    ----------
    reference : np.ndarray
        Source image, (H, W) or (H, W, C)
    other : np.ndarray
        Derived field to check
    name : str
        Field name for the error message
    single_channel : bool
        Also require ``other`` to be 2-D

    Raises
    ------
    ValueError
        On any dimension mismatch
    """
    if single_channel and other.ndim != 2:
        raise ValueError(f"{name} must be a single-channel (H, W) array, got shape {other.shape}")
    if hw_of(other) != hw_of(reference):
        raise ValueError(
            f"{name} has size {hw_of(other)} but the image is {hw_of(reference)} (H, W)"
        )


def assert_finite(x: np.ndarray, name: str = "array") -> None:
    """Raise ValueError if ``x`` contains NaN or Inf."""
    if not np.isfinite(x).all():
        nan_count = int(np.isnan(x).sum())
        inf_count = int(np.isinf(x).sum())
        raise ValueError(
            f"{name} contains non-finite values: {nan_count} NaNs, {inf_count} Infs. "
            f"Shape: {x.shape}, dtype: {x.dtype}"
        )
