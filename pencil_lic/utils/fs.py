"""Filesystem helpers: atomic writes, YAML, image and anchor-point loading.

Provides:
    - Atomic writes: sibling tmp file → rename (no partial outputs)
    - YAML load/save
    - Image loading with OpenCV (any depth, channel order kept as BGR)
    - Anchor point loading from YAML

All paths use pathlib.Path.

Usage:
    from pencil_lic.utils import fs
    img = fs.load_image("photo.png")
    fs.atomic_save_image(tone_u8, "out/photo_pencil.png")
    fs.atomic_yaml_dump(metadata, "out/photo_pencil.yaml")
"""

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

import cv2
import numpy as np
import yaml
from PIL import Image


def ensure_dir(p: Union[str, Path]) -> Path:
    """Create directory if it doesn't exist, return Path object."""
    p = Path(p)
    p.mkdir(parents=True, exist_ok=True)
    return p


@contextmanager
def _staged(path: Path, what: str) -> Iterator[Path]:
    """Yield a sibling tmp path that replaces ``path`` once the block succeeds.

    The tmp name keeps the target's extension so writers that infer the format
    from it (PIL) still work. On failure the tmp file is removed and the error
    is re-raised as ``RuntimeError``; ``path`` is never left half-written.
    """
    ensure_dir(path.parent)
    tmp_path = path.with_name(f".{path.stem}.partial{path.suffix}")
    try:
        yield tmp_path
        os.replace(tmp_path, path)
    except Exception as e:
        tmp_path.unlink(missing_ok=True)
        raise RuntimeError(f"Failed to write {what} {path}: {e}") from e


def atomic_write_text(path: Union[str, Path], text: str) -> None:
    """Write UTF-8 text atomically, fsynced before the rename."""
    path = Path(path)
    with _staged(path, "file") as tmp_path:
        with open(tmp_path, 'w', encoding='utf-8') as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())


def atomic_save_image(
    img: np.ndarray,
    path: Union[str, Path],
    pil_kwargs: Optional[Dict[str, Any]] = None
) -> None:
    """Save an 8-bit image atomically.

    Parameters
    ----------
    img : np.ndarray
        (H, W) or (H, W, 1) grayscale, or (H, W, 3) in BGR order (OpenCV
        convention). Non-uint8 arrays are clipped to [0, 255] and cast.
    path : Union[str, Path]
        Target file path (extension determines format)
    pil_kwargs : Optional[Dict[str, Any]]
        Additional kwargs for PIL.Image.save
    """
    path = Path(path)

    if img.dtype != np.uint8:
        img = np.clip(img, 0, 255).astype(np.uint8)
    if img.ndim == 3 and img.shape[2] == 1:
        img = img[:, :, 0]
    if img.ndim == 3 and img.shape[2] == 3:
        img = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
    elif img.ndim != 2:
        raise ValueError(f"Cannot save image with shape {img.shape}")

    pil_img = Image.fromarray(np.ascontiguousarray(img))
    with _staged(path, "image") as tmp_path:
        pil_img.save(tmp_path, **(pil_kwargs or {}))


def atomic_yaml_dump(obj: Any, path: Union[str, Path]) -> None:
    """Save object as YAML atomically (safe_dump, insertion order kept)."""
    atomic_write_text(
        path,
        yaml.safe_dump(obj, default_flow_style=False, sort_keys=False, allow_unicode=True)
    )


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """Load YAML file safely.

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    yaml.YAMLError
        If YAML parsing fails
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"YAML file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Failed to parse YAML file {path}: {e}") from e
    return data if data is not None else {}


def load_image(path: Union[str, Path]) -> np.ndarray:
    """Load an image unchanged (depth and channel count preserved).

    Returns
    -------
    np.ndarray
        (H, W) or (H, W, C) array as decoded by OpenCV (BGR order)

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    ValueError
        If OpenCV cannot decode the file
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")

    img = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if img is None:
        raise ValueError(f"Could not read image: {path}")
    return img


def load_points(path: Union[str, Path]) -> List[Tuple[float, float]]:
    """Load stroke anchor points from YAML.

    Accepted layouts::

        points: [[12.0, 40.5], [13.0, 41.0]]

    or a bare top-level list of ``[x, y]`` pairs. Coordinates are pixels,
    x = column, y = row.

    Raises
    ------
    ValueError
        If an entry is not a pair of numbers
    """
    data = load_yaml(path)
    raw = data.get('points', []) if isinstance(data, dict) else data
    if raw is None:
        return []

    points = []
    for i, pt in enumerate(raw):
        if not isinstance(pt, (list, tuple)) or len(pt) != 2:
            raise ValueError(f"Point {i} in {path} must be [x, y], got {pt!r}")
        points.append((float(pt[0]), float(pt[1])))
    return points
