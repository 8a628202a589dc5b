"""Pencil LIC: flow-aligned pencil drawing stylization.

Renders a grayscale/colour tone image that looks drawn with pencil strokes:
strokes follow the image's local structure near edges, snap to a diagonal
hatch away from them, and the texture comes from noise convolved along the
stroke direction. Several resolutions are averaged to balance coarse and fine
strokes.

Architecture layers (strict one-way dependency):
    scripts/ → pencil_lic/renderer/ → pencil_lic/structure/ → pencil_lic/utils/

Key invariants:
    - Every derived field has the source image's exact H×W
    - Images are numpy arrays in OpenCV BGR order, float32 [0, 1] internally
    - All randomness flows through an explicit numpy Generator
    - YAML-only configs
"""

__version__ = "1.0.0"

from .renderer import render, render_lod

__all__ = ['__version__', 'render', 'render_lod']
