"""Pencil texture synthesis.

Modules:
    - quantize: edge-distance field and hatch-lattice orientation snapping
    - noise: dense dot pattern / sparse anchor impulses + normalization ratio
    - lic: anisotropic, jittered line integral convolution
    - pencil: single-scale pipeline and level-of-detail compositing
"""

from .lic import convolve_pixel, line_integral_convolution
from .noise import NoiseField, build_noise, uniform_dot_pattern
from .pencil import render, render_lod
from .quantize import distance_to_edges, quantize_orientation

__all__ = [
    'NoiseField',
    'build_noise',
    'convolve_pixel',
    'distance_to_edges',
    'line_integral_convolution',
    'quantize_orientation',
    'render',
    'render_lod',
    'uniform_dot_pattern',
]
