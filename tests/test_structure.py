"""Unit tests for edge response and flow field estimation.

Tests for pencil_lic.structure:
    - dog_edges: flat image → no response; step → strong response on dark side
    - orientation_field: strokes run along vertical and horizontal edges
    - estimate_structure: both fields share the image size

Run:
    pytest tests/test_structure.py -v
"""

import math

import numpy as np
import pytest

from pencil_lic.structure import dog_edges, estimate_structure, orientation_field


def angle_mod_pi(a):
    """Distance between two axial angles (period π)."""
    d = np.mod(a, math.pi)
    return np.minimum(d, math.pi - d)


@pytest.fixture
def vertical_step():
    img = np.ones((40, 40), dtype=np.float32)
    img[:, :20] = 0.0
    return img


def test_dog_flat_image_has_no_edges():
    edge = dog_edges(np.full((16, 16), 0.5, dtype=np.float32))
    assert edge.shape == (16, 16)
    assert edge.dtype == np.float32
    assert not edge.any()


def test_dog_step_edge(vertical_step):
    edge = dog_edges(vertical_step)

    assert edge.min() >= 0.0
    assert edge.max() < 1.0
    # Dark side right next to the step responds strongly
    assert edge[20, 19] > 0.75
    # Far from the step nothing fires
    assert edge[20, 2] == pytest.approx(0.0, abs=1e-6)
    assert edge[20, 37] == pytest.approx(0.0, abs=1e-6)


def test_flow_follows_vertical_edge(vertical_step):
    orientation = orientation_field(vertical_step)

    assert orientation.shape == vertical_step.shape
    assert orientation.dtype == np.float32
    np.testing.assert_array_less(angle_mod_pi(orientation[5:35, 19] - math.pi / 2), 1e-3)


def test_flow_follows_horizontal_edge():
    img = np.ones((40, 40), dtype=np.float32)
    img[:20, :] = 0.0

    orientation = orientation_field(img)

    np.testing.assert_array_less(angle_mod_pi(orientation[20, 5:35]), 1e-3)


def test_estimate_structure_shapes(vertical_step):
    orientation, edge = estimate_structure(vertical_step)
    assert orientation.shape == edge.shape == vertical_step.shape


def test_structure_rejects_color_input():
    with pytest.raises(ValueError):
        dog_edges(np.zeros((8, 8, 3), dtype=np.float32))
    with pytest.raises(ValueError):
        orientation_field(np.zeros((8, 8, 3), dtype=np.float32))
