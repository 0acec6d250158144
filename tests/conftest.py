"""Pytest fixtures for threadart tests."""

import os
import tempfile

import cv2
import numpy as np
import pytest


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def ring_image():
    """White 200x200 grayscale image with a dark ring in the middle."""
    img = np.full((200, 200), 255, dtype=np.uint8)
    cv2.circle(img, (100, 100), 60, 0, 3)
    return img


@pytest.fixture
def step_image():
    """50x50 image, black on the left half and white on the right."""
    img = np.zeros((50, 50), dtype=np.uint8)
    img[:, 25:] = 255
    return img


@pytest.fixture
def uniform_edge_map():
    """Factory for edge maps with the same intensity everywhere."""
    from threadart.models import EdgeMap

    def _make(width=300, height=300, value=200):
        return EdgeMap.from_array(np.full((height, width), value, dtype=np.uint8))

    return _make


@pytest.fixture
def circle_pegs():
    """Factory for evenly spaced circle pegs on a square canvas."""
    from threadart.layout.pegs import generate_pegs

    def _make(count=10, size=300, margin=10):
        return generate_pegs(count, (size, size), shape="circle", margin=margin)

    return _make


@pytest.fixture
def default_config():
    """Create default pipeline configuration."""
    from threadart.config import PipelineConfig
    return PipelineConfig()


@pytest.fixture
def small_config():
    """Configuration sized for the 200x200 ring image."""
    from threadart.config import PipelineConfig

    config = PipelineConfig()
    config.canvas.width = 200
    config.canvas.height = 200
    config.layout.peg_count = 36
    config.synthesis.max_lines = 30
    config.synthesis.neighbor_avoidance = 2
    return config


@pytest.fixture
def ring_input_file(temp_dir, ring_image):
    """Write the ring image to disk for pipeline tests."""
    path = os.path.join(temp_dir, "ring.png")
    cv2.imwrite(path, ring_image)
    return path
