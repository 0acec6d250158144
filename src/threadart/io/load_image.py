"""
Image loading for the threadart command line.

Decodes an image file into the single-channel intensity grid consumed by
the edge map builder. Decode failures are raised here, before any pattern
stage runs.
"""

import os

import cv2

from threadart.tracer import get_tracer, trace


SUPPORTED_EXTENSIONS = [".png", ".jpg", ".jpeg", ".tiff", ".tif", ".bmp", ".webp"]


@trace(label="load_intensity")
def load_intensity(path, canvas_size=None):
    """
    Load an image from disk as a grayscale intensity grid.

    Args:
        path: image file path
        canvas_size: optional (width, height) to resize to

    Returns a tuple of (intensity, metadata) where:
    - intensity: uint8 numpy array (H, W)
    - metadata: dict with width, height, source_width, source_height, source_path

    Raises FileNotFoundError if path does not exist.
    Raises ValueError if the image cannot be decoded.
    """
    tracer = get_tracer()

    if not os.path.exists(path):
        raise FileNotFoundError(f"Image not found: {path}")

    gray = cv2.imread(path, cv2.IMREAD_GRAYSCALE)
    if gray is None:
        raise ValueError(f"Failed to decode image: {path}")

    source_height, source_width = gray.shape[:2]

    if canvas_size is not None:
        width, height = int(canvas_size[0]), int(canvas_size[1])
        if (width, height) != (source_width, source_height):
            gray = cv2.resize(gray, (width, height), interpolation=cv2.INTER_AREA)

    height, width = gray.shape[:2]
    tracer.event(f"Loaded image: {source_width}x{source_height} -> {width}x{height}")

    metadata = {
        "width": width,
        "height": height,
        "source_width": source_width,
        "source_height": source_height,
        "source_path": os.path.abspath(path),
    }

    return gray, metadata


def validate_image_input(path):
    """
    Check that an input path exists and looks like a supported image.

    Returns a list of error messages (empty if valid).
    """
    errors = []

    if not os.path.exists(path):
        errors.append(f"File not found: {path}")
        return errors

    ext = os.path.splitext(path)[1].lower()
    if ext not in SUPPORTED_EXTENSIONS:
        errors.append(f"Unsupported image format: {path}")

    return errors
