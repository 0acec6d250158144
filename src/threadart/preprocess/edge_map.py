"""
Edge map construction for thread patterns.

Turns a single-channel intensity grid into a gradient-magnitude map:
3x3 weighted smoothing, Sobel gradient, then continuous or binary output
with an optional connectivity enhancement pass.
"""

import cv2
import numpy as np

from threadart.models import EdgeMap, EdgeOutputMode, InvalidInputError
from threadart.tracer import get_tracer, trace


SMOOTH_KERNEL = np.array([
    [1, 2, 1],
    [2, 4, 2],
    [1, 2, 1],
], dtype=np.float32) / 16.0

SOBEL_X = np.array([
    [-1, 0, 1],
    [-2, 0, 2],
    [-1, 0, 1],
], dtype=np.float32)

SOBEL_Y = np.array([
    [-1, -2, -1],
    [0, 0, 0],
    [1, 2, 1],
], dtype=np.float32)

# 8-neighbour counting kernel (center excluded)
NEIGHBOR_KERNEL = np.array([
    [1, 1, 1],
    [1, 0, 1],
    [1, 1, 1],
], dtype=np.float32)

MIN_NEIGHBORS_FOR_PROMOTION = 4


@trace(label="build_edge_map")
def build_edge_map(intensity, config, debug_writer=None):
    """
    Build an EdgeMap from a raw intensity grid.

    Args:
        intensity: 2D array (height, width) of values in 0-255
        config: PipelineConfig, reads the `edges` section
        debug_writer: optional DebugArtifactWriter

    Returns:
        EdgeMap with the same dimensions as the input grid

    Raises InvalidInputError for empty, non-2D or non-finite grids.
    """
    tracer = get_tracer()

    gray = _validate_intensity(intensity)
    edges_cfg = config.edges

    with tracer.span("smooth", module="edge_map"):
        smoothed = smooth(gray)

    with tracer.span("gradient", module="edge_map"):
        magnitude = gradient_magnitude(smoothed)

    with tracer.span("output", module="edge_map"):
        try:
            mode = EdgeOutputMode(edges_cfg.mode)
        except ValueError:
            allowed = [m.value for m in EdgeOutputMode]
            raise InvalidInputError(f"Unknown edge output mode {edges_cfg.mode!r}, expected one of {allowed}")
        if mode == EdgeOutputMode.BINARY:
            edges = binarize_magnitude(magnitude, edges_cfg.binary_threshold)
        else:
            edges = np.rint(np.clip(magnitude, 0, 255)).astype(np.uint8)

        if edges_cfg.enhance and edges_cfg.dilation_passes > 0:
            edges = enhance_edges(edges, edges_cfg.dilation_passes)

    edge_map = EdgeMap(data=edges)

    nonzero_ratio = float(np.count_nonzero(edges)) / edges.size
    tracer.event(
        f"Edge map {edge_map.width}x{edge_map.height}: "
        f"mean={float(edges.mean()):.1f} nonzero_ratio={nonzero_ratio:.3f}"
    )

    if debug_writer:
        debug_writer.save_image(gray.astype(np.uint8), "edges", "00_intensity.png")
        debug_writer.save_image(np.clip(smoothed, 0, 255).astype(np.uint8), "edges", "01_smoothed.png")
        debug_writer.save_image(edges, "edges", "02_edge_map.png")
        debug_writer.save_json({
            "mode": mode.value,
            "binary_threshold": edges_cfg.binary_threshold,
            "enhance": edges_cfg.enhance,
            "dilation_passes": edges_cfg.dilation_passes,
            "mean_intensity": round(float(edges.mean()), 3),
            "nonzero_ratio": round(nonzero_ratio, 4),
            "width": edge_map.width,
            "height": edge_map.height,
        }, "edges", "edges_metrics.json")

    return edge_map


def _validate_intensity(intensity):
    """Check the grid shape and values, returning a float32 copy."""
    arr = np.asarray(intensity)

    if arr.ndim != 2:
        raise InvalidInputError(f"Intensity grid must be single-channel 2D, got shape {arr.shape}")
    if arr.shape[0] == 0 or arr.shape[1] == 0:
        raise InvalidInputError(f"Intensity grid must have positive dimensions, got {arr.shape}")

    arr = arr.astype(np.float32)
    if not np.all(np.isfinite(arr)):
        raise InvalidInputError("Intensity grid contains NaN or infinite values")

    return arr


def smooth(gray):
    """
    Apply the 1-2-1 weighted 3x3 average.

    Border rows and columns are not filtered and keep their input values.
    """
    src = gray.astype(np.float32)
    smoothed = cv2.filter2D(src, cv2.CV_32F, SMOOTH_KERNEL, borderType=cv2.BORDER_REPLICATE)

    smoothed[0, :] = src[0, :]
    smoothed[-1, :] = src[-1, :]
    smoothed[:, 0] = src[:, 0]
    smoothed[:, -1] = src[:, -1]

    return smoothed


def gradient_magnitude(smoothed):
    """
    Sobel gradient magnitude sqrt(Gx^2 + Gy^2).

    Border rows and columns are set to 0.
    """
    gx = cv2.filter2D(smoothed, cv2.CV_32F, SOBEL_X, borderType=cv2.BORDER_REPLICATE)
    gy = cv2.filter2D(smoothed, cv2.CV_32F, SOBEL_Y, borderType=cv2.BORDER_REPLICATE)
    magnitude = np.sqrt(gx * gx + gy * gy)

    magnitude[0, :] = 0
    magnitude[-1, :] = 0
    magnitude[:, 0] = 0
    magnitude[:, -1] = 0

    return magnitude


def binarize_magnitude(magnitude, threshold):
    """Map magnitudes above threshold to 255 and everything else to 0."""
    return np.where(magnitude > threshold, 255, 0).astype(np.uint8)


def enhance_edges(edges, passes):
    """
    Strengthen connected edges.

    Each pass promotes a nonzero pixel to 255 when at least 4 of its
    8 neighbours are nonzero. Pixels outside the grid count as zero.
    """
    result = edges.copy()

    for _ in range(passes):
        nonzero = (result > 0).astype(np.float32)
        counts = cv2.filter2D(nonzero, cv2.CV_32F, NEIGHBOR_KERNEL, borderType=cv2.BORDER_CONSTANT)
        promote = (result > 0) & (counts >= MIN_NEIGHBORS_FOR_PROMOTION)
        result[promote] = 255

    return result
