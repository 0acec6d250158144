"""
Artifact saving utilities for threadart.

Writes debug images and JSON files for a pattern run.
"""

import json
import os

import cv2
import numpy as np

from threadart.tracer import get_tracer


def ensure_dir(path):
    """Create directory if it does not exist."""
    if path:
        os.makedirs(path, exist_ok=True)


def save_image(img, path, max_edge=None):
    """
    Save an image to disk.

    Optionally downscales to max_edge while preserving aspect ratio.
    3-channel images are expected in RGB order.
    """
    tracer = get_tracer()

    if max_edge and max(img.shape[:2]) > max_edge:
        scale = max_edge / max(img.shape[:2])
        new_size = (int(img.shape[1] * scale), int(img.shape[0] * scale))
        img = cv2.resize(img, new_size, interpolation=cv2.INTER_AREA)

    if img.ndim == 3 and img.shape[2] == 3:
        img = cv2.cvtColor(img, cv2.COLOR_RGB2BGR)

    ensure_dir(os.path.dirname(path))
    cv2.imwrite(path, img)
    tracer.event(f"Saved image: {path}")


def save_json(data, path, indent=2):
    """Save a dictionary or pydantic model to JSON."""
    tracer = get_tracer()

    ensure_dir(os.path.dirname(path))

    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json")

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, default=str)

    tracer.event(f"Saved JSON: {path}")


def draw_pattern_overlay(base_img, pegs=None, connections=None,
                         thread_color=(0, 0, 0), peg_color=(255, 0, 0), peg_radius=2):
    """
    Draw threads and pegs over a copy of base_img.

    base_img may be grayscale or RGB; the result is RGB.
    """
    if base_img.ndim == 2:
        overlay = cv2.cvtColor(base_img.astype(np.uint8), cv2.COLOR_GRAY2RGB)
    else:
        overlay = base_img.copy()

    for connection in connections or []:
        p1 = (int(round(connection.start[0])), int(round(connection.start[1])))
        p2 = (int(round(connection.end[0])), int(round(connection.end[1])))
        cv2.line(overlay, p1, p2, thread_color, 1, lineType=cv2.LINE_AA)

    for peg in pegs or []:
        center = (int(round(peg.x)), int(round(peg.y)))
        cv2.circle(overlay, center, peg_radius, peg_color, -1)

    return overlay


def render_threads(width, height, connections):
    """Render threads in black on a white canvas, as a grayscale image."""
    canvas = np.full((height, width), 255, dtype=np.uint8)
    for connection in connections:
        p1 = (int(round(connection.start[0])), int(round(connection.start[1])))
        p2 = (int(round(connection.end[0])), int(round(connection.end[1])))
        cv2.line(canvas, p1, p2, 0, 1, lineType=cv2.LINE_AA)
    return canvas


class DebugArtifactWriter:
    """
    Helper class to manage debug artifact writing for a single run.

    Artifacts land in <out_dir>/debug/<run_id>/<stage>/.
    """

    def __init__(self, out_dir, run_id, enabled=True, max_edge=1600):
        self.out_dir = out_dir
        self.run_id = run_id
        self.enabled = enabled
        self.max_edge = max_edge

    def get_stage_dir(self, stage_name):
        """Get (and create) the debug directory for a stage."""
        stage_dir = os.path.join(self.out_dir, "debug", self.run_id, stage_name)
        ensure_dir(stage_dir)
        return stage_dir

    def save_image(self, img, stage_name, filename):
        if not self.enabled:
            return
        save_image(img, os.path.join(self.get_stage_dir(stage_name), filename), max_edge=self.max_edge)

    def save_json(self, data, stage_name, filename):
        if not self.enabled:
            return
        save_json(data, os.path.join(self.get_stage_dir(stage_name), filename))

    def save_overlay(self, base_img, stage_name, filename, **kwargs):
        """Draw and save a peg/thread overlay."""
        if not self.enabled:
            return
        self.save_image(draw_pattern_overlay(base_img, **kwargs), stage_name, filename)
