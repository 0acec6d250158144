"""
Configuration management for threadart.

Loads YAML configuration with sensible defaults for all pipeline stages.
"""

import os
from dataclasses import asdict, dataclass, field, fields
from typing import List, Optional

import yaml


@dataclass
class CanvasConfig:
    """Canvas size shared by the edge map and the peg layout."""
    width: int = 500
    height: int = 500


@dataclass
class EdgeConfig:
    """Configuration for edge map construction."""
    mode: str = "continuous"  # "continuous" or "binary"
    binary_threshold: float = 50.0
    enhance: bool = False
    dilation_passes: int = 2


@dataclass
class LayoutConfig:
    """Configuration for peg layout."""
    peg_count: int = 200
    shape: str = "circle"  # circle, polygon, parametric-curve, star, custom-points
    distribution: str = "even-angle"  # even-angle, golden-angle-spiral, random-angle
    margin: float = 10.0
    start_angle_deg: float = 0.0
    polygon_sides: int = 4
    star_points: int = 5
    star_inner_ratio: float = 0.4
    curve: str = "heart"
    custom_points: List[List[float]] = field(default_factory=list)
    snap_to_edges: bool = False
    snap_window: int = 3
    validate: bool = False
    min_peg_distance: float = 5.0
    seed: Optional[int] = None


@dataclass
class SynthesisConfig:
    """Configuration for greedy path synthesis."""
    max_lines: int = 200
    neighbor_avoidance: int = 3
    min_score: float = 10.0
    reuse_penalty: float = 0.7
    degenerate_min_lines: int = 3
    seed: Optional[int] = None  # random fallback scorer only


@dataclass
class RefineConfig:
    """Configuration for end point refinement."""
    enabled: bool = False
    iterations: int = 1
    window: int = 2


@dataclass
class TracingConfig:
    """Configuration for runtime tracing."""
    enabled: bool = False
    level: str = "INFO"
    file_path: str = None
    json_output: bool = False


@dataclass
class DebugConfig:
    """Configuration for debug artifact generation."""
    enabled: bool = False
    max_edge_scale: int = 1600


@dataclass
class PipelineConfig:
    """Complete pipeline configuration."""
    canvas: CanvasConfig = field(default_factory=CanvasConfig)
    edges: EdgeConfig = field(default_factory=EdgeConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    synthesis: SynthesisConfig = field(default_factory=SynthesisConfig)
    refine: RefineConfig = field(default_factory=RefineConfig)
    tracing: TracingConfig = field(default_factory=TracingConfig)
    debug: DebugConfig = field(default_factory=DebugConfig)


def load_config(config_path=None):
    """
    Load configuration from YAML file.

    Falls back to defaults for any missing values.
    """
    config = PipelineConfig()

    if config_path and os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f) or {}

        config = _merge_config(config, yaml_data)

    return config


def _merge_config(config, yaml_data):
    """Merge YAML data into config dataclass, ignoring unknown keys."""
    for section in fields(config):
        values = yaml_data.get(section.name)
        if not isinstance(values, dict):
            continue

        target = getattr(config, section.name)
        for key, value in values.items():
            if hasattr(target, key):
                setattr(target, key, value)

    return config


def save_default_config(path):
    """Save default configuration to YAML file for reference."""
    yaml_data = asdict(PipelineConfig())
    yaml_data["tracing"].pop("file_path")

    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(yaml_data, f, default_flow_style=False, sort_keys=False)
