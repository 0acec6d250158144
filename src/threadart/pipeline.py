"""
Main pipeline orchestrator for threadart.

Runs edge map -> peg layout -> synthesis -> refinement -> evaluation.
Each stage consumes the previous stage's output and returns a new value;
the edge map is shared read-only by every stage.
"""

import os

from threadart.config import load_config
from threadart.io.load_image import load_intensity, validate_image_input
from threadart.io.save_artifacts import DebugArtifactWriter, ensure_dir, render_threads, save_json
from threadart.layout.pegs import build_layout
from threadart.models import (
    InvalidInputError, PatternResult, RunMetadata,
    generate_pattern_id, path_to_pairs,
)
from threadart.preprocess.edge_map import build_edge_map
from threadart.synthesis.path_synth import synthesize_path
from threadart.synthesis.refine import refine_path
from threadart.tracer import get_tracer, trace
from threadart.validate.quality import connection_report, evaluate_quality


@trace(label="generate_pattern")
def generate_pattern(intensity, config=None, cancel_token=None, debug_writer=None):
    """
    Build a thread pattern from a raw intensity grid.

    Args:
        intensity: 2D array (canvas height, canvas width), or None to run
            with the random fallback scorer
        config: PipelineConfig (defaults if None)
        cancel_token: optional CancelToken
        debug_writer: optional DebugArtifactWriter

    Returns:
        PatternResult
    """
    tracer = get_tracer()

    if config is None:
        config = load_config()

    edge_map = None
    if intensity is not None:
        with tracer.span("edge_map", module="pipeline"):
            edge_map = build_edge_map(intensity, config, debug_writer)

    return compose_pattern(edge_map, config, cancel_token, debug_writer)


@trace(label="compose_pattern")
def compose_pattern(edge_map, config, cancel_token=None, debug_writer=None):
    """
    Run layout, synthesis, refinement and evaluation over an existing edge map.

    Raises InvalidInputError if the edge map does not match the canvas.
    """
    tracer = get_tracer()

    canvas = config.canvas
    if edge_map is not None and (edge_map.width, edge_map.height) != (canvas.width, canvas.height):
        raise InvalidInputError(
            f"Edge map is {edge_map.width}x{edge_map.height} but canvas is {canvas.width}x{canvas.height}"
        )

    with tracer.span("layout", module="pipeline"):
        pegs, rejected = build_layout(config, edge_map, debug_writer)

    synth = config.synthesis
    with tracer.span("synthesis", module="pipeline"):
        result = synthesize_path(
            pegs, edge_map,
            max_lines=synth.max_lines,
            neighbor_avoidance=synth.neighbor_avoidance,
            min_score=synth.min_score,
            reuse_penalty=synth.reuse_penalty,
            degenerate_min_lines=synth.degenerate_min_lines,
            seed=synth.seed,
            cancel_token=cancel_token,
        )

    path = result.path
    refined_count = 0
    refine_iterations = 0
    if config.refine.enabled and edge_map is not None:
        with tracer.span("refine", module="pipeline"):
            path, refined_count = refine_path(
                path, edge_map,
                iterations=config.refine.iterations,
                window=config.refine.window,
                cancel_token=cancel_token,
            )
            refine_iterations = config.refine.iterations

    with tracer.span("evaluate", module="pipeline"):
        quality = evaluate_quality(path, edge_map)

    metadata = RunMetadata(
        scorer=result.scorer,
        reduced_fidelity=result.reduced_fidelity,
        degenerate=result.degenerate,
        stop_reason=result.stop_reason,
        requested_lines=synth.max_lines,
        generated_lines=len(path),
        peg_count=len(pegs),
        rejected_pegs=rejected,
        refine_iterations=refine_iterations,
        refined_connections=refined_count,
    )

    pattern = PatternResult(
        pattern_id=generate_pattern_id(pegs, path_to_pairs(path)),
        canvas_width=canvas.width,
        canvas_height=canvas.height,
        pegs=pegs,
        path=path,
        quality=quality,
        metadata=metadata,
        edge_map=edge_map,
    )

    if debug_writer:
        debug_writer.save_json(metadata, "synthesis", "run_metadata.json")
        debug_writer.save_json(connection_report(path, edge_map), "synthesis", "connection_scores.json")
        debug_writer.save_image(
            render_threads(canvas.width, canvas.height, path.connections),
            "synthesis", "01_threads.png",
        )
        if edge_map is not None:
            debug_writer.save_overlay(
                edge_map.data, "synthesis", "02_threads_on_edges.png",
                pegs=pegs, connections=path.connections, thread_color=(0, 255, 0),
            )

    tracer.event(
        f"Pattern {pattern.pattern_id}: {len(path)} lines, {len(pegs)} pegs, quality={quality:.2f}"
    )

    return pattern


@trace(label="run_pipeline")
def run_pipeline(input_path, out_dir, config=None, config_path=None, debug=False, cancel_token=None):
    """
    Run the full pipeline for one image file and write pattern.json.

    Args:
        input_path: image file path
        out_dir: output directory
        config: PipelineConfig object (optional)
        config_path: path to YAML config file (optional)
        debug: enable debug artifact generation
        cancel_token: optional CancelToken

    Returns:
        PatternResult
    """
    tracer = get_tracer()

    if config is None:
        config = load_config(config_path)

    config.debug.enabled = debug

    errors = validate_image_input(input_path)
    if errors:
        for error in errors:
            tracer.event(error, level="ERROR")
        raise ValueError(f"Input validation failed: {errors}")

    ensure_dir(out_dir)

    canvas_size = (config.canvas.width, config.canvas.height)
    intensity, _ = load_intensity(input_path, canvas_size)

    run_id = os.path.splitext(os.path.basename(input_path))[0]
    debug_writer = DebugArtifactWriter(
        out_dir, run_id,
        enabled=True,
        max_edge=config.debug.max_edge_scale,
    ) if config.debug.enabled else None

    pattern = generate_pattern(intensity, config, cancel_token, debug_writer)

    if debug_writer:
        debug_writer.save_overlay(
            intensity, "synthesis", "03_threads_on_input.png",
            pegs=pattern.pegs, connections=pattern.path.connections,
        )

    save_json(pattern, os.path.join(out_dir, "pattern.json"))

    return pattern
