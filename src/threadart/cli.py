"""
Command-line interface for threadart.

Provides commands for generating a thread pattern and writing a default config.
"""

import argparse
import sys

from threadart.config import load_config, save_default_config
from threadart.tracer import configure_tracer, get_tracer


def main(argv=None):
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="threadart: turn an image into a string art thread sequence",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Generate a pattern from an image")
    run_parser.add_argument(
        "--input", "-i",
        required=True,
        help="Input image file",
    )
    run_parser.add_argument(
        "--out", "-o",
        required=True,
        help="Output directory",
    )
    run_parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to YAML configuration file",
    )
    run_parser.add_argument("--pegs", type=int, default=None, help="Override peg count")
    run_parser.add_argument(
        "--shape",
        default=None,
        choices=["circle", "polygon", "parametric-curve", "star", "custom-points"],
        help="Override peg layout shape",
    )
    run_parser.add_argument("--max-lines", type=int, default=None, help="Override maximum thread count")
    run_parser.add_argument("--refine", action="store_true", help="Enable end point refinement")
    run_parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug artifact generation",
    )
    run_parser.add_argument(
        "--trace",
        action="store_true",
        help="Enable runtime tracing",
    )
    run_parser.add_argument(
        "--trace-level",
        default="INFO",
        choices=["ERROR", "WARN", "INFO", "DEBUG"],
        help="Trace log level",
    )
    run_parser.add_argument(
        "--trace-file",
        default=None,
        help="Path to write trace logs",
    )
    run_parser.add_argument(
        "--trace-json",
        action="store_true",
        help="Enable JSON trace output",
    )

    init_parser = subparsers.add_parser("init-config", help="Create default config file")
    init_parser.add_argument(
        "--out", "-o",
        default="threadart_config.yaml",
        help="Output path for config file",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "run":
        return handle_run(args)
    elif args.command == "init-config":
        return handle_init_config(args)

    return 0


def _apply_overrides(config, args):
    if args.pegs is not None:
        config.layout.peg_count = args.pegs
    if args.shape is not None:
        config.layout.shape = args.shape
    if args.max_lines is not None:
        config.synthesis.max_lines = args.max_lines
    if args.refine:
        config.refine.enabled = True
    return config


def handle_run(args):
    """Handle the run command."""
    config = _apply_overrides(load_config(args.config), args)

    configure_tracer(
        enabled=args.trace or config.tracing.enabled,
        level=args.trace_level if args.trace else config.tracing.level,
        file_path=args.trace_file or config.tracing.file_path,
        json_output=args.trace_json or config.tracing.json_output,
    )

    tracer = get_tracer()

    try:
        from threadart.pipeline import run_pipeline

        with tracer.span("cli_run", module="cli"):
            pattern = run_pipeline(
                input_path=args.input,
                out_dir=args.out,
                config=config,
                debug=args.debug,
            )

        meta = pattern.metadata
        print("\nPattern generated.")
        print(f"  Pattern id: {pattern.pattern_id}")
        print(f"  Pegs: {meta.peg_count} ({meta.rejected_pegs} rejected)")
        print(f"  Threads: {meta.generated_lines}/{meta.requested_lines} (stop: {meta.stop_reason.value})")
        print(f"  Quality: {pattern.quality:.2f}")
        if meta.reduced_fidelity:
            print("\n[!] Random fallback scorer was used; the pattern does not follow the image.")
        if meta.degenerate:
            print("\n[!] No useful threads found; check the image contrast and peg settings.")
        print(f"\nOutputs saved to: {args.out}/")
        print("  - pattern.json")

        return 0

    except Exception as e:
        tracer.event(f"Pipeline failed: {str(e)}", level="ERROR")
        print(f"\nError: {str(e)}", file=sys.stderr)
        return 1

    finally:
        tracer.config.close()


def handle_init_config(args):
    """Handle the init-config command."""
    save_default_config(args.out)
    print(f"Default configuration saved to: {args.out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
