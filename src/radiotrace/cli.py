"""Command-line entry point.

Usage:
    radiotrace <scene.json> <output_base> [options]

Options:
    --times             Also write per-station .times files
    --angles            Also write per-station .angles files
    --png               Also write per-station .png signal maps
    --no-view           Skip rendering {output_base}_view.png
    --arch {cpu,gpu}    Taichi backend (default: gpu, falling back to cpu)
    --log-level LEVEL   Logging level (default: INFO)

Example:
    radiotrace data/city.json out/city --png --arch cpu
"""

from __future__ import annotations

import argparse
import logging
import sys

import taichi as ti

from radiotrace import get_logger

_log = get_logger()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="radiotrace",
        description="Render a scene preview and compute RF signal coverage maps.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("scene", help="Scene description (JSON)")
    parser.add_argument("output_base", help="Prefix for all output files")
    parser.add_argument("--times", action="store_true", help="Write .times files")
    parser.add_argument("--angles", action="store_true", help="Write .angles files")
    parser.add_argument("--png", action="store_true", help="Write .png signal maps")
    parser.add_argument(
        "--no-view",
        dest="view",
        action="store_false",
        help="Skip rendering the camera view",
    )
    parser.add_argument(
        "--arch",
        choices=("cpu", "gpu"),
        default="gpu",
        help="Taichi backend (default: gpu, falling back to cpu)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        type=str.upper,
        help="Logging level (default: INFO)",
    )
    return parser.parse_args(argv)


def _configure_logging(level: str) -> None:
    get_logger().setLevel(getattr(logging, level))


def init_taichi(arch: str) -> None:
    """Initialize Taichi, falling back to the CPU if no GPU is usable."""
    if arch == "gpu":
        try:
            ti.init(arch=ti.gpu)
            return
        except RuntimeError as e:
            _log.warning("GPU initialization failed (%s), falling back to CPU", e)
    ti.init(arch=ti.cpu)


def run(args: argparse.Namespace) -> None:
    """Load the scene and run the requested passes."""
    # Lazy imports: field-declaring modules need ti.init() first
    from radiotrace.core.sigmap import generate_sigmap, render_view
    from radiotrace.scene.manager import load_scene

    scene = load_scene(args.scene)
    _log.info("Rendering %s", args.output_base)
    generate_sigmap(args.output_base, scene, args.times, args.angles, args.png)
    if args.view:
        render_view(f"{args.output_base}_view.png", scene)


def main(argv: list[str] | None = None) -> int:
    """Run the CLI and return the process exit code."""
    args = parse_args(argv)
    _configure_logging(args.log_level)
    init_taichi(args.arch)
    try:
        run(args)
    except (OSError, ValueError, RuntimeError) as e:
        _log.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
