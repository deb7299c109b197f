#!/usr/bin/env python3
import argparse
import json
import logging
from pathlib import Path

from pedigree_maker_lib import (
    PedigreeConfig,
    PedigreeError,
    PedigreeMaker,
    SibshipBusPolicy,
    estimate_canvas,
    load_people,
)
from pedigree_surfaces import SvgSurface

logger = logging.getLogger("render_pedigree")


def load_input(data) -> tuple:
    """Accept either a bare list of individuals or {"options": {...}, "individuals": [...]}."""
    if isinstance(data, list):
        return data, {}
    if isinstance(data, dict):
        return list(data.get("individuals") or []), dict(data.get("options") or {})
    raise PedigreeError("input JSON must be a list of individuals or an object with 'individuals'")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Render pedigree JSON to an SVG file.")
    parser.add_argument("input_json", type=Path, help="Path to input JSON file.")
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("pedigree.svg"),
        help="Path to output SVG file (default: pedigree.svg).",
    )
    parser.add_argument("--width", type=int, default=None, help="Surface width in px (default: fit the diagram).")
    parser.add_argument("--height", type=int, default=None, help="Surface height in px (default: fit the diagram).")
    parser.add_argument("--no-optimize", action="store_true", help="Disable the sibling-swap layout optimizer.")
    parser.add_argument(
        "--sibship-bus",
        choices=[p.value for p in SibshipBusPolicy],
        default=None,
        help="Extent of the horizontal sibship line.",
    )
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING).")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)-5s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        individuals, options = load_input(json.loads(args.input_json.read_text(encoding="utf-8")))
        options["interactive"] = False
        if args.no_optimize:
            options["autoLayoutOptimize"] = False
        if args.sibship_bus:
            options["sibshipBus"] = args.sibship_bus
        config = PedigreeConfig.from_options(options)

        width, height = estimate_canvas(load_people(individuals), config)
        surface = SvgSurface(args.width or width, args.height or height, background="#fff")
        chart = PedigreeMaker(surface, individuals, config)
        chart.render()
        chart.export_image(str(args.output))
    except (OSError, ValueError, PedigreeError) as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
