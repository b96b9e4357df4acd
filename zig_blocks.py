#!/usr/bin/env python3
"""
Render one scene of hatched zig blocks to PNG and/or SVG.

Both outputs are drawn from the same scene through the same hatch strokes,
so the SVG is a true vector version of the PNG.
"""
import argparse
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

import zig_core
from zig_logging import setup_logging

logger = logging.getLogger("zigblocks.cli")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Generate hatched zig block compositions")
    ap.add_argument("--out", default=None,
                    help="Output path without extension (default: zig-blocks-<timestamp>)")
    ap.add_argument("--format", default="both", choices=["png", "svg", "both"])
    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument("--blocks", type=int, default=0, help="Number of blocks; 0 picks 1..6")
    ap.add_argument("--color-mode", default="per-shape", choices=list(zig_core.COLOR_MODES))
    ap.add_argument("--alpha", type=int, default=255, help="Ink opacity 0..255")
    ap.add_argument("--spacing", type=float, default=None, help="Hatch spacing")
    ap.add_argument("--jitter", type=float, default=None, help="Hatch chord jitter (sigma)")
    ap.add_argument("--weight", type=float, default=None, help="Stroke weight")
    ap.add_argument("--no-curve", dest="curve", action="store_false",
                    help="Draw straight hatches instead of wavy ones")
    ap.add_argument("--scale", type=float, default=1.0, help="PNG pixel scale")
    ap.add_argument("-v", "--verbose", action="store_true")
    return ap


def params_from_args(args: argparse.Namespace) -> dict:
    hatch = {}
    if args.spacing is not None:
        hatch['spacing'] = args.spacing
    if args.jitter is not None:
        hatch['jitter'] = args.jitter
    if args.weight is not None:
        hatch['weight'] = args.weight
    return zig_core.make_params({
        'block_count': args.blocks,
        'color_mode': args.color_mode,
        'alpha': args.alpha,
        'hatch': hatch,
        'curve': {'enabled': args.curve},
    })


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        if args.scale <= 0:
            raise ValueError("scale must be > 0, got {}".format(args.scale))
        params = params_from_args(args)
        scene = zig_core.generate_scene(params, seed=args.seed)
    except ValueError as exc:
        logger.error("%s", exc)
        return 2

    stem = Path(args.out) if args.out else Path(
        "zig-blocks-{}".format(datetime.now().strftime('%Y%m%d-%H%M%S')))
    if args.format in ("png", "both"):
        zig_core.save_png(scene, params, stem.with_suffix(".png"), scale=args.scale)
    if args.format in ("svg", "both"):
        zig_core.save_svg(scene, params, stem.with_suffix(".svg"))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
