#!/usr/bin/env python3
"""ekman — find where overlay images sit inside a background image."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from ekman import __version__
from ekman.imageio import expand_patterns, load_grid
from ekman.report import format_json, format_text
from ekman.config import FORMATS, load_config, merge
from ekman.core.DataModel import METRICS, ORDERS, STRATEGIES, OverlayResult, SearchConfig
from ekman.core.Errors import EkmanError, ImageLoadError
from ekman.core.PixelGrid import PixelGrid
from ekman.core.Ranker import rank_results
from ekman.core.Search import search_overlays
from ekman.core.Transparency import parse_color
from ekman.log import setup_logging

log = logging.getLogger("ekman.cli")

WHITE = (255, 255, 255)


def _color(s: str):
    try:
        return parse_color(s)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="ekman", description=__doc__)
    p.add_argument("-b", "--background", required=True, type=Path, help="Path to the background image")
    p.add_argument(
        "-o",
        "--overlays",
        required=True,
        nargs="+",
        help="Paths or glob patterns for one or more overlay images",
    )

    # masking
    p.add_argument("-w", "--white-transparent", action="store_true", help="Treat white as transparent")
    p.add_argument(
        "--transparent",
        type=_color,
        default=None,
        help='Transparent color: a name, "#rrggbb[aa]" or "r,g,b[,a]"',
    )
    p.add_argument("--tolerance", type=int, default=None, help="Per-channel tolerance for the transparent color")
    p.add_argument("--alpha-transparent", action="store_true", default=None, help="Also ignore pixels with alpha 0")

    # search
    p.add_argument("--top-k", type=int, default=None, help="Report the K best offsets per overlay")
    p.add_argument("--max-score", type=float, default=None, help="Drop matches scoring worse than this (best is kept)")
    p.add_argument(
        "--min-match-fraction",
        type=float,
        default=None,
        help="Report every placement with at least this share of identical pixels (0-1]",
    )
    p.add_argument("--metric", choices=METRICS, default=None)
    p.add_argument("--strategy", choices=STRATEGIES, default=None)
    p.add_argument("--workers", type=int, default=None, help="Parallel overlay searches (default: CPU count)")
    p.add_argument("--timeout", type=float, default=None, help="Give up on an overlay after this many seconds")

    # output
    p.add_argument("--sort", dest="order", choices=ORDERS, default=None, help="Result order")
    p.add_argument("--print-format", dest="format", choices=FORMATS, default=None, help="Output format")
    p.add_argument("--debug-image", type=Path, default=None, help="Save the background with matches drawn on it")

    p.add_argument("--config", type=Path, default=None, help="YAML config file")
    p.add_argument("-v", "--verbose", action="count", default=0)
    p.add_argument("--log-file", type=Path, default=None)
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def resolve_config(args: argparse.Namespace) -> Tuple[SearchConfig, str]:
    if args.config is not None:
        cfg, fmt = load_config(args.config)
    else:
        cfg, fmt = SearchConfig(), None

    transparent = args.transparent
    if transparent is None and args.white_transparent:
        transparent = WHITE

    cfg = merge(
        cfg,
        transparent=transparent,
        tolerance=args.tolerance,
        alpha_transparent=args.alpha_transparent,
        top_k=args.top_k,
        max_score=args.max_score,
        min_match_fraction=args.min_match_fraction,
        metric=args.metric,
        strategy=args.strategy,
        workers=args.workers,
        timeout=args.timeout,
        order=args.order,
    )
    return cfg, args.format or fmt or "text"


def load_overlays(paths: Sequence[Path]) -> Tuple[List[Tuple[str, PixelGrid]], List[OverlayResult]]:
    """Decode overlays; files that fail to decode become error results, the rest are searched."""
    loaded: List[Tuple[str, PixelGrid]] = []
    failed: List[OverlayResult] = []
    for p in paths:
        try:
            loaded.append((str(p), load_grid(p)))
        except ImageLoadError as e:
            log.warning("%s", e)
            failed.append(OverlayResult(name=str(p), width=0, height=0, error=str(e)))
    return loaded, failed


def _progress(done: int, total: int, result: OverlayResult) -> None:
    best = result.best
    if result.error is not None:
        log.info("[%d/%d] %s: %s", done, total, result.name, result.error)
    elif best is not None:
        log.info("[%d/%d] %s: offset=(%d, %d) score=%s", done, total, result.name, best.x, best.y, best.score)


def run(args: argparse.Namespace) -> int:
    cfg, fmt = resolve_config(args)

    background = load_grid(args.background)
    log.info("background %s: %dx%d", args.background, background.width, background.height)

    paths = expand_patterns(args.overlays)
    loaded, failed = load_overlays(paths)
    searched = iter(search_overlays(background, loaded, cfg, progress=_progress))

    # back to argument order, decode failures in place
    failed_by_name = {r.name: r for r in failed}
    results = [failed_by_name.get(str(p)) or next(searched) for p in paths]
    results = rank_results(results, cfg.order)

    if fmt == "json":
        print(format_json(str(args.background), background, results, cfg))
    else:
        print(format_text(results))

    if args.debug_image is not None:
        from ekman.debug import save_debug_image

        save_debug_image(background.to_image(), results, args.debug_image)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose, args.log_file)
    try:
        return run(args)
    except (EkmanError, FileNotFoundError, ValueError) as e:
        log.error("%s", e)
        return 2


if __name__ == "__main__":
    sys.exit(main())
