from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Sequence

from ekman import __version__
from ekman.core.DataModel import MatchResult, OverlayResult, SearchConfig
from ekman.core.PixelGrid import PixelGrid


def _yes(flag: bool) -> str:
    return "true" if flag else "false"


def _match_line(index: int, m: MatchResult) -> str:
    if m.undefined:
        return (
            f"Match {index}: Position: ({m.x}, {m.y}), Score: undefined "
            f"(every overlay pixel is transparent)"
        )
    return (
        f"Match {index}: Position: ({m.x}, {m.y}), Score: {m.score:.2f}, "
        f"Compared: {m.compared_pixels}, Identical: {m.match_fraction:.1%}, "
        f"Perfect: {_yes(m.is_perfect)}, Border Match: {_yes(m.is_border_match)}"
    )


def format_text(results: Sequence[OverlayResult]) -> str:
    """Human-readable report, one block per overlay."""
    lines: List[str] = []
    for r in results:
        lines.append("")
        lines.append(f"Overlay: {r.name}")
        if r.error is not None:
            lines.append(f"Not found: {r.error}")
            continue
        lines.append("Match Report:")
        for i, m in enumerate(r.matches, start=1):
            lines.append(_match_line(i, m))
    return "\n".join(lines)


def _image_info(name: str, width: int, height: int) -> Dict[str, Any]:
    return {"filename": Path(name).name, "width": width, "height": height}


def match_to_dict(m: MatchResult) -> Dict[str, Any]:
    return {
        "x": m.x,
        "y": m.y,
        "score": m.score,  # None -> null: nothing was compared
        "compared_pixels": m.compared_pixels,
        "match_fraction": m.match_fraction,
        "is_perfect": m.is_perfect,
        "is_border_match": m.is_border_match,
    }


def build_json(
    background_name: str,
    background: PixelGrid,
    results: Sequence[OverlayResult],
    cfg: SearchConfig,
) -> Dict[str, Any]:
    return {
        "ekman_version": __version__,
        "background": _image_info(background_name, background.width, background.height),
        "overlays": [
            {
                "image_info": _image_info(r.name, r.width, r.height),
                "matches": [match_to_dict(m) for m in r.matches],
                "error": r.error,
            }
            for r in results
        ],
        "transparent_color": list(cfg.transparent) if cfg.transparent is not None else None,
        "tolerance": cfg.tolerance,
        "metric": cfg.metric,
        "top_k": cfg.top_k,
        "min_match_fraction": cfg.min_match_fraction,
    }


def format_json(
    background_name: str,
    background: PixelGrid,
    results: Sequence[OverlayResult],
    cfg: SearchConfig,
) -> str:
    return json.dumps(build_json(background_name, background, results, cfg), indent=2)
