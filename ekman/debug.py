import logging
from pathlib import Path
from typing import Optional, Sequence, Union

from PIL import Image, ImageDraw, ImageFont

from ekman.core.DataModel import OverlayResult

log = logging.getLogger(__name__)

COLORS = ["yellow", "lime", "cyan", "magenta", "orange", "red", "white"]


def save_debug_image(
    background: Image.Image,
    results: Sequence[OverlayResult],
    out_path: Union[str, Path] = "debug.png",
    max_per_overlay: Optional[int] = None,
) -> Path:
    """
    Save the background with every reported match drawn on top.

    Parameters
    ----------
    background:
        Background image the overlays were searched in.
    results:
        Per-overlay results; failed overlays are skipped.
    out_path:
        Output PNG filename.
    max_per_overlay:
        Draw only the first N matches of each overlay (default: all).
    """

    img = background.copy().convert("RGBA")
    draw = ImageDraw.Draw(img)
    font = ImageFont.load_default()

    for i, r in enumerate(results):
        if r.error is not None:
            continue
        color = COLORS[i % len(COLORS)]
        matches = r.matches if max_per_overlay is None else r.matches[:max_per_overlay]

        for rank, m in enumerate(matches, start=1):
            x1, y1 = m.offset
            x2, y2 = x1 + r.width - 1, y1 + r.height - 1

            draw.rectangle([x1, y1, x2, y2], outline=color, width=2)

            score = "undef" if m.undefined else f"{m.score:.2f}"
            label = f"{Path(r.name).name}#{rank} s={score}"
            tx, ty = x1 + 3, y1 + 3

            # Background behind label
            left, top, right, bottom = draw.textbbox((tx, ty), label, font=font)
            draw.rectangle([left - 2, top - 2, right + 2, bottom + 2], fill=(0, 0, 0, 180))
            draw.text((tx, ty), label, fill=color, font=font)

    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    img.save(out)
    log.info("debug image saved: %s", out)
    return out
