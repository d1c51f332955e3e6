from __future__ import annotations

from typing import Optional

import numpy as np
from PIL import ImageColor

from ekman.core.DataModel import Color
from ekman.core.PixelGrid import PixelGrid


def parse_color(text: str) -> Color:
    """
    Parse a transparent-colour spec.

    Accepts "r,g,b" / "r,g,b,a" integers, or anything PIL.ImageColor
    understands ("white", "#ff00ff", "#ff00ff80", ...).
    Named and 6-digit hex colours come back as RGB so alpha is ignored
    when masking.
    """
    s = text.strip()
    if "," in s and not s.lower().startswith(("rgb", "hsl", "hsv")):
        parts = [p.strip() for p in s.split(",")]
        if len(parts) not in (3, 4):
            raise ValueError(f'color "{text}" must have 3 or 4 components')
        try:
            values = tuple(int(p) for p in parts)
        except ValueError:
            raise ValueError(f'color "{text}" has non-integer components') from None
        if any(not 0 <= v <= 255 for v in values):
            raise ValueError(f'color "{text}" components must be between 0 and 255')
        return values
    return tuple(ImageColor.getrgb(s))


def build_mask(
    overlay: PixelGrid,
    transparent: Optional[Color] = None,
    tolerance: int = 0,
    alpha: bool = False,
) -> np.ndarray:
    """
    Boolean (H, W) mask, True where the overlay pixel is excluded from scoring.

    A pixel is transparent when every channel named by `transparent` lies
    within `tolerance` of it. A 3-channel colour only looks at RGB.
    With `alpha`, RGBA pixels whose alpha is 0 are masked too.
    """
    a = overlay.array
    mask = np.zeros(a.shape[:2], dtype=bool)

    if transparent is not None:
        n = min(len(transparent), overlay.channels)
        ref = np.asarray(transparent[:n], dtype=np.int16)
        diff = np.abs(a[..., :n].astype(np.int16) - ref)
        mask |= (diff <= tolerance).all(axis=-1)

    if alpha and overlay.channels == 4:
        mask |= a[..., 3] == 0

    mask.flags.writeable = False
    return mask
