"""
Scorer.py — dissimilarity between an overlay and a background window.

Score at offset (dx, dy):

    total = sum over unmasked (i, j) and channels c of
            |ov[j, i, c] - bg[dy + j, dx + i, c]|      (metric "sad")
            (ov[j, i, c] - bg[dy + j, dx + i, c]) ** 2 (metric "ssd")

    score = total / (unmasked_pixels * channels)

Totals are exact int64 values; every search path compares totals and only
divides at the end through `normalise`, so all paths report bit-identical
scores. A fully masked overlay has no score (None).
"""

from __future__ import annotations

import time
from typing import Optional, Tuple

import numpy as np

from ekman.core.DataModel import Offset
from ekman.core.Errors import OverlayTooLarge, SearchTimeout
from ekman.core.PixelGrid import PixelGrid


# -----------------------------
# Helpers
# -----------------------------

def harmonise(background: PixelGrid, overlay: PixelGrid) -> Tuple[PixelGrid, PixelGrid]:
    """Promote an RGB grid to RGBA when the other one carries alpha."""
    if background.channels == overlay.channels:
        return background, overlay
    return background.with_alpha(), overlay.with_alpha()


def check_fit(background: PixelGrid, overlay: PixelGrid) -> Tuple[int, int]:
    """Return (nx, ny), the number of valid dx and dy values."""
    if not background.fits(overlay):
        raise OverlayTooLarge(overlay.size, background.size)
    return background.width - overlay.width + 1, background.height - overlay.height + 1


def check_deadline(deadline: Optional[float]) -> None:
    if deadline is not None and time.monotonic() > deadline:
        raise SearchTimeout("search time budget exceeded")


def normalise(total: int, unmasked: int, channels: int) -> Optional[float]:
    if unmasked == 0:
        return None
    return float(total) / float(unmasked * channels)


def _diff(a: np.ndarray, b: np.ndarray, metric: str) -> np.ndarray:
    d = a.astype(np.int64) - b.astype(np.int64)
    if metric == "ssd":
        return d * d
    return np.abs(d)


# -----------------------------
# Reference path
# -----------------------------

def error_total(
    background: PixelGrid,
    overlay: PixelGrid,
    mask: np.ndarray,
    offset: Offset,
    metric: str = "sad",
) -> int:
    """Accumulated error over unmasked pixels at one offset (no pruning)."""
    background, overlay = harmonise(background, overlay)
    check_fit(background, overlay)
    dx, dy = offset
    win = background.window(dx, dy, overlay.width, overlay.height)
    per_pixel = _diff(win, overlay.array, metric).sum(axis=-1)
    return int(per_pixel[~mask].sum())


def score_at(
    background: PixelGrid,
    overlay: PixelGrid,
    mask: np.ndarray,
    offset: Offset,
    metric: str = "sad",
) -> Optional[float]:
    """Normalised score at one offset, or None if every pixel is masked."""
    check_fit(background, overlay)
    background.window(offset[0], offset[1], overlay.width, overlay.height)
    unmasked = int((~mask).sum())
    if unmasked == 0:
        return None
    total = error_total(background, overlay, mask, offset, metric)
    return normalise(total, unmasked, max(background.channels, overlay.channels))


# -----------------------------
# Branch-and-bound path
# -----------------------------

def bounded_total(
    bg: np.ndarray,
    ov: np.ndarray,
    keep: np.ndarray,
    offset: Offset,
    bound: Optional[int],
    metric: str = "sad",
) -> Optional[int]:
    """
    Accumulate the error row by row; give up (return None) as soon as the
    partial total reaches `bound`. `bg` and `ov` are pre-cast int arrays of
    equal channel count, `keep` is the inverted mask.
    """
    dx, dy = offset
    oh, ow = ov.shape[:2]
    total = 0
    for j in range(oh):
        if not keep[j].any():
            continue
        row = _diff(bg[dy + j, dx:dx + ow], ov[j], metric).sum(axis=-1)
        total += int(row[keep[j]].sum())
        if bound is not None and total >= bound:
            return None
    return total


# -----------------------------
# Vectorised path
# -----------------------------

def score_map(
    background: PixelGrid,
    overlay: PixelGrid,
    mask: np.ndarray,
    metric: str = "sad",
    deadline: Optional[float] = None,
) -> np.ndarray:
    """
    Error totals at every offset as an int64 array of shape (ny, nx),
    indexed [dy, dx].

    Loops over unmasked overlay pixels and adds that pixel's error against
    the whole shifted background at once, so the cost is still
    O(overlay pixels x offsets), just without a Python-level offset loop.
    """
    background, overlay = harmonise(background, overlay)
    nx, ny = check_fit(background, overlay)

    bg = background.array.astype(np.int32)
    ov = overlay.array.astype(np.int32)
    acc = np.zeros((ny, nx), dtype=np.int64)

    rows, cols = np.nonzero(~mask)
    for n, (j, i) in enumerate(zip(rows, cols)):
        d = bg[j:j + ny, i:i + nx] - ov[j, i]
        if metric == "ssd":
            acc += (d * d).sum(axis=-1)
        else:
            acc += np.abs(d).sum(axis=-1)
        if n % 64 == 0:
            check_deadline(deadline)
    return acc


# -----------------------------
# Identical-pixel counts
# -----------------------------

def identical_map(
    background: PixelGrid,
    overlay: PixelGrid,
    mask: np.ndarray,
    deadline: Optional[float] = None,
) -> np.ndarray:
    """
    Number of unmasked overlay pixels equal (all channels) to the background,
    at every offset, as an int64 array of shape (ny, nx) indexed [dy, dx].
    """
    background, overlay = harmonise(background, overlay)
    nx, ny = check_fit(background, overlay)

    bg = background.array
    ov = overlay.array
    acc = np.zeros((ny, nx), dtype=np.int64)

    rows, cols = np.nonzero(~mask)
    for n, (j, i) in enumerate(zip(rows, cols)):
        acc += (bg[j:j + ny, i:i + nx] == ov[j, i]).all(axis=-1)
        if n % 64 == 0:
            check_deadline(deadline)
    return acc


# -----------------------------
# Confidence helpers
# -----------------------------

def match_fraction(background: PixelGrid, overlay: PixelGrid, mask: np.ndarray, offset: Offset) -> float:
    """Share of unmasked overlay pixels identical to the background (all channels)."""
    background, overlay = harmonise(background, overlay)
    keep = ~mask
    unmasked = int(keep.sum())
    if unmasked == 0:
        return 0.0
    dx, dy = offset
    win = background.window(dx, dy, overlay.width, overlay.height)
    same = (win == overlay.array).all(axis=-1)
    return float((same & keep).sum()) / unmasked


def border_match(background: PixelGrid, overlay: PixelGrid, mask: np.ndarray, offset: Offset) -> bool:
    """True if every unmasked pixel on the overlay's outer border matches exactly."""
    background, overlay = harmonise(background, overlay)
    dx, dy = offset
    win = background.window(dx, dy, overlay.width, overlay.height)
    ok = (win == overlay.array).all(axis=-1) | mask
    return bool(ok[0, :].all() and ok[-1, :].all() and ok[:, 0].all() and ok[:, -1].all())
