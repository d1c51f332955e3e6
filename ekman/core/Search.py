from __future__ import annotations

import bisect
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ekman.core import Scorer
from ekman.core.DataModel import MatchResult, Offset, OverlayResult, ProgressFn, SearchConfig
from ekman.core.Errors import OverlayTooLarge, SearchTimeout
from ekman.core.PixelGrid import PixelGrid
from ekman.core.Transparency import build_mask

log = logging.getLogger(__name__)

Candidate = Tuple[int, int, Offset]  # (total, enumeration index, offset)


# -----------------------------
# Best-K accumulator
# -----------------------------

class BestK:
    """
    Bounded list of the K lowest totals seen so far.

    Candidates are ordered by (total, enumeration index), so at equal total
    the offset enumerated first stays ahead. Owned by a single search.
    """

    def __init__(self, k: int):
        self.k = k
        self.items: List[Candidate] = []

    @property
    def full(self) -> bool:
        return len(self.items) >= self.k

    @property
    def bound(self) -> Optional[int]:
        """A candidate whose total reaches this value can no longer get in."""
        return self.items[-1][0] if self.full else None

    def offer(self, total: int, index: int, offset: Offset) -> None:
        if self.full and total >= self.items[-1][0]:
            return
        bisect.insort(self.items, (total, index, offset))
        del self.items[self.k:]


# -----------------------------
# Strategies
# -----------------------------

def _offsets(nx: int, ny: int):
    """Row-major over dy, then dx."""
    for dy in range(ny):
        for dx in range(nx):
            yield dx, dy


def _search_naive(background, overlay, mask, cfg: SearchConfig, deadline) -> List[Candidate]:
    nx, ny = Scorer.check_fit(background, overlay)
    best = BestK(cfg.top_k)
    for index, offset in enumerate(_offsets(nx, ny)):
        if offset[0] == 0:
            Scorer.check_deadline(deadline)
        total = Scorer.error_total(background, overlay, mask, offset, cfg.metric)
        best.offer(total, index, offset)
    return best.items


def _search_pruned(background, overlay, mask, cfg: SearchConfig, deadline) -> List[Candidate]:
    background, overlay = Scorer.harmonise(background, overlay)
    nx, ny = Scorer.check_fit(background, overlay)
    bg = background.array.astype(np.int32)
    ov = overlay.array.astype(np.int32)
    keep = ~mask

    best = BestK(cfg.top_k)
    for index, offset in enumerate(_offsets(nx, ny)):
        if offset[0] == 0:
            Scorer.check_deadline(deadline)
        total = Scorer.bounded_total(bg, ov, keep, offset, best.bound, cfg.metric)
        if total is not None:
            best.offer(total, index, offset)
    return best.items


def _search_vectorized(background, overlay, mask, cfg: SearchConfig, deadline) -> List[Candidate]:
    totals = Scorer.score_map(background, overlay, mask, cfg.metric, deadline)
    ny, nx = totals.shape
    flat = totals.ravel()  # row-major: index == dy * nx + dx, the enumeration order
    if cfg.top_k == 1:
        picks = [int(np.argmin(flat))]  # first occurrence wins ties
    else:
        picks = [int(i) for i in np.argsort(flat, kind="stable")[:cfg.top_k]]
    return [(int(flat[i]), i, (i % nx, i // nx)) for i in picks]


def _search_identical(background, overlay, mask, cfg: SearchConfig, deadline, unmasked: int) -> List[Candidate]:
    """Every offset whose identical-pixel share reaches cfg.min_match_fraction."""
    counts = Scorer.identical_map(background, overlay, mask, deadline)
    nx = counts.shape[1]
    hits = np.flatnonzero(counts.ravel() / unmasked >= cfg.min_match_fraction)
    found = []
    for i in hits:
        i = int(i)
        offset = (i % nx, i // nx)
        found.append((Scorer.error_total(background, overlay, mask, offset, cfg.metric), i, offset))
    return sorted(found)


_STRATEGIES = {
    "naive": _search_naive,
    "pruned": _search_pruned,
    "vectorized": _search_vectorized,
}


# -----------------------------
# Public API
# -----------------------------

def find_matches(
    background: PixelGrid,
    overlay: PixelGrid,
    cfg: SearchConfig = SearchConfig(),
    name: str = "",
    deadline: Optional[float] = None,
) -> List[MatchResult]:
    """
    Best `cfg.top_k` placements of `overlay` inside `background`, best first.

    With `cfg.min_match_fraction`, every placement whose share of identical
    unmasked pixels reaches it is reported instead (best first); when none
    does, the usual top-K list is returned.

    Raises OverlayTooLarge if the overlay does not fit, SearchTimeout if
    `deadline` (a time.monotonic() value) passes mid-sweep.
    """
    cfg.validate()
    Scorer.check_fit(background, overlay)
    # mask the overlay as loaded, before any RGBA promotion
    mask = build_mask(overlay, cfg.transparent, cfg.tolerance, cfg.alpha_transparent)
    background, overlay = Scorer.harmonise(background, overlay)
    unmasked = int((~mask).sum())

    if unmasked == 0:
        log.debug("%s: every pixel is transparent, nothing to compare", name or "overlay")
        return [MatchResult(name=name, offset=(0, 0), score=None, compared_pixels=0)]

    channels = overlay.channels
    candidates: List[Candidate] = []
    if cfg.min_match_fraction is not None:
        candidates = _search_identical(background, overlay, mask, cfg, deadline, unmasked)
    if not candidates:
        candidates = _STRATEGIES[cfg.strategy](background, overlay, mask, cfg, deadline)

    results: List[MatchResult] = []
    for total, _index, offset in candidates:
        score = Scorer.normalise(total, unmasked, channels)
        if results and cfg.max_score is not None and score > cfg.max_score:
            break
        results.append(
            MatchResult(
                name=name,
                offset=offset,
                score=score,
                compared_pixels=unmasked,
                match_fraction=Scorer.match_fraction(background, overlay, mask, offset),
                is_border_match=Scorer.border_match(background, overlay, mask, offset),
            )
        )
    return results


def search_overlay(
    background: PixelGrid,
    name: str,
    overlay: PixelGrid,
    cfg: SearchConfig = SearchConfig(),
) -> OverlayResult:
    """find_matches with failures folded into the result instead of raised."""
    result = OverlayResult(name=name, width=overlay.width, height=overlay.height)
    deadline = time.monotonic() + cfg.timeout if cfg.timeout else None
    t0 = time.perf_counter()
    try:
        result.matches = find_matches(background, overlay, cfg, name=name, deadline=deadline)
    except OverlayTooLarge as e:
        log.warning("%s: %s", name, e)
        result.error = f"OverlayTooLarge: {e}"
    except SearchTimeout:
        log.warning("%s: gave up after %.1fs, reporting as not found", name, cfg.timeout)
        result.error = f"timed out after {cfg.timeout:g}s"
    else:
        best = result.best
        log.debug(
            "%s: best offset=%s score=%s in %.3fs",
            name, best.offset if best else None, best.score if best else None,
            time.perf_counter() - t0,
        )
    return result


def search_overlays(
    background: PixelGrid,
    overlays: Sequence[Tuple[str, PixelGrid]],
    cfg: SearchConfig = SearchConfig(),
    progress: ProgressFn = None,
) -> List[OverlayResult]:
    """
    Search every overlay against the shared background, one worker each.

    Results come back in the order of `overlays` whatever the worker count.
    progress callback signature:
        progress(done, total, result)
    """
    cfg.validate()
    total = len(overlays)
    if total == 0:
        return []

    workers = min(cfg.worker_count(), total)
    log.debug("searching %d overlay(s) with %d worker(s)", total, workers)

    if workers == 1:
        results = []
        for done, (name, grid) in enumerate(overlays, start=1):
            results.append(search_overlay(background, name, grid, cfg))
            if progress:
                progress(done, total, results[-1])
        return results

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ekman") as pool:
        futures = [pool.submit(search_overlay, background, name, grid, cfg) for name, grid in overlays]
        results = []
        for done, fut in enumerate(futures, start=1):
            results.append(fut.result())
            if progress:
                progress(done, total, results[-1])
    return results
