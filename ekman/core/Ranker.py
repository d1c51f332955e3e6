from __future__ import annotations

from typing import List, Sequence, Tuple

from ekman.core.DataModel import ORDERS, OverlayResult


def best_score(result: OverlayResult):
    best = result.best
    return None if best is None else best.score


def _sort_key(item: Tuple[int, OverlayResult]):
    index, r = item
    if r.error is not None or r.best is None:
        return (2, 0.0, index)
    score = r.best.score
    if score is None:
        # Nothing was compared: never rank ahead of a real score, even 0.
        return (1, 0.0, index)
    return (0, score, index)


def rank_results(results: Sequence[OverlayResult], order: str = "input") -> List[OverlayResult]:
    """
    Order per-overlay results for reporting.

    "input" keeps overlay order. "score" sorts by each overlay's best score
    ascending, then overlays with an undefined score, then failed ones;
    ties keep input order.
    """
    if order not in ORDERS:
        raise ValueError(f"order must be one of {', '.join(ORDERS)}")
    if order == "input":
        return list(results)
    return [r for _, r in sorted(enumerate(results), key=_sort_key)]
