from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

Offset = Tuple[int, int]  # (dx, dy), top-left of the overlay inside the background
Color = Tuple[int, ...]   # RGB or RGBA

METRICS = ("sad", "ssd")
STRATEGIES = ("vectorized", "pruned", "naive")
ORDERS = ("input", "score")


# -----------------------------
# Data model
# -----------------------------

@dataclass(frozen=True)
class SearchConfig:
    transparent: Optional[Color] = None  # e.g. (255, 255, 255) for white
    tolerance: int = 0                   # per-channel, 0 = exact
    alpha_transparent: bool = False      # also mask pixels with alpha == 0

    top_k: int = 1
    metric: str = "sad"                  # "sad" (absolute) or "ssd" (squared)
    strategy: str = "vectorized"         # "vectorized", "pruned" or "naive"
    max_score: Optional[float] = None    # drop worse matches (the best is always kept)
    min_match_fraction: Optional[float] = None  # report every placement at least this identical

    workers: Optional[int] = None        # None -> os.cpu_count()
    timeout: Optional[float] = None      # seconds per overlay
    order: str = "input"                 # "input" or "score"

    def validate(self) -> "SearchConfig":
        if self.top_k < 1:
            raise ValueError("top_k must be >= 1")
        if self.metric not in METRICS:
            raise ValueError(f"metric must be one of {', '.join(METRICS)}")
        if self.strategy not in STRATEGIES:
            raise ValueError(f"strategy must be one of {', '.join(STRATEGIES)}")
        if self.order not in ORDERS:
            raise ValueError(f"order must be one of {', '.join(ORDERS)}")
        if not 0 <= self.tolerance <= 255:
            raise ValueError("tolerance must be between 0 and 255")
        if self.transparent is not None:
            if len(self.transparent) not in (3, 4):
                raise ValueError("transparent color must have 3 or 4 channels")
            if any(not 0 <= c <= 255 for c in self.transparent):
                raise ValueError("transparent color channels must be between 0 and 255")
        if self.max_score is not None and self.max_score < 0:
            raise ValueError("max_score must be >= 0")
        if self.min_match_fraction is not None and not 0 < self.min_match_fraction <= 1:
            raise ValueError("min_match_fraction must be in (0, 1]")
        if self.workers is not None and self.workers < 1:
            raise ValueError("workers must be >= 1")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        return self

    def worker_count(self) -> int:
        return self.workers or os.cpu_count() or 1


@dataclass(frozen=True)
class MatchResult:
    name: str
    offset: Offset
    # Normalised distance, lower is better. None when no pixel was compared.
    score: Optional[float]
    compared_pixels: int
    match_fraction: float = 0.0   # share of compared pixels that are identical
    is_border_match: bool = False

    @property
    def x(self) -> int:
        return self.offset[0]

    @property
    def y(self) -> int:
        return self.offset[1]

    @property
    def undefined(self) -> bool:
        return self.score is None

    @property
    def is_perfect(self) -> bool:
        return self.score is not None and self.score == 0.0 and self.compared_pixels > 0


@dataclass
class OverlayResult:
    name: str
    width: int
    height: int
    matches: List[MatchResult] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def best(self) -> Optional[MatchResult]:
        return self.matches[0] if self.matches else None

    @property
    def found(self) -> bool:
        return self.error is None and bool(self.matches)


ProgressFn = Optional[Callable[[int, int, OverlayResult], None]]  # (done, total, result)
