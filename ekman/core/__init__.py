"""Match-search engine: pixel grids, masks, scoring, search and ranking."""

from ekman.core.DataModel import MatchResult, OverlayResult, SearchConfig
from ekman.core.Errors import EkmanError, ImageLoadError, MalformedGrid, OverlayTooLarge, SearchTimeout
from ekman.core.PixelGrid import PixelGrid
from ekman.core.Ranker import rank_results
from ekman.core.Scorer import score_at, score_map
from ekman.core.Search import find_matches, search_overlays
from ekman.core.Transparency import build_mask, parse_color

__all__ = [
    "EkmanError",
    "ImageLoadError",
    "MalformedGrid",
    "MatchResult",
    "OverlayResult",
    "OverlayTooLarge",
    "PixelGrid",
    "SearchConfig",
    "SearchTimeout",
    "build_mask",
    "find_matches",
    "parse_color",
    "rank_results",
    "score_at",
    "score_map",
    "search_overlays",
]
