"""ekman — locate overlay images inside a background image."""

__version__ = "0.2.0"

from ekman.core import (  # noqa: E402
    EkmanError,
    ImageLoadError,
    MalformedGrid,
    MatchResult,
    OverlayResult,
    OverlayTooLarge,
    PixelGrid,
    SearchConfig,
    SearchTimeout,
    build_mask,
    find_matches,
    parse_color,
    rank_results,
    score_at,
    score_map,
    search_overlays,
)

__all__ = [
    "__version__",
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
