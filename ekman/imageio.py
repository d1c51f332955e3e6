from __future__ import annotations

import glob
from pathlib import Path
from typing import Iterable, List, Union

from PIL import Image, UnidentifiedImageError

from ekman.core.Errors import ImageLoadError
from ekman.core.PixelGrid import PixelGrid

ImageLikePath = Union[str, Path]


SUPPORTED_EXTS = {".jpg", ".jpeg", ".png", ".webp", ".bmp", ".gif", ".tif", ".tiff"}

_GLOB_CHARS = ("*", "?", "[")


def _is_pattern(s: str) -> bool:
    return any(c in s for c in _GLOB_CHARS)


def is_image_path(p: Path) -> bool:
    return p.suffix.lower() in SUPPORTED_EXTS


def expand_patterns(patterns: Iterable[str]) -> List[Path]:
    """
    Turn CLI overlay arguments into paths, preserving argument order.

    Literal paths pass through untouched (a missing file is reported later,
    per overlay). Glob patterns expand to their sorted image matches; a
    pattern that matches nothing is an error.
    """
    out: List[Path] = []
    for pattern in patterns:
        if not _is_pattern(pattern):
            out.append(Path(pattern))
            continue
        matches = [Path(m) for m in sorted(glob.glob(pattern, recursive=True))]
        matches = [p for p in matches if p.is_file() and is_image_path(p)]
        if not matches:
            raise FileNotFoundError(f"no images match pattern: {pattern}")
        out.extend(matches)
    return out


def load_grid(path: ImageLikePath) -> PixelGrid:
    """Decode an image file into an RGB or RGBA PixelGrid."""
    p = Path(path)
    try:
        with Image.open(p) as im:
            im.load()
            return PixelGrid.from_image(im)
    except FileNotFoundError:
        raise ImageLoadError(f"image not found: {p}") from None
    except (UnidentifiedImageError, OSError) as e:
        raise ImageLoadError(f"cannot decode {p}: {e}") from e


def save_grid(grid: PixelGrid, path: ImageLikePath) -> Path:
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    grid.to_image().save(out_path)
    return out_path
