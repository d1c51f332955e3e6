from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np
from PIL import Image

from ekman.core.DataModel import Offset
from ekman.core.Errors import MalformedGrid


def _readonly(a: np.ndarray) -> np.ndarray:
    view = a.view()
    view.flags.writeable = False
    return view


class PixelGrid:
    """
    Immutable W x H grid of RGB or RGBA samples.

    Backed by a read-only uint8 array of shape (H, W, C), C in {3, 4}.
    Build it with from_samples / from_array / from_image rather than
    calling the constructor with unchecked data.
    """

    __slots__ = ("_a",)

    def __init__(self, array: np.ndarray):
        a = np.asarray(array)
        if a.ndim == 2:
            a = np.stack([a, a, a], axis=-1)
        if a.ndim != 3 or a.shape[2] not in (3, 4):
            raise MalformedGrid(f"expected an (H, W, 3|4) array, got shape {a.shape}")
        h, w = a.shape[:2]
        if w == 0 or h == 0:
            raise MalformedGrid(f"grid must be at least 1x1, got {w}x{h}")
        if a.dtype != np.uint8:
            if not np.issubdtype(a.dtype, np.integer):
                raise MalformedGrid(f"samples must be integers, got {a.dtype}")
            if a.min() < 0 or a.max() > 255:
                raise MalformedGrid("sample values must be between 0 and 255")
        # Always copy: later writes to the caller's array must not reach the grid.
        self._a = _readonly(np.array(a, dtype=np.uint8))

    # -----------------------------
    # Construction
    # -----------------------------

    @classmethod
    def from_samples(cls, samples: Sequence[Sequence[int]], width: int, height: int) -> "PixelGrid":
        """Build from a flat row-major sequence of (r, g, b[, a]) samples."""
        if width <= 0 or height <= 0:
            raise MalformedGrid(f"grid must be at least 1x1, got {width}x{height}")
        if len(samples) != width * height:
            raise MalformedGrid(
                f"expected {width}x{height}={width * height} samples, got {len(samples)}"
            )
        channels = {len(s) for s in samples}
        if len(channels) != 1 or not channels <= {3, 4}:
            raise MalformedGrid(f"samples must all have 3 or 4 channels, got {sorted(channels)}")
        # keep the inferred dtype so __init__ rejects non-integer samples
        a = np.asarray(samples).reshape(height, width, channels.pop())
        return cls(a)

    @classmethod
    def from_array(cls, array: np.ndarray) -> "PixelGrid":
        return cls(array)

    @classmethod
    def from_image(cls, im: Image.Image) -> "PixelGrid":
        # Keep alpha if present; otherwise go RGB.
        if im.mode not in ("RGB", "RGBA"):
            has_alpha = "A" in im.getbands() or "transparency" in im.info
            im = im.convert("RGBA" if has_alpha else "RGB")
        return cls(np.asarray(im, dtype=np.uint8))

    # -----------------------------
    # Accessors
    # -----------------------------

    @property
    def width(self) -> int:
        return self._a.shape[1]

    @property
    def height(self) -> int:
        return self._a.shape[0]

    @property
    def channels(self) -> int:
        return self._a.shape[2]

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @property
    def array(self) -> np.ndarray:
        return self._a

    def pixel(self, x: int, y: int) -> Tuple[int, ...]:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"pixel ({x}, {y}) outside {self.width}x{self.height} grid")
        return tuple(int(c) for c in self._a[y, x])

    def window(self, x: int, y: int, w: int, h: int) -> np.ndarray:
        """Read-only (h, w, C) view of the region whose top-left is (x, y)."""
        if w <= 0 or h <= 0 or x < 0 or y < 0 or x + w > self.width or y + h > self.height:
            raise ValueError(
                f"window ({x}, {y}, {w}x{h}) outside {self.width}x{self.height} grid"
            )
        return self._a[y:y + h, x:x + w]

    def fits(self, other: "PixelGrid") -> bool:
        """True if `other` can be placed inside this grid at least once."""
        return other.width <= self.width and other.height <= self.height

    # -----------------------------
    # Derived grids
    # -----------------------------

    def with_alpha(self) -> "PixelGrid":
        if self.channels == 4:
            return self
        alpha = np.full(self._a.shape[:2] + (1,), 255, dtype=np.uint8)
        return PixelGrid(np.concatenate([self._a, alpha], axis=-1))

    def paste(self, other: "PixelGrid", offset: Offset) -> "PixelGrid":
        """Return a copy of this grid with `other` written at `offset`."""
        dx, dy = offset
        src = other.array
        if other.channels != self.channels:
            src = other.with_alpha().array if self.channels == 4 else src[..., :3]
        out = self._a.copy()
        region = out[dy:dy + other.height, dx:dx + other.width]
        if dx < 0 or dy < 0 or region.shape[:2] != src.shape[:2]:
            raise ValueError(f"cannot paste {other.width}x{other.height} at {offset}")
        region[...] = src
        return PixelGrid(out)

    def to_image(self) -> Image.Image:
        return Image.fromarray(np.array(self._a))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PixelGrid):
            return NotImplemented
        return self._a.shape == other._a.shape and bool(np.array_equal(self._a, other._a))

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"PixelGrid({self.width}x{self.height}, channels={self.channels})"
