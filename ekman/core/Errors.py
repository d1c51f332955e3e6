from typing import Tuple


class EkmanError(Exception):
    """Base class for every error raised by ekman."""


class MalformedGrid(EkmanError, ValueError):
    """Pixel data does not describe a valid W x H grid."""


class OverlayTooLarge(EkmanError):
    def __init__(self, overlay_size: Tuple[int, int], background_size: Tuple[int, int]):
        self.overlay_size = overlay_size
        self.background_size = background_size
        ow, oh = overlay_size
        bw, bh = background_size
        super().__init__(f"overlay {ow}x{oh} does not fit inside background {bw}x{bh}")


class SearchTimeout(EkmanError):
    """The per-overlay time budget ran out before the sweep finished."""


class ImageLoadError(EkmanError):
    """An image file could not be opened or decoded."""
