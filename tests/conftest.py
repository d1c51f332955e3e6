import numpy as np
import pytest

from ekman.core.PixelGrid import PixelGrid

BLACK = (0, 0, 0)
WHITE = (255, 255, 255)


def solid(w, h, color=BLACK):
    return PixelGrid.from_array(np.tile(np.asarray(color, dtype=np.uint8), (h, w, 1)))


def random_grid(rng, w, h, channels=3, high=256):
    return PixelGrid.from_array(rng.integers(0, high, size=(h, w, channels), dtype=np.uint8))


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def square_scene():
    """4x4 black background with a 2x2 white square at (1, 1), and the 2x2 white overlay."""
    background = solid(4, 4).paste(solid(2, 2, WHITE), (1, 1))
    overlay = solid(2, 2, WHITE)
    return background, overlay
