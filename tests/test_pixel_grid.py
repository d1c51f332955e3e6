import numpy as np
import pytest
from PIL import Image

from ekman.core.Errors import MalformedGrid
from ekman.core.PixelGrid import PixelGrid

from conftest import solid


def test_from_samples_row_major():
    samples = [(0, 0, 0), (1, 1, 1), (2, 2, 2), (3, 3, 3), (4, 4, 4), (5, 5, 5)]
    g = PixelGrid.from_samples(samples, width=3, height=2)

    assert g.size == (3, 2)
    assert g.channels == 3
    assert g.pixel(0, 0) == (0, 0, 0)
    assert g.pixel(2, 0) == (2, 2, 2)
    assert g.pixel(0, 1) == (3, 3, 3)
    assert g.pixel(2, 1) == (5, 5, 5)


@pytest.mark.parametrize(
    "samples,w,h",
    [
        ([(0, 0, 0)] * 5, 3, 2),    # too few
        ([(0, 0, 0)] * 7, 3, 2),    # too many
        ([], 0, 0),                 # empty
        ([(0, 0, 0)] * 3, 3, 0),    # zero height
        ([(0, 0, 0), (0, 0, 0, 0)], 2, 1),  # mixed channel count
        ([(0, 0)] * 2, 2, 1),       # unsupported channel count
        ([(0, 0, 256)], 1, 1),      # out of range
        ([(0, -1, 0)], 1, 1),
        ([(0.7, 1.9, 2.5)], 1, 1),  # not integers
    ],
)
def test_from_samples_rejects_malformed(samples, w, h):
    with pytest.raises(MalformedGrid):
        PixelGrid.from_samples(samples, w, h)


def test_malformed_grid_is_a_value_error():
    with pytest.raises(ValueError):
        PixelGrid.from_array(np.zeros((0, 3, 3), dtype=np.uint8))


def test_grid_is_read_only():
    g = solid(3, 3)
    with pytest.raises(ValueError):
        g.array[0, 0, 0] = 9
    with pytest.raises(ValueError):
        g.window(0, 0, 2, 2)[0, 0, 0] = 9


def test_source_array_changes_do_not_leak_in():
    a = np.zeros((2, 2, 3), dtype=np.uint8)
    g = PixelGrid.from_array(a)
    a[0, 0] = 200
    assert g.pixel(0, 0) == (0, 0, 0)


def test_pixel_out_of_range():
    g = solid(2, 2)
    with pytest.raises(IndexError):
        g.pixel(2, 0)
    with pytest.raises(IndexError):
        g.pixel(0, -1)


def test_window():
    g = PixelGrid.from_array(np.arange(4 * 3 * 3, dtype=np.uint8).reshape(3, 4, 3))
    w = g.window(1, 1, 2, 2)
    assert w.shape == (2, 2, 3)
    assert tuple(w[0, 0]) == g.pixel(1, 1)
    assert tuple(w[1, 1]) == g.pixel(2, 2)
    with pytest.raises(ValueError):
        g.window(3, 0, 2, 1)


def test_greyscale_array_expands_to_rgb():
    g = PixelGrid.from_array(np.full((2, 2), 7, dtype=np.uint8))
    assert g.channels == 3
    assert g.pixel(1, 1) == (7, 7, 7)


def test_with_alpha_and_paste():
    bg = solid(4, 3)
    ov = solid(2, 2, (10, 20, 30)).with_alpha()
    assert ov.channels == 4
    assert ov.pixel(0, 0) == (10, 20, 30, 255)

    out = bg.paste(ov, (2, 1))
    assert out.channels == 3
    assert out.pixel(2, 1) == (10, 20, 30)
    assert out.pixel(1, 1) == (0, 0, 0)
    assert bg.pixel(2, 1) == (0, 0, 0)  # original untouched

    with pytest.raises(ValueError):
        bg.paste(ov, (3, 0))


def test_image_round_trip():
    im = Image.new("RGBA", (3, 2), (1, 2, 3, 4))
    g = PixelGrid.from_image(im)
    assert g.size == (3, 2)
    assert g.pixel(2, 1) == (1, 2, 3, 4)
    assert g.to_image().mode == "RGBA"
    assert PixelGrid.from_image(g.to_image()) == g


def test_from_image_palette_and_grey():
    assert PixelGrid.from_image(Image.new("L", (2, 2), 9)).pixel(0, 0) == (9, 9, 9)
    p = Image.new("P", (2, 2), 0)
    assert PixelGrid.from_image(p).channels == 3
