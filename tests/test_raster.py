"""
Tests for RasterImage and Placement.
"""

import numpy as np
import pytest
from PIL import Image

from ninjaqr.raster import Placement, RasterImage


class TestRasterImage:
    def test_blank_dimensions_and_buffer_length(self):
        raster = RasterImage.blank(5, 3, (1, 2, 3, 4))
        assert raster.size == (5, 3)
        assert len(raster.tobytes()) == 5 * 3 * 4
        assert raster.pixel(4, 2) == (1, 2, 3, 4)

    def test_zero_area_is_empty(self):
        assert RasterImage.blank(0, 7).is_empty
        assert RasterImage.blank(7, 0).is_empty
        assert not RasterImage.blank(1, 1).is_empty

    def test_negative_dimensions_rejected(self):
        with pytest.raises(ValueError):
            RasterImage.blank(-1, 2)

    def test_rejects_wrong_channel_count(self):
        with pytest.raises(ValueError):
            RasterImage(np.zeros((2, 2, 3), dtype=np.uint8))

    def test_pixels_are_shared_not_copied(self):
        arr = np.zeros((2, 2, 4), dtype=np.uint8)
        raster = RasterImage(arr)
        raster.pixels[0, 1] = (9, 9, 9, 9)
        assert tuple(arr[0, 1]) == (9, 9, 9, 9)

    def test_copy_is_independent(self):
        raster = RasterImage.blank(2, 2)
        clone = raster.copy()
        clone.pixels[0, 0] = (1, 1, 1, 1)
        assert raster.pixel(0, 0) == (0, 0, 0, 0)

    def test_channel_order_is_rgba(self):
        image = Image.new("RGB", (1, 1), (10, 20, 30))
        assert RasterImage.from_pil(image).pixel(0, 0) == (10, 20, 30, 255)

    def test_from_array_grayscale_is_opaque(self):
        raster = RasterImage.from_array(np.full((3, 2), 77, dtype=np.uint8))
        assert raster.size == (2, 3)
        assert raster.pixel(1, 2) == (77, 77, 77, 255)

    def test_from_array_bad_shape(self):
        with pytest.raises(ValueError):
            RasterImage.from_array(np.zeros((2, 2, 2), dtype=np.uint8))

    def test_pil_round_trip_preserves_alpha(self):
        raster = RasterImage.blank(3, 3, (200, 100, 50, 150))
        back = RasterImage.from_pil(raster.to_pil())
        assert np.array_equal(back.pixels, raster.pixels)


class TestPlacement:
    def test_unpacks_like_a_pair(self):
        x, y = Placement(-3, 8)
        assert (x, y) == (-3, 8)

    def test_default_is_origin(self):
        assert Placement() == (0, 0)


def test_read_only_buffer_is_copied_into_a_writable_one():
    frozen = np.asarray(Image.new("RGBA", (3, 2), (5, 6, 7, 255)))
    assert not frozen.flags.writeable

    raster = RasterImage(frozen)
    assert raster.pixels.flags.writeable
    assert raster.pixel(2, 1) == (5, 6, 7, 255)
