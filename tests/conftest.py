"""
Shared fixtures for the ninjaqr test suite.
"""

from io import BytesIO

import numpy as np
import pytest
from PIL import Image

from ninjaqr.raster import RasterImage
from ninjaqr.staging import reset_staging_areas


def _encode(image: Image.Image, fmt: str = "PNG") -> bytes:
    buf = BytesIO()
    image.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def encode_image():
    """Encoder turning a PIL image into PNG (or `fmt`) bytes."""
    return _encode


@pytest.fixture(autouse=True)
def fresh_staging():
    """Every test starts without a registered staging area."""
    reset_staging_areas()
    yield
    reset_staging_areas()


@pytest.fixture
def black_photo():
    """4x4 opaque black photo."""
    return RasterImage.blank(4, 4, (0, 0, 0, 255))


@pytest.fixture
def opaque_qr():
    """2x2 fully opaque QR raster."""
    return RasterImage.blank(2, 2, (0, 0, 0, 255))


@pytest.fixture
def gradient_photo():
    """16x12 photo where every pixel is distinct."""
    h, w = 12, 16
    ys, xs = np.mgrid[0:h, 0:w]
    arr = np.stack(
        [xs * 15, ys * 20, (xs + ys) * 7, np.full_like(xs, 255)],
        axis=-1,
    ).astype(np.uint8)
    return RasterImage(arr)


@pytest.fixture
def photo_png(gradient_photo):
    """The gradient photo encoded as PNG bytes."""
    return _encode(gradient_photo.to_pil())
