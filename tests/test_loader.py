"""
Tests for photo loading and QR raster extraction.
"""

import base64

import httpx
import numpy as np
import pytest
from PIL import Image

from ninjaqr import loader
from ninjaqr.errors import LoadError, ReadError
from ninjaqr.loader import fetch_photo_bytes, load_photo, read_qr_raster
from ninjaqr.raster import RasterImage
from ninjaqr.staging import acquire_staging_area


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestLoadPhoto:
    @pytest.mark.asyncio
    async def test_from_bytes(self, photo_png, gradient_photo):
        raster = await load_photo(photo_png)
        assert raster.size == (16, 12)
        assert np.array_equal(raster.pixels, gradient_photo.pixels)

    @pytest.mark.asyncio
    async def test_from_path(self, tmp_path, photo_png):
        path = tmp_path / "photo.png"
        path.write_bytes(photo_png)
        raster = await load_photo(str(path))
        assert raster.size == (16, 12)

    @pytest.mark.asyncio
    async def test_rgb_jpeg_becomes_opaque_rgba(self, encode_image):
        data = encode_image(Image.new("RGB", (5, 7), (120, 120, 120)), "JPEG")
        raster = await load_photo(data)
        assert raster.size == (5, 7)
        assert np.all(raster.alpha == 255)

    @pytest.mark.asyncio
    async def test_from_data_url(self, photo_png):
        url = "data:image/png;base64," + base64.b64encode(photo_png).decode()
        raster = await load_photo(url)
        assert raster.size == (16, 12)

    @pytest.mark.asyncio
    async def test_from_http(self, photo_png):
        def handler(request):
            assert request.url == "https://img.example/photo.png"
            return httpx.Response(200, content=photo_png)

        async with mock_client(handler) as client:
            raster = await load_photo("https://img.example/photo.png", client=client)
        assert raster.size == (16, 12)

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        async with mock_client(lambda request: httpx.Response(404)) as client:
            with pytest.raises(LoadError):
                await load_photo("https://img.example/missing.png", client=client)

    @pytest.mark.asyncio
    async def test_network_failure(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        async with mock_client(handler) as client:
            with pytest.raises(LoadError) as excinfo:
                await load_photo("http://img.example/photo.png", client=client)
        assert isinstance(excinfo.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_zero_byte_response(self):
        async with mock_client(lambda request: httpx.Response(200, content=b"")) as client:
            with pytest.raises(LoadError):
                await load_photo("https://img.example/empty.png", client=client)

    @pytest.mark.asyncio
    async def test_corrupt_bytes(self):
        with pytest.raises(LoadError):
            await load_photo(b"definitely not an image")

    @pytest.mark.asyncio
    async def test_truncated_png(self, photo_png):
        with pytest.raises(LoadError):
            await load_photo(photo_png[: len(photo_png) // 2])

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        with pytest.raises(LoadError):
            await load_photo(tmp_path / "nope.png")

    @pytest.mark.asyncio
    async def test_unsupported_reference_type(self):
        with pytest.raises(TypeError):
            await load_photo(12345)

    @pytest.mark.asyncio
    async def test_staging_released_after_success_and_failure(self, photo_png):
        area = acquire_staging_area()
        await load_photo(photo_png)
        assert not area.in_use

        with pytest.raises(LoadError):
            await load_photo(b"garbage")
        assert not area.in_use

    @pytest.mark.asyncio
    async def test_dimensions_read_after_layout_barrier(self, monkeypatch, photo_png):
        area = acquire_staging_area()
        seen = []

        async def barrier():
            surface = area.children[0]
            seen.append((surface.width, surface.height))

        monkeypatch.setattr(loader, "flush_pending_layout", barrier)
        await load_photo(photo_png)

        # nothing measured yet when the barrier ran
        assert seen == [(0, 0)]

    @pytest.mark.asyncio
    async def test_caller_supplied_surface_stays_attached(self, photo_png):
        area = acquire_staging_area()
        with area.scratch() as surface:
            await load_photo(photo_png, surface=surface)
            assert area.children == [surface]
            assert (surface.width, surface.height) == (16, 12)


@pytest.mark.asyncio
async def test_fetch_photo_bytes_passthrough():
    assert await fetch_photo_bytes(bytearray(b"abc")) == b"abc"


class TestReadQrRaster:
    def test_from_raster_returns_copy(self, opaque_qr):
        raster = read_qr_raster(opaque_qr)
        raster.pixels[0, 0] = (1, 2, 3, 4)
        assert opaque_qr.pixel(0, 0) == (0, 0, 0, 255)

    def test_from_pil_keeps_alpha(self):
        image = Image.new("RGBA", (3, 3), (0, 0, 0, 0))
        image.putpixel((1, 1), (0, 0, 0, 255))
        raster = read_qr_raster(image)
        assert raster.pixel(1, 1)[3] == 255
        assert raster.pixel(0, 0)[3] == 0

    def test_from_array(self):
        raster = read_qr_raster(np.zeros((4, 6, 4), dtype=np.uint8))
        assert raster.size == (6, 4)

    @pytest.mark.parametrize(
        "surface",
        [
            RasterImage.blank(0, 0),
            RasterImage.blank(5, 0),
            np.zeros((0, 3, 4), dtype=np.uint8),
        ],
    )
    def test_zero_area(self, surface):
        with pytest.raises(ReadError):
            read_qr_raster(surface)

    def test_zero_area_pil(self):
        with pytest.raises(ReadError):
            read_qr_raster(Image.new("RGBA", (0, 0)))

    def test_bad_shape(self):
        with pytest.raises(ReadError):
            read_qr_raster(np.zeros((2, 2, 5), dtype=np.uint8))

    def test_wrong_type(self):
        with pytest.raises(TypeError):
            read_qr_raster("qr.png")
