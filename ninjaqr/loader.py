"""
Asset loading: photo references and QR surfaces into RGBA rasters.

Functions
---------
load_photo
    Fetch and decode a photo (URL, data URL, path or bytes).
read_qr_raster
    Extract the pixels of an already-rendered QR surface.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from io import BytesIO
from pathlib import Path
from typing import Optional, Union
from urllib.parse import unquote_to_bytes

import httpx
import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import LoadError, ReadError
from .raster import ImageLike, RasterImage
from .staging import (
    ScratchSurface,
    StagingArea,
    acquire_staging_area,
    flush_pending_layout,
)


logger = logging.getLogger(__name__)

PHOTO_SURFACE_NAME = "photo-canvas"

PhotoReference = Union[str, Path, bytes, bytearray, memoryview]
QRSurface = Union[RasterImage, ImageLike]


def _is_http_url(reference: str) -> bool:
    return reference.startswith(("http://", "https://"))


def _decode_data_url(url: str) -> bytes:
    """Payload of a ``data:[<mime>][;base64],<data>`` URL."""
    header, sep, payload = url.partition(",")
    if not sep:
        raise LoadError("malformed data URL: missing ','")
    if header.endswith(";base64"):
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise LoadError("malformed base64 payload in data URL") from exc
    return unquote_to_bytes(payload)


async def _fetch_url(url: str, client: Optional[httpx.AsyncClient]) -> bytes:
    try:
        if client is None:
            async with httpx.AsyncClient(follow_redirects=True) as own_client:
                response = await own_client.get(url)
        else:
            response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise LoadError(f"failed to fetch photo {url}: {exc}") from exc
    return response.content


async def fetch_photo_bytes(
    reference: PhotoReference,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> bytes:
    """
    Resolve a photo reference into its encoded bytes.

    Parameters
    ----------
    reference : str, pathlib.Path, bytes, bytearray or memoryview
        ``http(s)://`` URL, ``data:`` URL, filesystem path, or the encoded
        image itself.
    client : httpx.AsyncClient, optional
        Client used for HTTP references. If None, a short-lived client is
        created for the request.

    Returns
    -------
    bytes
        Encoded image data, never empty.

    Raises
    ------
    LoadError
        If the reference cannot be fetched or yields zero bytes.
    """
    if isinstance(reference, (bytes, bytearray, memoryview)):
        data = bytes(reference)
    elif isinstance(reference, str) and _is_http_url(reference):
        data = await _fetch_url(reference, client)
    elif isinstance(reference, str) and reference.startswith("data:"):
        data = _decode_data_url(reference)
    elif isinstance(reference, (str, Path)):
        path = Path(reference)
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise LoadError(f"failed to read photo {path}: {exc}") from exc
    else:
        raise TypeError(
            "reference must be a URL, a path, or bytes; "
            f"got {type(reference).__name__}"
        )

    if not data:
        raise LoadError("photo reference resolved to zero bytes")
    return data


def decode_photo(data: bytes) -> Image.Image:
    """
    Decode encoded image bytes into a fully loaded PIL image.

    Raises
    ------
    LoadError
        If the bytes are not a supported or intact image.
    """
    try:
        image = Image.open(BytesIO(data))
        image.load()
    except (
        UnidentifiedImageError,
        OSError,
        SyntaxError,  # Pillow's signal for broken chunk structure
        ValueError,
        Image.DecompressionBombError,
    ) as exc:
        raise LoadError(f"failed to decode photo: {exc}") from exc
    return image


async def load_photo(
    reference: PhotoReference,
    *,
    client: Optional[httpx.AsyncClient] = None,
    staging: Optional[StagingArea] = None,
    surface: Optional[ScratchSurface] = None,
) -> RasterImage:
    """
    Fetch and decode a photo into an RGBA raster.

    The decode is staged: the photo is drawn onto a scratch surface
    attached to the staging area, the loader waits on the layout barrier,
    and only then measures the image. When the loader attaches the
    surface itself, it is detached again whether or not decoding
    succeeds.

    Parameters
    ----------
    reference : PhotoReference
        See ``fetch_photo_bytes``.
    client : httpx.AsyncClient, optional
        Client used for HTTP references.
    staging : StagingArea, optional
        Staging area to use. The default is the process-wide area.
    surface : ScratchSurface, optional
        Scratch surface already attached by the caller. The caller then
        owns detaching it.

    Returns
    -------
    RasterImage
        Photo pixels in RGBA order at the encoded dimensions.

    Raises
    ------
    LoadError
        On fetch failure, zero-byte payloads, or undecodable data.
    StagingBusyError
        If the staging area is held by another call.
    """
    if surface is None:
        area = staging if staging is not None else acquire_staging_area()
        with area.scratch(PHOTO_SURFACE_NAME) as own_surface:
            return await load_photo(reference, client=client, surface=own_surface)

    data = await fetch_photo_bytes(reference, client=client)
    image = decode_photo(data)

    await flush_pending_layout()

    # Dimensions are only read after the barrier
    surface.width, surface.height = image.size
    if surface.width == 0 or surface.height == 0:
        raise LoadError("decoded photo has zero area")
    raster = RasterImage.from_pil(image)

    logger.debug("Loaded photo %dx%d", raster.width, raster.height)
    return raster


def read_qr_raster(surface: QRSurface) -> RasterImage:
    """
    Extract RGBA pixel data from an already-rendered QR surface.

    Parameters
    ----------
    surface : RasterImage, PIL.Image.Image or numpy.ndarray
        Surface owned by the caller. A copy of its pixels is returned so
        later compositing never writes back into it. Inputs without an
        alpha channel are treated as fully opaque.

    Returns
    -------
    RasterImage
        Copy of the surface pixels.

    Raises
    ------
    ReadError
        If the surface has zero area or an unsupported shape.
    TypeError
        If `surface` is not a raster, PIL image or NumPy array.
    """
    if isinstance(surface, RasterImage):
        raster = surface.copy()
    elif isinstance(surface, Image.Image):
        if surface.width == 0 or surface.height == 0:
            raise ReadError("QR surface has zero area")
        raster = RasterImage.from_pil(surface)
    elif isinstance(surface, np.ndarray):
        try:
            raster = RasterImage.from_array(surface, name="QR surface")
        except ValueError as exc:
            raise ReadError(str(exc)) from exc
    else:
        raise TypeError(
            "QR surface must be a RasterImage, NumPy array or PIL.Image.Image"
        )

    if raster.is_empty:
        raise ReadError("QR surface has zero area")
    return raster
