"""
End-to-end stealth QR rendering: load, composite, export.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from .compositor import BlendSettings, composite
from .exporter import DEFAULT_FILENAME, SaveCallback, export_and_save
from .loader import PHOTO_SURFACE_NAME, PhotoReference, QRSurface, load_photo, read_qr_raster
from .raster import Placement
from .staging import StagingArea, acquire_staging_area


logger = logging.getLogger(__name__)


async def create_ninja_qr_image(
    reference: PhotoReference,
    qr_surface: QRSurface,
    placement: Placement = Placement(0, 0),
    *,
    settings: Optional[BlendSettings] = None,
    filename: str = DEFAULT_FILENAME,
    save: Optional[SaveCallback] = None,
    client: Optional[httpx.AsyncClient] = None,
    staging: Optional[StagingArea] = None,
) -> bytes:
    """
    Blend a QR surface into a photo and save the result as a PNG.

    Parameters
    ----------
    reference : PhotoReference
        Photo to load: URL, data URL, path, or encoded bytes.
    qr_surface : QRSurface
        Already-rendered QR pixels. Opaque pixels mark modules.
    placement : Placement or tuple of int, optional
        Offset of the QR origin in photo pixels. The default is (0, 0).
    settings : BlendSettings, optional
        Blend parameters. The default is 105 / 1.7 / alpha 150 / clamp.
    filename : str, optional
        Name handed to the save collaborator. The default is
        "ninja.png".
    save : callable, optional
        ``save(data, filename)``. The default writes to disk.
    client : httpx.AsyncClient, optional
        Client used when `reference` is an HTTP URL.
    staging : StagingArea, optional
        Staging area for the decode. The default is the process-wide
        area.

    Returns
    -------
    bytes
        The PNG data passed to `save`.

    Raises
    ------
    ReadError
        If the QR surface is empty. Raised before the photo is fetched.
    LoadError
        If the photo cannot be fetched or decoded.
    EncodeError
        If the composited photo cannot be encoded.
    StagingBusyError
        If another call is still using the staging area.

    Notes
    -----
    The call suspends while the photo is fetched and once more at the
    layout barrier before the photo is measured. The scratch surface
    attached for the decode is detached on every exit path. Nothing is
    saved unless every stage succeeds.
    """
    qr = read_qr_raster(qr_surface)
    area = staging if staging is not None else acquire_staging_area()
    placement = Placement(*placement)

    with area.scratch(PHOTO_SURFACE_NAME) as canvas:
        photo = await load_photo(reference, client=client, surface=canvas)
        composite(photo, qr, placement, settings)
        data = export_and_save(photo, filename, save)

    logger.debug("Released staging area %s", area.area_id)
    return data
