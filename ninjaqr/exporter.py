"""
PNG export of composited rasters.
"""

from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path
from typing import Callable, Optional

from .errors import EncodeError
from .raster import RasterImage


logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "ninja.png"

SaveCallback = Callable[[bytes, str], None]


def save_to_disk(data: bytes, filename: str) -> None:
    """Default save collaborator: write `data` to `filename`."""
    Path(filename).write_bytes(data)


def encode_png(photo: RasterImage) -> bytes:
    """
    Encode a raster as a lossless RGBA PNG.

    Raises
    ------
    EncodeError
        If the raster has zero width or height, or Pillow fails to write.
    """
    if photo.is_empty:
        raise EncodeError(
            f"cannot encode an empty raster ({photo.width}x{photo.height})"
        )

    buf = BytesIO()
    try:
        photo.to_pil().save(buf, format="PNG")
    except (OSError, ValueError) as exc:
        raise EncodeError(f"PNG encoding failed: {exc}") from exc
    return buf.getvalue()


def export_and_save(
    photo: RasterImage,
    filename: str = DEFAULT_FILENAME,
    save: Optional[SaveCallback] = None,
) -> bytes:
    """
    Encode `photo` and hand the bytes to a save collaborator.

    Parameters
    ----------
    photo : RasterImage
        Composited raster.
    filename : str, optional
        Name the collaborator receives. The default is "ninja.png".
    save : callable, optional
        ``save(data, filename)``. The default writes to disk with
        ``save_to_disk``.

    Returns
    -------
    bytes
        The PNG data that was saved.

    Raises
    ------
    EncodeError
        If the raster is empty. `save` is not called in that case.
    """
    data = encode_png(photo)
    (save or save_to_disk)(data, filename)
    logger.info("Exported %s (%d bytes, %dx%d)", filename, len(data), photo.width, photo.height)
    return data
