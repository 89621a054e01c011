"""
Stealth QR compositing: blend a QR code's modules into a photograph.

>>> import asyncio
>>> from ninjaqr import create_ninja_qr_image, render_qr_surface
>>> qr = render_qr_surface("https://example.com")
>>> asyncio.run(create_ninja_qr_image("photo.jpg", qr, (40, 40)))  # doctest: +SKIP
"""

from .compositor import BlendSettings, ChannelPolicy, blend_channel, composite, touched_mask
from .errors import EncodeError, LoadError, NinjaQRError, ReadError, StagingBusyError
from .exporter import DEFAULT_FILENAME, encode_png, export_and_save
from .loader import load_photo, read_qr_raster
from .pipeline import create_ninja_qr_image
from .raster import Placement, RasterImage
from .staging import acquire_staging_area, flush_pending_layout
from .surface import QRSpec, decode_raster, is_scannable, render_qr_surface

__all__ = [
    "BlendSettings",
    "ChannelPolicy",
    "DEFAULT_FILENAME",
    "EncodeError",
    "LoadError",
    "NinjaQRError",
    "Placement",
    "QRSpec",
    "RasterImage",
    "ReadError",
    "StagingBusyError",
    "acquire_staging_area",
    "blend_channel",
    "composite",
    "create_ninja_qr_image",
    "decode_raster",
    "encode_png",
    "export_and_save",
    "flush_pending_layout",
    "is_scannable",
    "load_photo",
    "read_qr_raster",
    "render_qr_surface",
    "touched_mask",
]
