"""
Stealth compositing of QR modules into a photo.

Wherever the QR raster holds an opaque module, the photo pixel under it
is contrast-stretched around a mid-gray pivot and given a fixed partial
alpha. Every other photo pixel is left byte-identical. The result stays
recognizable as the photo while the module pattern remains visible to a
scanner.

Classes
-------
ChannelPolicy
    How out-of-range channel values are coerced back to 8 bits.
BlendSettings
    Immutable blend parameters.

Functions
---------
composite
    Blend a QR raster into a photo raster in place.
blend_channel
    The per-channel transform on its own.
touched_mask
    Which photo pixels ``composite`` would write.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import numpy as np

from .raster import Placement, RasterImage


logger = logging.getLogger(__name__)


class ChannelPolicy(str, Enum):
    """
    Coercion of transformed channel values into the 0–255 range.

    CLAMP
        Round half to even, then clip to [0, 255]. This is what an
        8-bit clamped pixel buffer does on assignment.
    WRAP
        Truncate toward zero, then take the value modulo 256.
    """

    CLAMP = "clamp"
    WRAP = "wrap"


@dataclass(frozen=True)
class BlendSettings:
    """
    Immutable blend configuration.

    Parameters
    ----------
    offset : float, optional
        Mid-gray pivot subtracted from each channel. The default is 105.
    gain : float, optional
        Contrast multiplier applied after the subtraction. The default
        is 1.7.
    module_alpha : int, optional
        Alpha forced onto every pixel under a QR module, 0–255. The
        default is 150.
    policy : ChannelPolicy or str, optional
        Coercion policy for out-of-range results. Accepts the enum or its
        string value, case-insensitive. The default is CLAMP.

    Raises
    ------
    ValueError
        If `module_alpha` is outside 0–255 or `policy` is unknown.
    """

    offset: float = 105
    gain: float = 1.7
    module_alpha: int = 150
    policy: ChannelPolicy = ChannelPolicy.CLAMP

    def __post_init__(self) -> None:
        if not 0 <= int(self.module_alpha) <= 255:
            raise ValueError("'module_alpha' must be in the range 0-255")

        name = self.policy.value if isinstance(self.policy, ChannelPolicy) else str(self.policy)
        try:
            policy = ChannelPolicy(name.lower())
        except ValueError as exc:
            raise ValueError("'policy' must be one of {'clamp', 'wrap'}") from exc

        # Store normalized values
        object.__setattr__(self, "module_alpha", int(self.module_alpha))
        object.__setattr__(self, "policy", policy)


DEFAULT_SETTINGS = BlendSettings()


def _coerce(values: np.ndarray, policy: ChannelPolicy) -> np.ndarray:
    if policy is ChannelPolicy.WRAP:
        return np.mod(np.trunc(values), 256).astype(np.uint8)
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


def blend_channel(
    values: Union[int, np.ndarray],
    settings: Optional[BlendSettings] = None,
) -> np.ndarray:
    """
    Apply ``(value - offset) * gain`` and coerce the result to uint8.

    Parameters
    ----------
    values : int or numpy.ndarray
        Channel value(s) in the range 0–255.
    settings : BlendSettings, optional
        Blend parameters. The default is ``DEFAULT_SETTINGS``.

    Returns
    -------
    numpy.ndarray
        uint8 array with the same shape as `values` (0-d for scalars).

    Examples
    --------
    >>> int(blend_channel(0))
    0
    >>> int(blend_channel(0, BlendSettings(policy="wrap")))
    78
    """
    settings = settings or DEFAULT_SETTINGS
    arr = np.asarray(values, dtype=np.float64)
    return _coerce((arr - settings.offset) * settings.gain, settings.policy)


def _overlap(
    photo: RasterImage,
    qr: RasterImage,
    placement: Placement,
) -> Optional[tuple[slice, slice, slice, slice]]:
    """
    Intersect the placed QR rectangle with the photo rectangle.

    Returns
    -------
    tuple of slice or None
        (photo_rows, photo_cols, qr_rows, qr_cols) covering the overlap,
        or None if the rectangles do not intersect.
    """
    x, y = int(placement[0]), int(placement[1])

    px0 = max(x, 0)
    py0 = max(y, 0)
    px1 = min(x + qr.width, photo.width)
    py1 = min(y + qr.height, photo.height)
    if px0 >= px1 or py0 >= py1:
        return None

    return (
        slice(py0, py1),
        slice(px0, px1),
        slice(py0 - y, py1 - y),
        slice(px0 - x, px1 - x),
    )


def touched_mask(
    photo: RasterImage,
    qr: RasterImage,
    placement: Placement,
) -> np.ndarray:
    """
    Boolean map of the photo pixels ``composite`` writes.

    Returns
    -------
    numpy.ndarray
        Array of shape (photo.height, photo.width); True where a QR pixel
        with alpha > 0 lands inside the photo.
    """
    mask = np.zeros((photo.height, photo.width), dtype=bool)
    window = _overlap(photo, qr, Placement(*placement))
    if window is not None:
        rows, cols, qrows, qcols = window
        mask[rows, cols] = qr.alpha[qrows, qcols] > 0
    return mask


def composite(
    photo: RasterImage,
    qr: RasterImage,
    placement: Placement,
    settings: Optional[BlendSettings] = None,
) -> None:
    """
    Blend the opaque modules of `qr` into `photo`, in place.

    For every QR pixel (qx, qy) the photo pixel at
    (qx + placement.x, qy + placement.y) is considered. Pixels outside the
    photo are skipped. If the QR pixel's alpha is 0 the photo pixel is
    left untouched; otherwise its R, G and B become
    ``(channel - offset) * gain`` (coerced per ``settings.policy``) and
    its alpha becomes ``settings.module_alpha``.

    Parameters
    ----------
    photo : RasterImage
        Photo raster; mutated in place.
    qr : RasterImage
        QR raster. Only its alpha channel is read.
    placement : Placement
        Offset of the QR origin in photo coordinates. Any integers are
        accepted, including offsets that put the QR entirely outside the
        photo.
    settings : BlendSettings, optional
        Blend parameters. The default is ``DEFAULT_SETTINGS``.

    Notes
    -----
    Each photo pixel maps to at most one QR pixel, so the result does not
    depend on visiting order. Reapplying with the same QR and placement
    touches exactly the same pixels again.
    """
    settings = settings or DEFAULT_SETTINGS
    placement = Placement(*placement)

    window = _overlap(photo, qr, placement)
    if window is None:
        logger.debug("QR at %s lies outside the %dx%d photo", placement, photo.width, photo.height)
        return

    rows, cols, qrows, qcols = window
    modules = qr.alpha[qrows, qcols] > 0  # (h, w) bool
    if not modules.any():
        return

    # View into the photo; writes land in the caller's buffer
    region = photo.pixels[rows, cols]
    region[modules, :3] = blend_channel(region[modules, :3], settings)
    region[modules, 3] = settings.module_alpha

    logger.debug(
        "Blended %d module pixels at %s",
        int(modules.sum()),
        placement,
    )
