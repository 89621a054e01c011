"""
QR surfaces for the compositor, and scan checks for its output.

The compositor only consumes an already-rendered QR raster. This module
builds one with the qrcode library: dark modules are opaque, everything
else (gaps between modules and the quiet zone) is fully transparent, so
only module pixels are blended into the photo.

Functions
---------
render_qr_surface
    Render a payload (or a QRSpec) to an RGBA RasterImage.
decode_raster
    Decode a raster with OpenCV (optional dependency).
is_scannable
    Check that a raster decodes to an expected payload.

Classes
-------
QRSpec
    Immutable QR code configuration.

Examples
--------
>>> surface = render_qr_surface("https://example.com", box_size=4)
>>> int(surface.alpha.max())
255

Notes
-----
Blended modules flatten back to the photo over white and show up over
black, so decoding views the composite over black by default. OpenCV
is optional and required only for decoding. If unavailable,
decoding raises RuntimeError.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

import numpy as np

import qrcode
from qrcode.constants import (
    ERROR_CORRECT_L,
    ERROR_CORRECT_M,
    ERROR_CORRECT_Q,
    ERROR_CORRECT_H,
)

from .raster import RasterImage


_ECC_MAP = {
    "L": ERROR_CORRECT_L,  # ~7% error correction
    "M": ERROR_CORRECT_M,  # ~15% (default)
    "Q": ERROR_CORRECT_Q,  # ~25%
    "H": ERROR_CORRECT_H,  # ~30%
}


Color = tuple[int, int, int]  # (R, G, B)

# Blended modules only stand out when the composite is viewed over black
REVEAL_BACKGROUND: Color = (0, 0, 0)


@dataclass(frozen=True)
class QRSpec:
    """
    Immutable configuration for a QR surface.

    Parameters
    ----------
    data : str
        Payload encoded into the QR code. Must be a non-empty string.
    box_size : int, optional
        Size, in pixels, of each QR code module. The default is 8.
    border : int, optional
        Width, in modules, of the transparent quiet zone. The default
        is 4.
    ecc : {'L', 'M', 'Q', 'H'}, optional
        Error-correction level, case-insensitive. The default is 'H',
        since blended modules are noisier than printed ones.

    Raises
    ------
    ValueError
        If `data` is empty or whitespace, `box_size` is not positive,
        `border` is negative, or `ecc` is not one of {'L', 'M', 'Q', 'H'}.
    """

    data: str
    box_size: int = 8
    border: int = 4
    ecc: str = "H"

    def __post_init__(self) -> None:
        if not isinstance(self.data, str) or not self.data.strip():
            raise ValueError("'data' must be a non-empty string")
        if self.box_size < 1:
            raise ValueError("'box_size' must be positive")
        if self.border < 0:
            raise ValueError("'border' must be non-negative")

        ecc_upper = self.ecc.upper()
        if ecc_upper not in _ECC_MAP:
            raise ValueError("'ecc' must be one of {'L', 'M', 'Q', 'H'}")

        # Store normalized ECC
        object.__setattr__(self, "ecc", ecc_upper)

    @property
    def ecc_level(self) -> int:
        return _ECC_MAP[self.ecc]


def build_matrix(spec: QRSpec) -> np.ndarray:
    """
    Boolean module matrix for `spec`, without quiet zone.

    Returns
    -------
    numpy.ndarray
        Array of shape (rows, cols); True marks a dark module.
    """
    qr = qrcode.QRCode(
        version=None,  # let the library pick
        error_correction=spec.ecc_level,
        box_size=1,
        border=0,
    )
    qr.add_data(spec.data)
    qr.make(fit=True)

    return np.array(qr.get_matrix(), dtype=bool)


def module_mask(spec: QRSpec) -> np.ndarray:
    """
    Full-resolution pixel mask including the quiet zone.

    Returns
    -------
    numpy.ndarray
        Boolean array of shape (H, W); True for pixels inside dark
        modules.
    """
    box = spec.box_size

    # Scale module grid with Kronecker product
    scaled = np.kron(build_matrix(spec), np.ones((box, box), dtype=bool))
    # Pad border in pixels (border modules * box_size pixels)
    return np.pad(
        scaled,
        pad_width=spec.border * box,
        mode="constant",
        constant_values=False,
    )


def render_qr_surface(
    spec: Union[QRSpec, str],
    *,
    fg: Color = (0, 0, 0),
    box_size: int = 8,
    border: int = 4,
    ecc: str = "H",
) -> RasterImage:
    """
    Render a QR code to an RGBA raster ready for compositing.

    Parameters
    ----------
    spec : QRSpec or str
        Configuration, or a payload string combined with `box_size`,
        `border` and `ecc`.
    fg : Color, optional
        Color of dark modules. The compositor ignores it (only alpha is
        read), but it keeps the surface viewable on its own. The default
        is black.
    box_size, border, ecc
        Used only when `spec` is a string. See QRSpec.

    Returns
    -------
    RasterImage
        Surface whose dark modules are opaque `fg` and whose other pixels
        are transparent black.
    """
    if not isinstance(spec, QRSpec):
        spec = QRSpec(data=spec, box_size=box_size, border=border, ecc=ecc)

    mask = module_mask(spec)
    h, w = mask.shape
    out = np.zeros((h, w, 4), dtype=np.uint8)
    out[mask] = (*fg, 255)
    return RasterImage(out)


# ---------- Validation / decoding (with OpenCV) ----------

def flatten(raster: RasterImage, bg: Color = (255, 255, 255)) -> np.ndarray:
    """
    Composite a raster over a solid background.

    Returns
    -------
    numpy.ndarray
        RGB array of shape (H, W, 3), dtype uint8, as the raster would
        appear when displayed over `bg`.
    """
    rgb = raster.pixels[..., :3].astype(np.float64)
    alpha = raster.pixels[..., 3:4].astype(np.float64) / 255.0
    background = np.asarray(bg, dtype=np.float64)
    return np.rint(rgb * alpha + background * (1.0 - alpha)).astype(np.uint8)


def decode_raster(
    raster: RasterImage,
    *,
    bg: Color = REVEAL_BACKGROUND,
) -> tuple[Optional[str], bool]:
    """
    Decode a QR code from a raster using OpenCV's QRCodeDetector.

    The raster is first flattened over `bg`, which is how a viewer shows
    the partially transparent composite.

    Parameters
    ----------
    raster : RasterImage
        Image to decode.
    bg : Color, optional
        Background the raster is viewed on. The default is black: with
        the default blend settings a module pixel over white flattens
        back to the original photo value, while over black it shows up
        105 levels darker than its neighbors. Use white for a plain QR
        surface.

    Returns
    -------
    tuple of (str or None, bool)
        (decoded_text, ok). decoded_text is None if no QR code was found.

    Raises
    ------
    RuntimeError
        If OpenCV (cv2) is not installed.
    """
    try:
        import cv2
    except ImportError as exc:
        raise RuntimeError(
            "decode_raster requires OpenCV (cv2) to be installed."
        ) from exc

    # Assume input is RGB and convert to BGR for OpenCV
    bgr = cv2.cvtColor(flatten(raster, bg), cv2.COLOR_RGB2BGR)

    detector = cv2.QRCodeDetector()
    data, points, _ = detector.detectAndDecode(bgr)

    if points is None or not data:
        return None, False

    return data, True


def is_scannable(
    raster: RasterImage,
    expected: str,
    *,
    bg: Color = REVEAL_BACKGROUND,
) -> bool:
    """True if `raster`, viewed over `bg`, decodes to exactly `expected`."""
    decoded, ok = decode_raster(raster, bg=bg)
    return bool(ok and decoded == expected)
