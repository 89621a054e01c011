"""
In-memory pixel buffers shared by every stage of the pipeline.

Classes
-------
RasterImage
    RGBA uint8 pixel grid with explicit width and height.
Placement
    Integer offset anchoring a QR raster inside a photo.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple, Union

import numpy as np
from PIL import Image


Pixel = tuple[int, int, int, int]  # (R, G, B, A)
ImageLike = Union[np.ndarray, Image.Image]


class Placement(NamedTuple):
    """
    Top-left offset of the QR raster in photo pixel coordinates.

    Any integer is legal. Parts of the QR raster that land outside the
    photo are ignored pixel by pixel.
    """

    x: int = 0
    y: int = 0


@dataclass(frozen=True, eq=False)
class RasterImage:
    """
    Rectangular RGBA pixel buffer.

    Parameters
    ----------
    pixels : numpy.ndarray
        Array of shape (height, width, 4) with dtype uint8, channels in
        R, G, B, A order. The array is kept by reference: writing to it
        mutates the raster. A read-only array is copied first.

    Raises
    ------
    ValueError
        If `pixels` is not a 3D array with exactly four channels.

    Notes
    -----
    The dataclass is frozen so the buffer cannot be swapped out, but the
    buffer contents are mutable. The compositor relies on this to blend
    in place without allocating a second image.
    """

    pixels: np.ndarray = field(repr=False)

    def __post_init__(self) -> None:
        arr = np.asarray(self.pixels)
        if arr.ndim != 3 or arr.shape[2] != 4:
            raise ValueError(
                f"pixels must have shape (height, width, 4); got {arr.shape}"
            )
        if arr.dtype != np.uint8:
            arr = arr.astype(np.uint8)
        elif not arr.flags.writeable:
            # e.g. np.asarray(pil_image); the compositor writes in place
            arr = np.array(arr)
        object.__setattr__(self, "pixels", arr)

    def __repr__(self) -> str:
        return f"RasterImage(width={self.width}, height={self.height})"

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        """Pair (width, height), matching PIL's ``Image.size``."""
        return self.width, self.height

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    @property
    def alpha(self) -> np.ndarray:
        """View of the alpha channel, shape (height, width)."""
        return self.pixels[..., 3]

    def pixel(self, x: int, y: int) -> Pixel:
        """Return the (R, G, B, A) tuple at column `x`, row `y`."""
        r, g, b, a = self.pixels[y, x]
        return int(r), int(g), int(b), int(a)

    def tobytes(self) -> bytes:
        """Raw buffer, row-major RGBA; length is width * height * 4."""
        return self.pixels.tobytes()

    def copy(self) -> RasterImage:
        return RasterImage(self.pixels.copy())

    # ---------- Constructors ----------

    @classmethod
    def blank(
        cls,
        width: int,
        height: int,
        color: Pixel = (0, 0, 0, 0),
    ) -> RasterImage:
        """
        Create a raster filled with a single color.

        Parameters
        ----------
        width, height : int
            Dimensions in pixels. Zero is allowed and yields an empty
            raster.
        color : Pixel, optional
            Fill color as (R, G, B, A). The default is fully transparent
            black.
        """
        if width < 0 or height < 0:
            raise ValueError("width and height must be non-negative")
        return cls(np.full((height, width, 4), color, dtype=np.uint8))

    @classmethod
    def from_pil(cls, image: Image.Image) -> RasterImage:
        """Copy a PIL image of any mode into an RGBA raster."""
        return cls(np.array(image.convert("RGBA"), dtype=np.uint8))

    @classmethod
    def from_array(cls, image: np.ndarray, *, name: str = "image") -> RasterImage:
        """
        Normalize a NumPy image into an RGBA raster.

        Parameters
        ----------
        image : numpy.ndarray
            Supported forms are a grayscale array (H, W), an RGB array
            (H, W, 3) or an RGBA array (H, W, 4). Inputs without an alpha
            channel are treated as fully opaque.
        name : str, optional
            Name used in error messages. The default is "image".

        Returns
        -------
        RasterImage
            Raster backed by a fresh uint8 copy of the input.

        Raises
        ------
        ValueError
            If the input has an unsupported shape or channel count.
        """
        arr = np.asarray(image)
        if arr.ndim == 2:
            # Grayscale → RGB
            arr = np.stack([arr] * 3, axis=-1)
        elif arr.ndim != 3:
            raise ValueError(
                f"{name} array must be 2D (grayscale) or 3D (color); "
                f"got shape {arr.shape}"
            )

        channels = arr.shape[2]
        if channels == 3:
            opaque = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
            arr = np.concatenate([arr.astype(np.uint8), opaque], axis=-1)
        elif channels != 4:
            raise ValueError(
                f"{name} array has unsupported channel count {channels}; "
                f"expected 1, 3, or 4 channels."
            )

        return cls(np.array(arr, dtype=np.uint8))

    def to_pil(self) -> Image.Image:
        """Return a PIL image in RGBA mode sharing no memory with the raster."""
        # (H, W, 4) uint8 is inferred as RGBA
        return Image.fromarray(self.pixels.copy())
