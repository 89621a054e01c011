"""
Exception hierarchy for the ninjaqr pipeline.

Every failure aborts the whole composite-and-export call; nothing is
retried and nothing is saved on error.
"""

from __future__ import annotations


class NinjaQRError(Exception):
    """Base class for all ninjaqr errors."""


class LoadError(NinjaQRError):
    """The photo could not be fetched or decoded."""


class ReadError(NinjaQRError):
    """The QR surface is empty or not a usable raster."""


class EncodeError(NinjaQRError):
    """The composited raster could not be encoded."""


class StagingBusyError(NinjaQRError):
    """The staging area is already in use by another in-flight call."""
