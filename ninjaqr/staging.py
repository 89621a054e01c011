"""
Hidden, zero-footprint staging area used while decoding photos.

The staging area is a process-wide resource looked up by a fixed
identifier and created on first use. Scratch surfaces are attached to it
for the duration of a single decode and detached on every exit path, so
repeated calls never accumulate artifacts.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator

from .errors import StagingBusyError


logger = logging.getLogger(__name__)

STAGING_AREA_ID = "ninja-container"

_registry: dict[str, StagingArea] = {}


@dataclass(eq=False)
class ScratchSurface:
    """A scratch element attached to the staging area for one decode."""

    name: str
    width: int = 0
    height: int = 0


@dataclass(eq=False)
class StagingArea:
    """
    Zero-size container holding at most one scratch surface at a time.

    Attributes
    ----------
    area_id : str
        Identifier the area is registered under.
    width, height : int
        Always 0; the area never takes up visible space.
    hidden : bool
        Always True.
    children : list of ScratchSurface
        Surfaces currently attached.
    """

    area_id: str
    width: int = 0
    height: int = 0
    hidden: bool = True
    children: list[ScratchSurface] = field(default_factory=list)

    @property
    def in_use(self) -> bool:
        return bool(self.children)

    def attach(self, name: str = "canvas") -> ScratchSurface:
        """
        Attach a new scratch surface.

        Raises
        ------
        StagingBusyError
            If another surface is still attached, i.e. a previous call has
            not finished with the area yet.
        """
        if self.children:
            raise StagingBusyError(
                f"staging area {self.area_id!r} is already in use"
            )
        surface = ScratchSurface(name=name)
        self.children.append(surface)
        logger.debug("Attached %s to staging area %s", name, self.area_id)
        return surface

    def detach(self, surface: ScratchSurface) -> None:
        """Remove `surface`; detaching an unknown surface is a no-op."""
        if surface in self.children:
            self.children.remove(surface)
            logger.debug("Detached %s from staging area %s", surface.name, self.area_id)

    @contextmanager
    def scratch(self, name: str = "canvas") -> Iterator[ScratchSurface]:
        """Attach a scratch surface for the duration of the block."""
        surface = self.attach(name)
        try:
            yield surface
        finally:
            self.detach(surface)


def acquire_staging_area(area_id: str = STAGING_AREA_ID) -> StagingArea:
    """
    Look up the staging area by id, creating it on first use.

    Calling this repeatedly returns the same object.
    """
    area = _registry.get(area_id)
    if area is None:
        area = StagingArea(area_id=area_id)
        _registry[area_id] = area
        logger.debug("Created staging area %s", area_id)
    return area


def reset_staging_areas() -> None:
    """Drop every registered staging area."""
    _registry.clear()


async def flush_pending_layout() -> None:
    """
    Synchronization barrier between staging mutation and measurement.

    Yields once to the event loop so every pending callback scheduled by
    the attach step runs before dimensions are read.
    """
    await asyncio.sleep(0)
