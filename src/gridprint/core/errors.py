"""Error types raised by the export pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover
    from .models import TileAddress


class GridPrintError(RuntimeError):
    """Base class for gridprint failures."""


class ConfigError(GridPrintError):
    """Raised before any work starts when the job cannot run as configured."""


class TileFetchError(GridPrintError):
    """Raised when a single tile cannot be downloaded or decoded.

    The fetcher converts these into failed tile results; they never leave the
    mosaic stage.
    """

    def __init__(self, message: str, *, address: Optional["TileAddress"] = None) -> None:
        super().__init__(message)
        self.address = address


class RenderError(GridPrintError):
    """Raised when stitching, cropping or scaling a cell raster fails."""


class CancellationRequested(GridPrintError):
    """Raised when a cancelled job is asked to keep going."""
