"""Protocol definitions for mosaic rendering components."""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Iterable, Protocol

from gridprint.core.models import BasemapSource, GridCell, TileAddress

if TYPE_CHECKING:  # pragma: no cover
    from gridprint.acquisition.tiles import TileResult

    from .mosaic import RenderResult


class TileBatchFetcher(Protocol):
    """Interface for fetching every tile of one cell."""

    def fetch_all(self, basemap: BasemapSource, addresses: Iterable[TileAddress]) -> Dict[TileAddress, "TileResult"]:
        """Return one settled result per requested address."""


class CellRenderer(Protocol):
    """Interface for turning a grid cell into a single raster."""

    def render(self, cell: GridCell, zoom: int, basemap: BasemapSource, *, base_size: int) -> "RenderResult":
        """Return the cropped and scaled raster for ``cell``."""
