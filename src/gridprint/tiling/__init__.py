"""Zoom policy and tile mosaic rendering."""

from .base import CellRenderer, TileBatchFetcher
from .mosaic import RenderResult, TileMosaicRenderer
from .zoom import (
    PixelWindow,
    TileRange,
    ZoomOption,
    auto_zoom,
    base_size,
    estimate_tile_count,
    pixel_footprint,
    resolve_zoom,
    tile_range,
    zoom_options,
)

__all__ = [
    "CellRenderer",
    "PixelWindow",
    "RenderResult",
    "TileBatchFetcher",
    "TileMosaicRenderer",
    "TileRange",
    "ZoomOption",
    "auto_zoom",
    "base_size",
    "estimate_tile_count",
    "pixel_footprint",
    "resolve_zoom",
    "tile_range",
    "zoom_options",
]
