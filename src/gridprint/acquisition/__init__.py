"""Tile sources and tile downloads for gridprint."""

from gridprint.acquisition.basemaps import BASEMAPS, DEFAULT_BASEMAP, custom_basemap, get_basemap
from gridprint.acquisition.tiles import TileFetcher, TileResult

__all__ = [
    "BASEMAPS",
    "DEFAULT_BASEMAP",
    "TileFetcher",
    "TileResult",
    "custom_basemap",
    "get_basemap",
]
