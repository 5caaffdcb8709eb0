"""Projection math and grid partitioning."""

from .grid import (
    GridSummary,
    cells_to_geojson,
    drag_cells,
    grid_bounds,
    partition,
    point_in_any_cell,
    summarize,
    translate_cells,
)
from .projection import clamp_latitude, to_lng_lat, to_meters, to_world_pixel

__all__ = [
    "GridSummary",
    "cells_to_geojson",
    "clamp_latitude",
    "drag_cells",
    "grid_bounds",
    "partition",
    "point_in_any_cell",
    "summarize",
    "to_lng_lat",
    "to_meters",
    "to_world_pixel",
    "translate_cells",
]
