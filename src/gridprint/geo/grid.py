"""Paper-aware partitioning of a viewport into export cells."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from gridprint.core.models import BBox, GeoPoint, GridCell, PaperSpec
from gridprint.logging import get_logger

from .projection import EARTH_RADIUS, to_lng_lat, to_meters

LOGGER = get_logger(__name__)

METERS_PER_DEGREE = 2.0 * math.pi * EARTH_RADIUS / 360.0


@dataclass(frozen=True)
class GridSummary:
    """Human-oriented dimensions of a cell set."""

    rows: int
    cols: int
    width_km: float
    height_km: float
    cell_width_km: float
    cell_height_km: float
    cell_aspect: float


def partition(viewport: BBox, rows: int, cols: int, paper: PaperSpec) -> List[GridCell]:
    """Split ``viewport`` into ``rows`` x ``cols`` cells in row-major order.

    With A3/A4 paper every cell gets exactly the paper's aspect ratio, so the
    realized grid is shrunk to fit and recentered on the viewport center. With
    custom paper the viewport is divided as-is. A zero-area viewport yields an
    empty list.
    """

    if rows < 1 or cols < 1:
        raise ValueError(f"rows and cols must be >= 1 (got {rows}x{cols})")

    sw = to_meters(viewport.min_lng, viewport.min_lat)
    ne = to_meters(viewport.max_lng, viewport.max_lat)
    view_width = ne.x - sw.x
    view_height = ne.y - sw.y
    if not (math.isfinite(view_width) and math.isfinite(view_height)):
        LOGGER.warning("viewport does not project to finite meters", extra={"viewport": viewport.as_tuple()})
        return []
    if view_width <= 0 or view_height <= 0:
        LOGGER.warning("degenerate viewport", extra={"viewport": viewport.as_tuple()})
        return []

    origin_x, origin_y = sw.x, sw.y
    total_width, total_height = view_width, view_height

    target_aspect = paper.target_aspect
    if target_aspect is not None:
        center_x = (sw.x + ne.x) / 2.0
        center_y = (sw.y + ne.y) / 2.0
        cell_height = min(view_height / rows, view_width / (cols * target_aspect))
        cell_width = cell_height * target_aspect
        total_width = cell_width * cols
        total_height = cell_height * rows
        origin_x = center_x - total_width / 2.0
        origin_y = center_y - total_height / 2.0

    cell_width = total_width / cols
    cell_height = total_height / rows

    cells: List[GridCell] = []
    for row in range(rows):
        for col in range(cols):
            min_x = origin_x + col * cell_width
            min_y = origin_y + row * cell_height
            cells.append(
                GridCell(
                    row=row,
                    col=col,
                    bbox=_bbox_from_meters(min_x, min_y, min_x + cell_width, min_y + cell_height),
                )
            )

    LOGGER.debug(
        "grid partitioned",
        extra={
            "rows": rows,
            "cols": cols,
            "paper": paper.mode.value,
            "orientation": paper.orientation.value,
            "cell_width_m": cell_width,
            "cell_height_m": cell_height,
        },
    )
    return cells


def translate_cells(cells: Sequence[GridCell], dx: float, dy: float) -> List[GridCell]:
    """Shift every cell by the same projected-meters delta, keeping row/col."""

    moved: List[GridCell] = []
    for cell in cells:
        sw = to_meters(cell.bbox.min_lng, cell.bbox.min_lat)
        ne = to_meters(cell.bbox.max_lng, cell.bbox.max_lat)
        moved.append(
            GridCell(
                row=cell.row,
                col=cell.col,
                bbox=_bbox_from_meters(sw.x + dx, sw.y + dy, ne.x + dx, ne.y + dy),
            )
        )
    return moved


def drag_cells(cells: Sequence[GridCell], start: GeoPoint, end: GeoPoint) -> List[GridCell]:
    """Move a grid as if it had been dragged from ``start`` to ``end``."""

    start_m = to_meters(start.lng, start.lat)
    end_m = to_meters(end.lng, end.lat)
    return translate_cells(cells, end_m.x - start_m.x, end_m.y - start_m.y)


def grid_bounds(cells: Iterable[GridCell]) -> Optional[BBox]:
    """Return the overall extent of ``cells`` or ``None`` when there is none."""

    min_lng = min_lat = math.inf
    max_lng = max_lat = -math.inf
    for cell in cells:
        min_lng = min(min_lng, cell.bbox.min_lng)
        min_lat = min(min_lat, cell.bbox.min_lat)
        max_lng = max(max_lng, cell.bbox.max_lng)
        max_lat = max(max_lat, cell.bbox.max_lat)
    bounds = (min_lng, min_lat, max_lng, max_lat)
    if not all(math.isfinite(value) for value in bounds):
        return None
    return BBox.from_tuple(bounds)


def point_in_any_cell(cells: Iterable[GridCell], lng: float, lat: float) -> bool:
    for cell in cells:
        bbox = cell.bbox
        if bbox.min_lng <= lng <= bbox.max_lng and bbox.min_lat <= lat <= bbox.max_lat:
            return True
    return False


def summarize(cells: Sequence[GridCell]) -> Optional[GridSummary]:
    """Approximate extent in kilometers and per-cell aspect ratio of a cell set."""

    bounds = grid_bounds(cells)
    if bounds is None:
        return None
    rows = max(cell.row for cell in cells) + 1
    cols = max(cell.col for cell in cells) + 1

    center_lat = (bounds.min_lat + bounds.max_lat) / 2.0
    meters_per_degree_lng = METERS_PER_DEGREE * math.cos(math.radians(center_lat))
    width_km = (bounds.max_lng - bounds.min_lng) * meters_per_degree_lng / 1000.0
    height_km = (bounds.max_lat - bounds.min_lat) * METERS_PER_DEGREE / 1000.0
    cell_width_km = width_km / cols
    cell_height_km = height_km / rows
    aspect = cell_width_km / cell_height_km if cell_height_km != 0 else math.nan
    return GridSummary(
        rows=rows,
        cols=cols,
        width_km=width_km,
        height_km=height_km,
        cell_width_km=cell_width_km,
        cell_height_km=cell_height_km,
        cell_aspect=aspect,
    )


def cells_to_geojson(cells: Iterable[GridCell]) -> Dict[str, object]:
    """Return the cells as a GeoJSON FeatureCollection of polygons."""

    features = []
    for cell in cells:
        min_lng, min_lat, max_lng, max_lat = cell.bbox.as_tuple()
        features.append(
            {
                "type": "Feature",
                "properties": {"row": cell.row, "col": cell.col, "id": cell.label},
                "geometry": {
                    "type": "Polygon",
                    "coordinates": [
                        [
                            [min_lng, min_lat],
                            [max_lng, min_lat],
                            [max_lng, max_lat],
                            [min_lng, max_lat],
                            [min_lng, min_lat],
                        ]
                    ],
                },
            }
        )
    return {"type": "FeatureCollection", "features": features}


def _bbox_from_meters(min_x: float, min_y: float, max_x: float, max_y: float) -> BBox:
    sw = to_lng_lat(min_x, min_y)
    ne = to_lng_lat(max_x, max_y)
    return BBox(min_lng=sw.lng, min_lat=sw.lat, max_lng=ne.lng, max_lat=ne.lat)
