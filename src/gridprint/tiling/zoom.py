"""Per-cell tile zoom and output resolution policy."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence

from gridprint.core.models import BasemapSource, BBox, GridCell, ResolutionMode, TileAddress
from gridprint.geo.projection import TILE_SIZE, to_world_pixel

MAX_TOTAL_PIXELS = 100_000_000
PDF_MAX_SIDE = 14000
MIN_BASE_SIZE = 800
FULL_RESOLUTION_CELL_LIMIT = 4
FALLBACK_ZOOM = 18
NATIVE_ZOOM_MARGIN = 2
MAX_OVERRIDE_BUMP = 2
ABSOLUTE_MAX_ZOOM = 22


@dataclass(frozen=True)
class PixelWindow:
    """World-pixel footprint of a bbox at one zoom level."""

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y


@dataclass(frozen=True)
class TileRange:
    """Inclusive, clamped range of tile indices covering a pixel window."""

    zoom: int
    min_x: int
    max_x: int
    min_y: int
    max_y: int

    @property
    def tiles_x(self) -> int:
        return self.max_x - self.min_x + 1

    @property
    def tiles_y(self) -> int:
        return self.max_y - self.min_y + 1

    @property
    def count(self) -> int:
        return self.tiles_x * self.tiles_y

    @property
    def origin(self) -> tuple:
        """World-pixel position of the mosaic's top-left corner."""

        return (self.min_x * TILE_SIZE, self.min_y * TILE_SIZE)

    def addresses(self) -> Iterator[TileAddress]:
        for y in range(self.min_y, self.max_y + 1):
            for x in range(self.min_x, self.max_x + 1):
                yield TileAddress(z=self.zoom, x=x, y=y)


@dataclass(frozen=True)
class ZoomOption:
    """A selectable export zoom with its estimated download size."""

    option_id: str
    zoom: int
    label: str
    estimated_tiles: Optional[int]


def base_size(mode: ResolutionMode, cell_count: int) -> int:
    """Return the target long-side pixel size for one page.

    Grids of up to four cells keep the mode's nominal size. Larger grids are
    shrunk so all pages together stay under ``MAX_TOTAL_PIXELS`` and no page
    side exceeds ``PDF_MAX_SIDE``, but never below ``MIN_BASE_SIZE``.
    """

    nominal = ResolutionMode(mode).nominal_size
    if cell_count <= FULL_RESOLUTION_CELL_LIMIT:
        return nominal
    per_page_side = min(math.sqrt(MAX_TOTAL_PIXELS / cell_count), PDF_MAX_SIDE)
    return max(MIN_BASE_SIZE, int(round(min(nominal, per_page_side))))


def max_allowed_zoom(basemap: BasemapSource) -> int:
    return basemap.max_native_zoom + NATIVE_ZOOM_MARGIN


def auto_zoom(
    cell: GridCell,
    basemap: BasemapSource,
    mode: ResolutionMode,
    cell_count: int,
) -> int:
    """Zoom whose tiles render the cell's long side at roughly ``base_size`` pixels."""

    bbox = cell.bbox
    sw0 = to_world_pixel(bbox.min_lat, bbox.min_lng, 0)
    ne0 = to_world_pixel(bbox.max_lat, bbox.max_lng, 0)
    longest0 = max(abs(ne0.x - sw0.x), abs(ne0.y - sw0.y))
    if not math.isfinite(longest0) or longest0 <= 0:
        return FALLBACK_ZOOM

    raw = math.log2(base_size(mode, cell_count) / longest0)
    if not math.isfinite(raw):
        return FALLBACK_ZOOM
    return max(0, min(int(round(raw)), max_allowed_zoom(basemap)))


def resolve_zoom(
    cell: GridCell,
    basemap: BasemapSource,
    override: Optional[int],
    mode: ResolutionMode,
    cell_count: int,
) -> int:
    """Return the tile zoom used to export ``cell``.

    A manual override is honored up to two levels above the automatic choice
    and never past the basemap's native zoom plus margin.
    """

    auto = auto_zoom(cell, basemap, mode, cell_count)
    if override is None:
        return auto
    override_value = float(override)
    if not math.isfinite(override_value):
        return auto
    hard_max = min(auto + MAX_OVERRIDE_BUMP, max_allowed_zoom(basemap))
    return max(0, min(int(round(override_value)), hard_max))


def pixel_footprint(bbox: BBox, zoom: int) -> PixelWindow:
    sw = to_world_pixel(bbox.min_lat, bbox.min_lng, zoom)
    ne = to_world_pixel(bbox.max_lat, bbox.max_lng, zoom)
    return PixelWindow(
        min_x=min(sw.x, ne.x),
        min_y=min(sw.y, ne.y),
        max_x=max(sw.x, ne.x),
        max_y=max(sw.y, ne.y),
    )


def tile_range(window: PixelWindow, zoom: int) -> TileRange:
    max_index = 2 ** zoom - 1
    return TileRange(
        zoom=zoom,
        min_x=max(0, int(math.floor(window.min_x / TILE_SIZE))),
        max_x=min(max_index, int(math.floor(window.max_x / TILE_SIZE))),
        min_y=max(0, int(math.floor(window.min_y / TILE_SIZE))),
        max_y=min(max_index, int(math.floor(window.max_y / TILE_SIZE))),
    )


def estimate_tile_count(cell: GridCell, zoom: int) -> int:
    """Number of tiles needed to render ``cell`` at ``zoom``."""

    return tile_range(pixel_footprint(cell.bbox, zoom), zoom).count


def zoom_options(
    cells: Sequence[GridCell],
    basemap: BasemapSource,
    mode: ResolutionMode,
    *,
    fallback_zoom: int = 12,
) -> List[ZoomOption]:
    """List the automatic zoom and up to two sharper alternatives.

    The base level comes from the first cell; every option carries the
    estimated number of tiles for the whole grid.
    """

    ceiling = min(ABSOLUTE_MAX_ZOOM, max_allowed_zoom(basemap))
    base_zoom = auto_zoom(cells[0], basemap, mode, len(cells)) if cells else fallback_zoom

    candidates = [("auto", base_zoom, "standard")]
    if base_zoom + 1 <= ceiling:
        candidates.append(("bump1", base_zoom + 1, "finer (+1)"))
    if base_zoom + 2 <= ceiling:
        candidates.append(("bump2", base_zoom + 2, "finest (+2)"))

    options: List[ZoomOption] = []
    for option_id, zoom, label in candidates:
        estimate = sum(estimate_tile_count(cell, zoom) for cell in cells) if cells else None
        options.append(ZoomOption(option_id=option_id, zoom=zoom, label=label, estimated_tiles=estimate))
    return options
