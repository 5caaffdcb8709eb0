"""Dataclasses describing core gridprint entities."""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple

from .errors import CancellationRequested


@dataclass(frozen=True)
class GeoPoint:
    """Longitude/latitude pair in degrees."""

    lng: float
    lat: float


@dataclass(frozen=True)
class ProjectedPoint:
    """Spherical-Mercator coordinates in meters."""

    x: float
    y: float


@dataclass(frozen=True)
class WorldPixel:
    """Pixel coordinates of the whole world raster at one zoom level."""

    x: float
    y: float


@dataclass(frozen=True)
class BBox:
    """Geographic bounding box stored as (min_lng, min_lat, max_lng, max_lat)."""

    min_lng: float
    min_lat: float
    max_lng: float
    max_lat: float

    @classmethod
    def from_tuple(cls, values: Tuple[float, float, float, float]) -> "BBox":
        min_lng, min_lat, max_lng, max_lat = (float(value) for value in values)
        return cls(min_lng=min_lng, min_lat=min_lat, max_lng=max_lng, max_lat=max_lat)

    @property
    def south_west(self) -> GeoPoint:
        return GeoPoint(self.min_lng, self.min_lat)

    @property
    def north_east(self) -> GeoPoint:
        return GeoPoint(self.max_lng, self.max_lat)

    @property
    def is_valid(self) -> bool:
        values = self.as_tuple()
        if not all(math.isfinite(value) for value in values):
            return False
        return self.min_lng < self.max_lng and self.min_lat < self.max_lat

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.min_lng, self.min_lat, self.max_lng, self.max_lat)


@dataclass(frozen=True)
class GridCell:
    """One rectangular grid cell; maps to one output page."""

    row: int
    col: int
    bbox: BBox

    @property
    def label(self) -> str:
        return f"r{self.row + 1}_c{self.col + 1}"


class PaperMode(str, Enum):
    A3 = "A3"
    A4 = "A4"
    CUSTOM = "custom"


class Orientation(str, Enum):
    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"


@dataclass(frozen=True)
class PaperSpec:
    """Paper format that constrains the cell aspect ratio."""

    mode: PaperMode = PaperMode.A3
    orientation: Orientation = Orientation.LANDSCAPE

    @property
    def target_aspect(self) -> Optional[float]:
        """Width/height ratio forced on every cell, or ``None`` for custom paper."""

        if self.mode is PaperMode.CUSTOM:
            return None
        if self.orientation is Orientation.LANDSCAPE:
            return math.sqrt(2.0)
        return 1.0 / math.sqrt(2.0)


class ResolutionMode(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "veryHigh"

    @property
    def nominal_size(self) -> int:
        return _NOMINAL_SIZES[self]


_NOMINAL_SIZES = {
    ResolutionMode.LOW: 800,
    ResolutionMode.MEDIUM: 2000,
    ResolutionMode.HIGH: 3200,
    ResolutionMode.VERY_HIGH: 4800,
}


@dataclass(frozen=True)
class TileAddress:
    """XYZ tile index."""

    z: int
    x: int
    y: int


@dataclass(frozen=True)
class BasemapSource:
    """An XYZ raster tile provider."""

    key: str
    label: str
    url_template: Optional[str]
    max_zoom: int = 22
    max_native_zoom: int = 22
    attribution: str = ""

    @property
    def has_template(self) -> bool:
        template = self.url_template or ""
        return all(token in template for token in ("{z}", "{x}", "{y}"))

    def tile_url(self, address: TileAddress) -> str:
        template = self.url_template or ""
        return (
            template.replace("{z}", str(address.z))
            .replace("{x}", str(address.x))
            .replace("{y}", str(address.y))
        )


class CancelToken:
    """Thread-safe cancellation flag polled at cell boundaries."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancellationRequested("export cancelled by user")


@dataclass
class ExportJob:
    """State of one multi-page export run.

    The job is the context object handed through resolver, renderer and
    orchestrator; the cell sequence and basemap must not change while it runs.
    """

    cells: Tuple[GridCell, ...]
    basemap: BasemapSource
    resolution_mode: ResolutionMode = ResolutionMode.HIGH
    zoom_override: Optional[int] = None
    cancel_token: CancelToken = field(default_factory=CancelToken)
    current_index: int = 0

    @property
    def total(self) -> int:
        return len(self.cells)

    @property
    def cancel_requested(self) -> bool:
        return self.cancel_token.is_cancelled

    def request_cancel(self) -> None:
        self.cancel_token.cancel()


class ExportStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class ExportProgress:
    """Progress report emitted after each completed cell."""

    index: int
    total: int
    tile_count: int
    cumulative_tile_count: int
    fraction: float


@dataclass(frozen=True)
class ExportOutcome:
    """Terminal status of an export job."""

    status: ExportStatus
    page_count: int = 0
    output_path: Optional[Path] = None
    error: Optional[str] = None
