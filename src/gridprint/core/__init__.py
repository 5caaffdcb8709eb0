"""Core data models for gridprint."""

from .errors import (
    CancellationRequested,
    ConfigError,
    GridPrintError,
    RenderError,
    TileFetchError,
)
from .models import (
    BasemapSource,
    BBox,
    CancelToken,
    ExportJob,
    ExportOutcome,
    ExportProgress,
    ExportStatus,
    GeoPoint,
    GridCell,
    Orientation,
    PaperMode,
    PaperSpec,
    ProjectedPoint,
    ResolutionMode,
    TileAddress,
    WorldPixel,
)

__all__ = [
    "BasemapSource",
    "BBox",
    "CancelToken",
    "CancellationRequested",
    "ConfigError",
    "ExportJob",
    "ExportOutcome",
    "ExportProgress",
    "ExportStatus",
    "GeoPoint",
    "GridCell",
    "GridPrintError",
    "Orientation",
    "PaperMode",
    "PaperSpec",
    "ProjectedPoint",
    "RenderError",
    "ResolutionMode",
    "TileAddress",
    "TileFetchError",
    "WorldPixel",
]
