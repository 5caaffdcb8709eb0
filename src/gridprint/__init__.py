"""Gridprint: multi-page map grid exports from XYZ tile sources."""

from __future__ import annotations

import importlib
from typing import Any

__all__ = [
    "BBox",
    "ConfigLoader",
    "ExportConfig",
    "ExportJob",
    "ExportOrchestrator",
    "GridCell",
    "PaperSpec",
    "PdfDocument",
    "ResolutionMode",
    "TileFetcher",
    "TileMosaicRenderer",
    "get_basemap",
    "partition",
]

_MODULE_MAP = {
    "BBox": ("gridprint.core", "BBox"),
    "ConfigLoader": ("gridprint.config", "ConfigLoader"),
    "ExportConfig": ("gridprint.config", "ExportConfig"),
    "ExportJob": ("gridprint.core", "ExportJob"),
    "ExportOrchestrator": ("gridprint.export", "ExportOrchestrator"),
    "GridCell": ("gridprint.core", "GridCell"),
    "PaperSpec": ("gridprint.core", "PaperSpec"),
    "PdfDocument": ("gridprint.packaging", "PdfDocument"),
    "ResolutionMode": ("gridprint.core", "ResolutionMode"),
    "TileFetcher": ("gridprint.acquisition", "TileFetcher"),
    "TileMosaicRenderer": ("gridprint.tiling", "TileMosaicRenderer"),
    "get_basemap": ("gridprint.acquisition", "get_basemap"),
    "partition": ("gridprint.geo", "partition"),
}


def __getattr__(name: str) -> Any:
    if name not in _MODULE_MAP:
        raise AttributeError(f"module 'gridprint' has no attribute '{name}'")
    module_name, attr = _MODULE_MAP[name]
    module = importlib.import_module(module_name)
    return getattr(module, attr)
