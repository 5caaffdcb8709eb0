"""Manifest generation for finished exports."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from gridprint.core.models import ExportOutcome


@dataclass(frozen=True)
class PageEntry:
    """What was rendered onto one page."""

    label: str
    zoom: int
    tiles: int
    missing_tiles: int
    width: int
    height: int


@dataclass
class ExportManifest:
    """Record of an export run written next to the document."""

    status: str
    page_count: int
    basemap: str
    resolution: str
    document: Optional[str] = None
    pages: List[PageEntry] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def build_manifest(
    outcome: ExportOutcome,
    pages: List[PageEntry],
    *,
    basemap: str,
    resolution: str,
) -> ExportManifest:
    return ExportManifest(
        status=outcome.status.value,
        page_count=outcome.page_count,
        basemap=basemap,
        resolution=resolution,
        document=str(outcome.output_path) if outcome.output_path else None,
        pages=list(pages[: outcome.page_count]),
    )


def manifest_to_dict(manifest: ExportManifest) -> Dict[str, object]:
    payload = {
        "status": manifest.status,
        "page_count": manifest.page_count,
        "basemap": manifest.basemap,
        "resolution": manifest.resolution,
        "document": manifest.document,
        "created_at": manifest.created_at.isoformat(),
        "pages": [_page_to_dict(page) for page in manifest.pages],
    }
    return {key: value for key, value in payload.items() if value is not None}


def write_manifest(manifest: ExportManifest, path: Path, *, indent: int = 2) -> None:
    payload = manifest_to_dict(manifest)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=indent, sort_keys=True), encoding="utf-8")


def _page_to_dict(page: PageEntry) -> Dict[str, object]:
    return {
        "label": page.label,
        "zoom": page.zoom,
        "tiles": page.tiles,
        "missing_tiles": page.missing_tiles,
        "width": page.width,
        "height": page.height,
    }
