"""Output documents and export manifests."""

from .base import PageDocument
from .manifest import ExportManifest, PageEntry, build_manifest, write_manifest
from .pdf import DocumentStateError, PageRecord, PdfDocument

__all__ = [
    "DocumentStateError",
    "ExportManifest",
    "PageDocument",
    "PageEntry",
    "PageRecord",
    "PdfDocument",
    "build_manifest",
    "write_manifest",
]
