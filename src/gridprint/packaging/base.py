"""Protocol definitions for multi-page output documents."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from PIL import Image


class PageDocument(Protocol):
    """Interface for a document that receives one raster per page."""

    @property
    def page_count(self) -> int:
        """Number of pages added so far."""

    def add_page(self, image: Image.Image) -> None:
        """Append a page sized exactly to ``image`` with the image as its only content."""

    def save(self) -> Path:
        """Write the document and return its path."""

    def discard(self) -> None:
        """Drop all pages without writing anything."""
