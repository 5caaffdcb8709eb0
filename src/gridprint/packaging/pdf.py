"""Multi-page PDF output built on reportlab."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from PIL import Image
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from gridprint.core.models import Orientation
from gridprint.logging import get_logger

from .base import PageDocument

LOGGER = get_logger(__name__)


class DocumentStateError(RuntimeError):
    """Raised when pages are added to a document that was saved or discarded."""


@dataclass(frozen=True)
class PageRecord:
    width: int
    height: int
    orientation: Orientation


class PdfDocument(PageDocument):
    """PDF whose pages are full-bleed rasters, one pixel per point."""

    def __init__(self, path: Path, *, title: str = "gridprint export", author: Optional[str] = None) -> None:
        self._path = Path(path)
        self._title = title
        self._author = author
        self._canvas: Optional[canvas.Canvas] = None
        self._pages: List[PageRecord] = []
        self._closed = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def page_count(self) -> int:
        return len(self._pages)

    @property
    def pages(self) -> List[PageRecord]:
        return list(self._pages)

    def add_page(self, image: Image.Image) -> None:
        if self._closed:
            raise DocumentStateError(f"Document {self._path} is already closed")
        width, height = image.size
        if self._canvas is None:
            self._canvas = canvas.Canvas(str(self._path), pagesize=(width, height))
            self._canvas.setTitle(self._title)
            if self._author:
                self._canvas.setAuthor(self._author)
        else:
            self._canvas.setPageSize((width, height))

        self._canvas.drawImage(ImageReader(image), 0, 0, width=width, height=height)
        self._canvas.showPage()
        orientation = Orientation.LANDSCAPE if width >= height else Orientation.PORTRAIT
        self._pages.append(PageRecord(width=width, height=height, orientation=orientation))
        LOGGER.debug(
            "pdf page added",
            extra={"page": len(self._pages), "width": width, "height": height, "orientation": orientation.value},
        )

    def save(self) -> Path:
        if self._closed:
            raise DocumentStateError(f"Document {self._path} is already closed")
        if self._canvas is None:
            raise DocumentStateError("Cannot save a document without pages")
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._canvas.save()
        self._closed = True
        LOGGER.info("pdf saved", extra={"path": str(self._path), "pages": len(self._pages)})
        return self._path

    def discard(self) -> None:
        self._canvas = None
        self._closed = True
        LOGGER.info("pdf discarded", extra={"path": str(self._path), "pages": len(self._pages)})
