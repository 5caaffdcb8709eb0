"""Sequential, cancellable multi-page export of a cell grid."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable, List, Optional

from gridprint.core.errors import ConfigError
from gridprint.core.models import (
    ExportJob,
    ExportOutcome,
    ExportProgress,
    ExportStatus,
)
from gridprint.logging import get_logger
from gridprint.packaging.base import PageDocument
from gridprint.packaging.manifest import PageEntry
from gridprint.packaging.pdf import PdfDocument
from gridprint.tiling.base import CellRenderer
from gridprint.tiling.zoom import base_size, resolve_zoom

LOGGER = get_logger(__name__)

ProgressCallback = Callable[[ExportProgress], None]
StatusCallback = Callable[[ExportOutcome], None]
DocumentFactory = Callable[[Path], PageDocument]


class ExportOrchestrator:
    """Drive one export job at a time, one cell at a time.

    Cancellation is checked between cells and discards every page produced so
    far. An error while rendering a cell stops the job but saves the pages
    already produced.
    """

    def __init__(
        self,
        renderer: CellRenderer,
        *,
        document_factory: DocumentFactory = PdfDocument,
    ) -> None:
        self._renderer = renderer
        self._document_factory = document_factory
        self._lock = threading.Lock()
        self._status = ExportStatus.IDLE
        self._job: Optional[ExportJob] = None
        self._pages: List[PageEntry] = []

    @property
    def status(self) -> ExportStatus:
        return self._status

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    @property
    def pages(self) -> List[PageEntry]:
        """Pages produced by the most recent job, in cell order."""

        return list(self._pages)

    def cancel(self) -> None:
        """Request cancellation of the running job; takes effect at the next cell."""

        job = self._job
        if job is not None:
            LOGGER.info("export cancellation requested", extra={"at_cell": job.current_index + 1, "total": job.total})
            job.request_cancel()

    def start(
        self,
        job: ExportJob,
        output_path: Path,
        *,
        progress_cb: Optional[ProgressCallback] = None,
        status_cb: Optional[StatusCallback] = None,
    ) -> ExportOutcome:
        """Run ``job`` to a terminal state and return its outcome.

        Raises:
            ConfigError: If the job has no cells, the basemap has no usable
                tile template, or another job is already running.
        """

        self._validate(job)
        if not self._lock.acquire(blocking=False):
            raise ConfigError("An export job is already running")
        try:
            self._job = job
            self._pages = []
            self._status = ExportStatus.RUNNING
            outcome = self._run(job, Path(output_path), progress_cb)
            self._status = outcome.status
            LOGGER.info(
                "export finished",
                extra={"status": outcome.status.value, "pages": outcome.page_count, "total": job.total},
            )
            if status_cb is not None:
                status_cb(outcome)
            return outcome
        finally:
            if self._status is ExportStatus.RUNNING:
                self._status = ExportStatus.FAILED
            self._job = None
            self._lock.release()

    def _validate(self, job: ExportJob) -> None:
        if not job.cells:
            raise ConfigError("No grid cells to export; create a grid first")
        if not job.basemap.has_template:
            raise ConfigError(f"Basemap '{job.basemap.key}' has no usable tile template")

    def _run(self, job: ExportJob, output_path: Path, progress_cb: Optional[ProgressCallback]) -> ExportOutcome:
        total = job.total
        page_size = base_size(job.resolution_mode, total)
        document = self._document_factory(output_path)
        cumulative_tiles = 0

        LOGGER.info(
            "export started",
            extra={
                "cells": total,
                "basemap": job.basemap.key,
                "resolution": job.resolution_mode.value,
                "base_size": page_size,
                "zoom_override": job.zoom_override,
            },
        )

        for index, cell in enumerate(job.cells):
            if job.cancel_requested:
                document.discard()
                self._pages = []
                LOGGER.warning("export cancelled; discarding pages", extra={"completed": index, "total": total})
                return ExportOutcome(status=ExportStatus.CANCELLED)

            job.current_index = index
            try:
                zoom = resolve_zoom(cell, job.basemap, job.zoom_override, job.resolution_mode, total)
                result = self._renderer.render(cell, zoom, job.basemap, base_size=page_size)
                document.add_page(result.image)
            except Exception as exc:
                LOGGER.exception("export failed", extra={"cell": cell.label, "index": index + 1, "total": total})
                return self._salvage(document, exc)

            self._pages.append(
                PageEntry(
                    label=cell.label,
                    zoom=result.zoom,
                    tiles=result.tile_count,
                    missing_tiles=result.missing_tiles,
                    width=result.width,
                    height=result.height,
                )
            )
            cumulative_tiles += result.tile_count
            progress = ExportProgress(
                index=index + 1,
                total=total,
                tile_count=result.tile_count,
                cumulative_tile_count=cumulative_tiles,
                fraction=(index + 1) / total,
            )
            LOGGER.info(
                "cell exported",
                extra={
                    "cell": cell.label,
                    "index": index + 1,
                    "total": total,
                    "zoom": result.zoom,
                    "tiles": result.tile_count,
                    "cumulative_tiles": cumulative_tiles,
                },
            )
            del result
            if progress_cb is not None:
                try:
                    progress_cb(progress)
                except Exception as exc:
                    LOGGER.exception("progress callback failed", extra={"index": index + 1, "total": total})
                    return self._salvage(document, exc)

        try:
            saved = document.save()
        except Exception as exc:
            return self._save_failed(document, exc)
        return ExportOutcome(status=ExportStatus.COMPLETED, page_count=document.page_count, output_path=saved)

    def _salvage(self, document: PageDocument, exc: Exception) -> ExportOutcome:
        page_count = document.page_count
        if page_count == 0:
            document.discard()
            return ExportOutcome(status=ExportStatus.FAILED, error=str(exc))
        try:
            saved = document.save()
        except Exception as save_exc:
            return self._save_failed(document, save_exc, cause=exc)
        LOGGER.warning("partial export saved", extra={"pages": page_count, "path": str(saved)})
        return ExportOutcome(status=ExportStatus.FAILED, page_count=page_count, output_path=saved, error=str(exc))

    def _save_failed(
        self,
        document: PageDocument,
        exc: Exception,
        *,
        cause: Optional[Exception] = None,
    ) -> ExportOutcome:
        """Report a document that could not be written."""

        page_count = document.page_count
        LOGGER.exception("saving export failed", extra={"pages": page_count})
        document.discard()
        error = f"{cause}; saving partial export failed: {exc}" if cause is not None else str(exc)
        return ExportOutcome(status=ExportStatus.FAILED, page_count=page_count, error=error)
