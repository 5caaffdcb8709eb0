import threading
from pathlib import Path
from typing import List, Optional

import pytest
from PIL import Image

from gridprint.acquisition.basemaps import get_basemap
from gridprint.core.errors import ConfigError, RenderError
from gridprint.core.models import BasemapSource, BBox, ExportJob, ExportStatus, GridCell, PaperSpec, ResolutionMode
from gridprint.export.orchestrator import ExportOrchestrator
from gridprint.geo.grid import partition
from gridprint.tiling.mosaic import RenderResult

ESRI = get_basemap("esri")


def _cells(count: int) -> tuple:
    return tuple(partition(BBox(139.70, 35.65, 139.80, 35.72), 1, count, PaperSpec()))


class StubDocument:
    instances: List["StubDocument"] = []

    def __init__(self, path: Path) -> None:
        self.path = path
        self.images: List[Image.Image] = []
        self.saved = False
        self.discarded = False
        StubDocument.instances.append(self)

    @property
    def page_count(self) -> int:
        return len(self.images)

    def add_page(self, image: Image.Image) -> None:
        self.images.append(image)

    def save(self) -> Path:
        self.saved = True
        return self.path

    def discard(self) -> None:
        self.discarded = True


class StubRenderer:
    def __init__(self, fail_at: Optional[int] = None, on_render=None) -> None:  # type: ignore[no-untyped-def]
        self.fail_at = fail_at
        self.on_render = on_render
        self.calls: List[dict] = []

    def render(self, cell: GridCell, zoom: int, basemap: BasemapSource, *, base_size: int) -> RenderResult:
        index = len(self.calls)
        self.calls.append({"cell": cell.label, "zoom": zoom, "base_size": base_size})
        if self.on_render is not None:
            self.on_render(index)
        if self.fail_at is not None and index == self.fail_at:
            raise RenderError(f"boom at {cell.label}")
        return RenderResult(image=Image.new("RGB", (40, 30)), zoom=zoom, tile_count=index + 1)


@pytest.fixture(autouse=True)
def _reset_documents() -> None:
    StubDocument.instances.clear()


def test_completed_export_saves_every_page(tmp_path: Path) -> None:
    renderer = StubRenderer()
    orchestrator = ExportOrchestrator(renderer, document_factory=StubDocument)
    job = ExportJob(cells=_cells(3), basemap=ESRI, resolution_mode=ResolutionMode.MEDIUM)
    progress = []
    statuses = []

    outcome = orchestrator.start(job, tmp_path / "grid.pdf", progress_cb=progress.append, status_cb=statuses.append)

    assert outcome.status is ExportStatus.COMPLETED
    assert outcome.page_count == 3
    assert outcome.output_path == tmp_path / "grid.pdf"
    assert StubDocument.instances[0].saved
    assert [call["cell"] for call in renderer.calls] == ["r1_c1", "r1_c2", "r1_c3"]
    assert all(call["base_size"] == 2000 for call in renderer.calls)
    assert [p.index for p in progress] == [1, 2, 3]
    assert [p.fraction for p in progress] == pytest.approx([1 / 3, 2 / 3, 1.0])
    assert [p.cumulative_tile_count for p in progress] == [1, 3, 6]
    assert statuses == [outcome]
    assert orchestrator.status is ExportStatus.COMPLETED
    assert not orchestrator.is_running
    assert [page.label for page in orchestrator.pages] == ["r1_c1", "r1_c2", "r1_c3"]


def test_cancel_discards_all_pages(tmp_path: Path) -> None:
    job = ExportJob(cells=_cells(5), basemap=ESRI)

    def cancel_after_second(index: int) -> None:
        if index == 1:
            job.request_cancel()

    renderer = StubRenderer(on_render=cancel_after_second)
    orchestrator = ExportOrchestrator(renderer, document_factory=StubDocument)
    statuses = []

    outcome = orchestrator.start(job, tmp_path / "grid.pdf", status_cb=statuses.append)

    assert outcome.status is ExportStatus.CANCELLED
    assert outcome.page_count == 0
    assert outcome.output_path is None
    assert len(renderer.calls) == 2
    document = StubDocument.instances[0]
    assert document.discarded
    assert not document.saved
    assert len(statuses) == 1


def test_failure_saves_pages_already_rendered(tmp_path: Path) -> None:
    renderer = StubRenderer(fail_at=3)
    orchestrator = ExportOrchestrator(renderer, document_factory=StubDocument)
    job = ExportJob(cells=_cells(5), basemap=ESRI)

    outcome = orchestrator.start(job, tmp_path / "grid.pdf")

    assert outcome.status is ExportStatus.FAILED
    assert outcome.page_count == 3
    assert outcome.output_path == tmp_path / "grid.pdf"
    assert "boom at r1_c4" in outcome.error
    assert StubDocument.instances[0].saved
    assert orchestrator.status is ExportStatus.FAILED


def test_failure_on_first_cell_saves_nothing(tmp_path: Path) -> None:
    orchestrator = ExportOrchestrator(StubRenderer(fail_at=0), document_factory=StubDocument)

    outcome = orchestrator.start(ExportJob(cells=_cells(2), basemap=ESRI), tmp_path / "grid.pdf")

    assert outcome.status is ExportStatus.FAILED
    assert outcome.page_count == 0
    assert outcome.output_path is None
    assert StubDocument.instances[0].discarded
    assert not StubDocument.instances[0].saved


def test_empty_job_is_rejected_before_running(tmp_path: Path) -> None:
    orchestrator = ExportOrchestrator(StubRenderer(), document_factory=StubDocument)

    with pytest.raises(ConfigError, match="No grid cells"):
        orchestrator.start(ExportJob(cells=(), basemap=ESRI), tmp_path / "grid.pdf")

    assert StubDocument.instances == []
    assert orchestrator.status is ExportStatus.IDLE


def test_basemap_without_template_is_rejected(tmp_path: Path) -> None:
    broken = BasemapSource(key="broken", label="Broken", url_template=None)
    orchestrator = ExportOrchestrator(StubRenderer(), document_factory=StubDocument)

    with pytest.raises(ConfigError, match="tile template"):
        orchestrator.start(ExportJob(cells=_cells(1), basemap=broken), tmp_path / "grid.pdf")


def test_second_job_is_rejected_while_one_runs(tmp_path: Path) -> None:
    entered = threading.Event()
    release = threading.Event()

    def block(index: int) -> None:
        entered.set()
        release.wait(timeout=5)

    orchestrator = ExportOrchestrator(StubRenderer(on_render=block), document_factory=StubDocument)
    outcomes = []
    worker = threading.Thread(
        target=lambda: outcomes.append(
            orchestrator.start(ExportJob(cells=_cells(1), basemap=ESRI), tmp_path / "first.pdf")
        )
    )
    worker.start()
    try:
        assert entered.wait(timeout=5)
        assert orchestrator.is_running
        assert orchestrator.status is ExportStatus.RUNNING
        with pytest.raises(ConfigError, match="already running"):
            orchestrator.start(ExportJob(cells=_cells(1), basemap=ESRI), tmp_path / "second.pdf")
    finally:
        release.set()
        worker.join(timeout=5)

    assert outcomes[0].status is ExportStatus.COMPLETED


def test_cancel_method_targets_running_job(tmp_path: Path) -> None:
    orchestrator = ExportOrchestrator(StubRenderer(on_render=lambda index: orchestrator.cancel()), document_factory=StubDocument)

    outcome = orchestrator.start(ExportJob(cells=_cells(3), basemap=ESRI), tmp_path / "grid.pdf")

    assert outcome.status is ExportStatus.CANCELLED
    orchestrator.cancel()


def test_zoom_override_is_clamped_per_cell(tmp_path: Path) -> None:
    renderer = StubRenderer()
    orchestrator = ExportOrchestrator(renderer, document_factory=StubDocument)
    job = ExportJob(cells=_cells(2), basemap=ESRI, zoom_override=30)

    orchestrator.start(job, tmp_path / "grid.pdf")

    assert all(call["zoom"] <= ESRI.max_native_zoom + 2 for call in renderer.calls)


class UnwritableDocument(StubDocument):
    def save(self) -> Path:
        raise OSError("disk full")


def test_save_failure_still_reports_one_failed_status(tmp_path: Path) -> None:
    orchestrator = ExportOrchestrator(StubRenderer(), document_factory=UnwritableDocument)
    statuses = []

    outcome = orchestrator.start(ExportJob(cells=_cells(2), basemap=ESRI), tmp_path / "grid.pdf", status_cb=statuses.append)

    assert statuses == [outcome]
    assert outcome.status is ExportStatus.FAILED
    assert outcome.page_count == 2
    assert outcome.output_path is None
    assert "disk full" in outcome.error
    assert StubDocument.instances[0].discarded
    assert orchestrator.status is ExportStatus.FAILED
    assert not orchestrator.is_running


def test_partial_save_failure_keeps_render_error(tmp_path: Path) -> None:
    orchestrator = ExportOrchestrator(StubRenderer(fail_at=1), document_factory=UnwritableDocument)
    statuses = []

    outcome = orchestrator.start(ExportJob(cells=_cells(3), basemap=ESRI), tmp_path / "grid.pdf", status_cb=statuses.append)

    assert len(statuses) == 1
    assert outcome.status is ExportStatus.FAILED
    assert outcome.output_path is None
    assert "boom at r1_c2" in outcome.error
    assert "disk full" in outcome.error


def test_failing_progress_callback_fails_job_once(tmp_path: Path) -> None:
    renderer = StubRenderer()
    orchestrator = ExportOrchestrator(renderer, document_factory=StubDocument)
    statuses = []

    def broken_progress(progress) -> None:  # type: ignore[no-untyped-def]
        raise ValueError("progress sink closed")

    outcome = orchestrator.start(
        ExportJob(cells=_cells(3), basemap=ESRI),
        tmp_path / "grid.pdf",
        progress_cb=broken_progress,
        status_cb=statuses.append,
    )

    assert statuses == [outcome]
    assert outcome.status is ExportStatus.FAILED
    assert outcome.page_count == 1
    assert len(renderer.calls) == 1
    assert StubDocument.instances[0].saved


def test_cancel_clears_page_records(tmp_path: Path) -> None:
    job = ExportJob(cells=_cells(3), basemap=ESRI)
    orchestrator = ExportOrchestrator(
        StubRenderer(on_render=lambda index: job.request_cancel() if index == 1 else None),
        document_factory=StubDocument,
    )

    outcome = orchestrator.start(job, tmp_path / "grid.pdf")

    assert outcome.status is ExportStatus.CANCELLED
    assert orchestrator.pages == []
