"""CLI entry point for gridprint."""

from __future__ import annotations

import argparse
import json
import math
import signal
import sys
from pathlib import Path
from typing import Iterable, List

from gridprint.acquisition import BASEMAPS, TileFetcher
from gridprint.config import ExportConfig, load_config
from gridprint.core.errors import ConfigError
from gridprint.core.models import (
    ExportJob,
    ExportOutcome,
    ExportProgress,
    ExportStatus,
    GridCell,
    Orientation,
    PaperMode,
    ResolutionMode,
)
from gridprint.export import ExportOrchestrator
from gridprint.geo import cells_to_geojson, partition, summarize
from gridprint.logging import configure_logging, get_logger
from gridprint.packaging import build_manifest, write_manifest
from gridprint.tiling import TileMosaicRenderer, estimate_tile_count, resolve_zoom, zoom_options

LOGGER = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="gridprint command-line interface")
    parser.add_argument("--log-json", action="store_true", help="Emit logs in JSON format")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    subcommands = parser.add_subparsers(dest="command", required=True)

    subcommands.add_parser("basemaps", help="List the built-in tile sources")

    plan = subcommands.add_parser("plan", help="Partition the viewport and report cell sizes and zoom choices")
    _add_job_arguments(plan)
    plan.add_argument(
        "--geojson",
        type=Path,
        default=None,
        help="Write the cell polygons to this GeoJSON file",
    )

    export = subcommands.add_parser("export", help="Render every grid cell into one multi-page PDF")
    _add_job_arguments(export)
    export.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Destination PDF (default: config value or map_grid.pdf)",
    )
    export.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-tile request timeout in seconds (default: 30)",
    )
    export.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Concurrent tile requests per cell (default: 8)",
    )
    export.add_argument(
        "--no-manifest",
        action="store_true",
        help="Do not write the JSON manifest next to the PDF",
    )
    return parser


def _add_job_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to an export job file (YAML or JSON)",
    )
    parser.add_argument(
        "--bbox",
        type=float,
        nargs=4,
        metavar=("MIN_LNG", "MIN_LAT", "MAX_LNG", "MAX_LAT"),
        default=None,
        help="Viewport to partition, in degrees",
    )
    parser.add_argument("--rows", type=int, default=None, help="Grid rows (default: 2)")
    parser.add_argument("--cols", type=int, default=None, help="Grid columns (default: 2)")
    parser.add_argument(
        "--paper",
        choices=[mode.value for mode in PaperMode],
        default=None,
        help="Paper format forcing the cell aspect ratio (default: A3)",
    )
    parser.add_argument(
        "--orientation",
        choices=[orientation.value for orientation in Orientation],
        default=None,
        help="Paper orientation (default: landscape)",
    )
    parser.add_argument(
        "--basemap",
        choices=sorted(BASEMAPS),
        default=None,
        help="Built-in tile source (default: esri)",
    )
    parser.add_argument(
        "--tile-template",
        default=None,
        help="Custom XYZ template with {z}, {x} and {y}; overrides --basemap",
    )
    parser.add_argument(
        "--max-native-zoom",
        type=int,
        default=None,
        help="Highest zoom with real imagery for --tile-template (default: 19)",
    )
    parser.add_argument(
        "--resolution",
        choices=[mode.value for mode in ResolutionMode],
        default=None,
        help="Output resolution per page (default: high)",
    )
    parser.add_argument(
        "--zoom",
        type=int,
        default=None,
        help="Manual tile zoom; capped at two levels above the automatic choice",
    )


def main(argv: Iterable[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    configure_logging(level=args.log_level, json_logs=args.log_json)

    if args.command == "basemaps":
        return _handle_basemaps(args)
    if args.command == "plan":
        return _handle_plan(args)
    if args.command == "export":
        return _handle_export(args)
    parser.error("Unknown command")
    return 1


def _resolve_config(args: argparse.Namespace) -> ExportConfig:
    if args.config is not None:
        config_path = args.config.resolve()
        if not config_path.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")
        try:
            cfg = load_config(config_path)
        except ValueError as exc:
            raise ConfigError(f"Invalid configuration {config_path}: {exc}") from exc
    else:
        cfg = ExportConfig()

    overrides = {
        "viewport": tuple(args.bbox) if args.bbox is not None else None,
        "rows": args.rows,
        "cols": args.cols,
        "paper": args.paper,
        "orientation": args.orientation,
        "basemap": args.basemap,
        "tile_template": args.tile_template,
        "max_native_zoom": args.max_native_zoom,
        "resolution": args.resolution,
        "zoom": args.zoom,
        "output": getattr(args, "output", None),
        "timeout_seconds": getattr(args, "timeout", None),
        "max_workers": getattr(args, "workers", None),
    }
    for key, value in overrides.items():
        if value is not None:
            setattr(cfg, key, value)
    if getattr(args, "no_manifest", False):
        cfg.write_manifest = False

    if cfg.viewport is None:
        raise ConfigError("No viewport given; supply --bbox or set viewport in the config file")
    if cfg.rows < 1 or cfg.cols < 1:
        raise ConfigError("--rows and --cols must be >= 1")
    return cfg


def _build_cells(cfg: ExportConfig) -> List[GridCell]:
    viewport = cfg.viewport_bbox()
    if viewport is None or not viewport.is_valid:
        raise ConfigError(f"Viewport is empty or inverted: {cfg.viewport}")
    cells = partition(viewport, cfg.rows, cfg.cols, cfg.paper_spec())
    if not cells:
        raise ConfigError(f"Viewport has zero projected area: {cfg.viewport}")
    return cells


def _handle_basemaps(args: argparse.Namespace) -> int:
    for key, source in BASEMAPS.items():
        print(f"{key}\tz{source.max_native_zoom}\t{source.label}")
    return EXIT_OK


def _handle_plan(args: argparse.Namespace) -> int:
    try:
        cfg = _resolve_config(args)
        basemap = cfg.basemap_source()
        cells = _build_cells(cfg)
    except ConfigError as exc:
        LOGGER.error(str(exc))
        return EXIT_CONFIG

    mode = cfg.resolution_mode()
    summary = summarize(cells)
    if summary is not None:
        aspect = f"{summary.cell_aspect:.3f}" if math.isfinite(summary.cell_aspect) else "-"
        print(
            f"grid {summary.rows} x {summary.cols}: "
            f"{summary.width_km:.3f} x {summary.height_km:.3f} km; "
            f"cell {summary.cell_width_km:.3f} x {summary.cell_height_km:.3f} km "
            f"(aspect {aspect}, paper {cfg.paper} / {cfg.orientation})"
        )

    for option in zoom_options(cells, basemap, mode):
        print(f"{option.option_id}\tz{option.zoom}\t{option.label}\t~{option.estimated_tiles} tiles")

    for cell in cells:
        zoom = resolve_zoom(cell, basemap, cfg.zoom, mode, len(cells))
        print(f"{cell.label}\tz{zoom}\t{estimate_tile_count(cell, zoom)} tiles")

    if args.geojson is not None:
        args.geojson.parent.mkdir(parents=True, exist_ok=True)
        args.geojson.write_text(json.dumps(cells_to_geojson(cells), indent=2), encoding="utf-8")
        LOGGER.info("grid geojson written", extra={"path": str(args.geojson)})
    return EXIT_OK


def _handle_export(args: argparse.Namespace) -> int:
    try:
        cfg = _resolve_config(args)
        basemap = cfg.basemap_source()
        cells = _build_cells(cfg)
    except ConfigError as exc:
        LOGGER.error(str(exc))
        return EXIT_CONFIG

    job = ExportJob(
        cells=tuple(cells),
        basemap=basemap,
        resolution_mode=cfg.resolution_mode(),
        zoom_override=cfg.zoom,
    )

    def _on_interrupt(signum, frame):  # type: ignore[no-untyped-def]
        LOGGER.warning("interrupt received; stopping after the current cell")
        job.request_cancel()
        signal.signal(signal.SIGINT, signal.default_int_handler)

    previous_handler = signal.signal(signal.SIGINT, _on_interrupt)
    try:
        with TileFetcher(
            timeout=cfg.timeout_seconds,
            max_workers=cfg.max_workers,
            user_agent=cfg.user_agent,
        ) as fetcher:
            orchestrator = ExportOrchestrator(TileMosaicRenderer(fetcher))
            outcome = orchestrator.start(job, cfg.output, progress_cb=_log_progress)
            pages = orchestrator.pages
    except ConfigError as exc:
        LOGGER.error(str(exc))
        return EXIT_CONFIG
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    if cfg.write_manifest and outcome.output_path is not None:
        manifest_path = outcome.output_path.with_suffix(".manifest.json")
        manifest = build_manifest(outcome, pages, basemap=basemap.key, resolution=job.resolution_mode.value)
        write_manifest(manifest, manifest_path)
        LOGGER.info("manifest written", extra={"path": str(manifest_path)})

    return _report_outcome(outcome)


def _log_progress(progress: ExportProgress) -> None:
    LOGGER.info(
        "cell %d / %d done: %d tiles (total %d), %.0f%%",
        progress.index,
        progress.total,
        progress.tile_count,
        progress.cumulative_tile_count,
        progress.fraction * 100.0,
    )


def _report_outcome(outcome: ExportOutcome) -> int:
    if outcome.status is ExportStatus.COMPLETED:
        LOGGER.info("export complete: %d pages saved to %s", outcome.page_count, outcome.output_path)
        return EXIT_OK
    if outcome.status is ExportStatus.CANCELLED:
        LOGGER.warning("export cancelled; no document saved")
        return EXIT_CANCELLED
    if outcome.output_path is not None:
        LOGGER.error(
            "export failed: %s; %d pages saved to %s",
            outcome.error,
            outcome.page_count,
            outcome.output_path,
        )
    else:
        LOGGER.error("export failed: %s; nothing saved", outcome.error)
    return EXIT_FAILED


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
