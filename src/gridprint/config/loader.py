"""Export job configuration with YAML and JSON support."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

from gridprint.acquisition.basemaps import DEFAULT_BASEMAP, custom_basemap, get_basemap
from gridprint.core.models import BasemapSource, BBox, Orientation, PaperMode, PaperSpec, ResolutionMode


@dataclass
class ExportConfig:
    """Everything needed to partition a viewport and export its cells."""

    viewport: Optional[Tuple[float, float, float, float]] = None
    rows: int = 2
    cols: int = 2
    paper: str = PaperMode.A3.value
    orientation: str = Orientation.LANDSCAPE.value
    basemap: str = DEFAULT_BASEMAP
    tile_template: Optional[str] = None
    max_native_zoom: Optional[int] = None
    max_zoom: Optional[int] = None
    resolution: str = ResolutionMode.HIGH.value
    zoom: Optional[int] = None
    output: Path = Path("map_grid.pdf")
    timeout_seconds: float = 30.0
    max_workers: int = 8
    user_agent: str = "gridprint/0.1"
    write_manifest: bool = True

    def resolve_relative_paths(self, base_dir: Path) -> None:
        """Resolve the output path against the provided base directory."""

        if not self.output.is_absolute():
            self.output = base_dir / self.output

    def paper_spec(self) -> PaperSpec:
        return PaperSpec(mode=PaperMode(self.paper), orientation=Orientation(self.orientation))

    def resolution_mode(self) -> ResolutionMode:
        return ResolutionMode(self.resolution)

    def viewport_bbox(self) -> Optional[BBox]:
        if self.viewport is None:
            return None
        return BBox.from_tuple(self.viewport)

    def basemap_source(self) -> BasemapSource:
        """Return the configured tile source; a tile template wins over the registry key."""

        if self.tile_template:
            return custom_basemap(
                self.tile_template,
                max_native_zoom=self.max_native_zoom if self.max_native_zoom is not None else 19,
                max_zoom=self.max_zoom,
            )
        return get_basemap(self.basemap)


class ConfigLoader:
    """Load export job files in YAML or JSON format."""

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self._base_dir = base_dir or Path.cwd()

    def load(self, path: Union[Path, str]) -> ExportConfig:
        """Parse a job file and return a populated dataclass."""

        config_path = self._resolve_path(Path(path))
        payload = self._load_payload(config_path)
        config = self._build_config(payload)
        config.resolve_relative_paths(config_path.parent)
        return config

    def _resolve_path(self, path: Path) -> Path:
        if path.is_absolute():
            return path
        return (self._base_dir / path).resolve()

    def _load_payload(self, path: Path) -> Dict[str, Any]:
        suffix = path.suffix.lower()
        if suffix in {".yaml", ".yml"}:
            with path.open("r", encoding="utf-8") as handle:
                payload = yaml.safe_load(handle) or {}
        elif suffix == ".json":
            with path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle) or {}
        else:
            raise ValueError(f"Unsupported configuration format: {suffix}")
        if not isinstance(payload, dict):
            raise ValueError("configuration root must be a mapping")
        return payload

    def _build_config(self, payload: Dict[str, Any]) -> ExportConfig:
        data = dict(payload)
        known = set(ExportConfig.__dataclass_fields__)
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")

        viewport = data.get("viewport")
        if viewport is not None:
            if not isinstance(viewport, (list, tuple)) or len(viewport) != 4:
                raise ValueError("viewport must be a list of four numbers")
            data["viewport"] = tuple(float(value) for value in viewport)
        for key in ("rows", "cols", "max_workers"):
            if key in data and data[key] is not None:
                data[key] = int(data[key])
        for key in ("zoom", "max_native_zoom", "max_zoom"):
            if key in data and data[key] is not None:
                data[key] = int(data[key])
        if "timeout_seconds" in data and data["timeout_seconds"] is not None:
            data["timeout_seconds"] = float(data["timeout_seconds"])
        if "output" in data and data["output"] is not None:
            data["output"] = Path(data["output"])
        for key in ("paper", "orientation", "resolution", "basemap", "user_agent"):
            if key in data and data[key] is not None:
                data[key] = str(data[key])

        config = ExportConfig(**{key: value for key, value in data.items() if value is not None})
        _check_choices(config)
        return config


def _check_choices(config: ExportConfig) -> None:
    if config.rows < 1 or config.cols < 1:
        raise ValueError("rows and cols must be >= 1")
    if config.max_workers < 1:
        raise ValueError("max_workers must be >= 1")
    for value, enum_type, key in (
        (config.paper, PaperMode, "paper"),
        (config.orientation, Orientation, "orientation"),
        (config.resolution, ResolutionMode, "resolution"),
    ):
        allowed = [member.value for member in enum_type]
        if value not in allowed:
            raise ValueError(f"{key} must be one of {', '.join(allowed)} (got {value!r})")


def load_config(path: Union[Path, str], *, base_dir: Optional[Path] = None) -> ExportConfig:
    """Convenience wrapper around :class:`ConfigLoader`."""

    loader = ConfigLoader(base_dir=base_dir)
    return loader.load(path)
