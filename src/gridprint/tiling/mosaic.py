"""Stitch XYZ tiles into a single cropped raster per grid cell."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

from PIL import Image

from gridprint.acquisition.tiles import TileResult
from gridprint.core.errors import RenderError
from gridprint.core.models import BasemapSource, GridCell, Orientation, TileAddress
from gridprint.geo.projection import TILE_SIZE
from gridprint.logging import get_logger

from .base import TileBatchFetcher
from .zoom import PDF_MAX_SIDE, PixelWindow, TileRange, pixel_footprint, tile_range

LOGGER = get_logger(__name__)

BACKGROUND = (255, 255, 255)
# Scale factors this close to 1 keep the native crop instead of resampling.
NO_RESAMPLE_THRESHOLD = 0.999


@dataclass
class RenderResult:
    """Final raster of one cell plus tile bookkeeping for progress reports."""

    image: Image.Image
    zoom: int
    tile_count: int
    missing_tiles: int = 0

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def orientation(self) -> Orientation:
        return Orientation.LANDSCAPE if self.width >= self.height else Orientation.PORTRAIT


class TileMosaicRenderer:
    """Fetch, stitch, crop and downscale the tiles covering one cell."""

    def __init__(self, fetcher: TileBatchFetcher, *, max_side: int = PDF_MAX_SIDE) -> None:
        self._fetcher = fetcher
        self._max_side = max_side

    def render(self, cell: GridCell, zoom: int, basemap: BasemapSource, *, base_size: int) -> RenderResult:
        """Render ``cell`` at tile zoom ``zoom``.

        Missing tiles leave a white hole in the mosaic. The crop is downscaled
        uniformly when its long side exceeds ``min(max_side, base_size)``.

        Raises:
            RenderError: When a raster operation fails.
        """

        window = pixel_footprint(cell.bbox, zoom)
        tiles = tile_range(window, zoom)

        LOGGER.info(
            "rendering cell",
            extra={"cell": cell.label, "zoom": zoom, "tiles": tiles.count, "basemap": basemap.key},
        )
        results = self._fetcher.fetch_all(basemap, tiles.addresses())

        try:
            mosaic, missing = self._stitch(tiles, results)
            cropped = self._crop(mosaic, window, tiles)
            final = self._scale(cropped, min(self._max_side, base_size))
        except (OSError, ValueError, MemoryError) as exc:
            raise RenderError(f"Failed to render cell {cell.label} at z{zoom}: {exc}") from exc

        if missing:
            LOGGER.warning(
                "cell rendered with missing tiles",
                extra={"cell": cell.label, "missing": missing, "tiles": tiles.count},
            )
        return RenderResult(image=final, zoom=zoom, tile_count=tiles.count, missing_tiles=missing)

    def _stitch(self, tiles: TileRange, results: Dict[TileAddress, TileResult]) -> Tuple[Image.Image, int]:
        mosaic = Image.new("RGB", (tiles.tiles_x * TILE_SIZE, tiles.tiles_y * TILE_SIZE), BACKGROUND)
        missing = 0
        for address in tiles.addresses():
            result = results.get(address)
            image = result.image if result is not None else None
            if image is None:
                missing += 1
                continue
            if image.size != (TILE_SIZE, TILE_SIZE):
                image = image.resize((TILE_SIZE, TILE_SIZE), Image.Resampling.LANCZOS)
            offset = ((address.x - tiles.min_x) * TILE_SIZE, (address.y - tiles.min_y) * TILE_SIZE)
            mosaic.paste(image, offset)
        return mosaic, missing

    def _crop(self, mosaic: Image.Image, window: PixelWindow, tiles: TileRange) -> Image.Image:
        origin_x, origin_y = tiles.origin
        left = int(round(window.min_x - origin_x))
        top = int(round(window.min_y - origin_y))
        width = max(1, int(round(window.width)))
        height = max(1, int(round(window.height)))
        # Footprints past the world edge reach outside the mosaic; keep that area white.
        canvas = Image.new("RGB", (width, height), BACKGROUND)
        canvas.paste(mosaic, (-left, -top))
        return canvas

    def _scale(self, image: Image.Image, target_side: int) -> Image.Image:
        longest = max(image.width, image.height)
        if longest <= target_side:
            return image
        scale = target_side / float(longest)
        if scale >= NO_RESAMPLE_THRESHOLD:
            return image
        size = (max(1, int(round(image.width * scale))), max(1, int(round(image.height * scale))))
        LOGGER.debug("downscaling cell raster", extra={"source": image.size, "target": size})
        return image.resize(size, Image.Resampling.LANCZOS)
