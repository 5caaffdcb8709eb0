import math
from typing import Dict, Iterable, List, Optional

import pytest
from PIL import Image

from gridprint.acquisition.basemaps import get_basemap
from gridprint.acquisition.tiles import TileResult
from gridprint.core.errors import RenderError
from gridprint.core.models import BasemapSource, BBox, GridCell, Orientation, TileAddress
from gridprint.tiling.mosaic import TileMosaicRenderer

ZOOM = 16
TILE_X = 58210
TILE_Y = 25806
ESRI = get_basemap("esri")


def _tile_lng(x: int, zoom: int) -> float:
    return x / 2 ** zoom * 360.0 - 180.0


def _tile_lat(y: int, zoom: int) -> float:
    n = math.pi - 2.0 * math.pi * y / 2 ** zoom
    return math.degrees(math.atan(math.sinh(n)))


def _aligned_cell(tiles_x: int, tiles_y: int) -> GridCell:
    bbox = BBox(
        min_lng=_tile_lng(TILE_X, ZOOM),
        min_lat=_tile_lat(TILE_Y + tiles_y, ZOOM),
        max_lng=_tile_lng(TILE_X + tiles_x, ZOOM),
        max_lat=_tile_lat(TILE_Y, ZOOM),
    )
    return GridCell(row=0, col=0, bbox=bbox)


def _color(address: TileAddress) -> tuple:
    return ((address.x * 37) % 200, (address.y * 53) % 200, 40)


class StubFetcher:
    def __init__(self, missing: Iterable[TileAddress] = (), tile_size: int = 256) -> None:
        self.missing = set(missing)
        self.tile_size = tile_size
        self.requested: List[TileAddress] = []

    def fetch_all(self, basemap: BasemapSource, addresses: Iterable[TileAddress]) -> Dict[TileAddress, TileResult]:
        results = {}
        for address in addresses:
            self.requested.append(address)
            if address in self.missing:
                results[address] = TileResult(address=address, error="HTTP 404")
                continue
            image = Image.new("RGB", (self.tile_size, self.tile_size), _color(address))
            results[address] = TileResult(address=address, image=image)
        return results


def _pixel(image: Image.Image, x: int, y: int) -> Optional[tuple]:
    return image.convert("RGB").getpixel((x, y))


def test_tiles_are_placed_by_address() -> None:
    fetcher = StubFetcher()
    renderer = TileMosaicRenderer(fetcher)

    result = renderer.render(_aligned_cell(2, 2), ZOOM, ESRI, base_size=4000)

    assert abs(result.width - 512) <= 1
    assert abs(result.height - 512) <= 1
    assert result.zoom == ZOOM
    assert result.missing_tiles == 0
    assert result.tile_count == len(fetcher.requested)
    assert _pixel(result.image, 128, 128) == _color(TileAddress(ZOOM, TILE_X, TILE_Y))
    assert _pixel(result.image, 384, 128) == _color(TileAddress(ZOOM, TILE_X + 1, TILE_Y))
    assert _pixel(result.image, 128, 384) == _color(TileAddress(ZOOM, TILE_X, TILE_Y + 1))


def test_missing_tiles_render_white() -> None:
    hole = TileAddress(ZOOM, TILE_X + 1, TILE_Y + 1)
    renderer = TileMosaicRenderer(StubFetcher(missing=[hole]))

    result = renderer.render(_aligned_cell(2, 2), ZOOM, ESRI, base_size=4000)

    assert result.missing_tiles == 1
    assert _pixel(result.image, 384, 384) == (255, 255, 255)
    assert _pixel(result.image, 128, 128) == _color(TileAddress(ZOOM, TILE_X, TILE_Y))


def test_oversized_tiles_are_resampled_to_tile_size() -> None:
    renderer = TileMosaicRenderer(StubFetcher(tile_size=512))

    result = renderer.render(_aligned_cell(2, 1), ZOOM, ESRI, base_size=4000)

    assert abs(result.width - 512) <= 1
    assert abs(result.height - 256) <= 1
    assert _pixel(result.image, 128, 128) == _color(TileAddress(ZOOM, TILE_X, TILE_Y))


def test_long_side_is_downscaled_preserving_aspect() -> None:
    renderer = TileMosaicRenderer(StubFetcher())

    result = renderer.render(_aligned_cell(4, 2), ZOOM, ESRI, base_size=512)

    assert max(result.width, result.height) == 512
    assert abs(result.height - 256) <= 1
    assert result.orientation is Orientation.LANDSCAPE


def test_max_side_caps_base_size() -> None:
    renderer = TileMosaicRenderer(StubFetcher(), max_side=300)

    result = renderer.render(_aligned_cell(2, 2), ZOOM, ESRI, base_size=4000)

    assert max(result.width, result.height) == 300


def test_raster_failures_become_render_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    renderer = TileMosaicRenderer(StubFetcher())

    def explode(*args, **kwargs):  # type: ignore[no-untyped-def]
        raise MemoryError("mosaic too large")

    monkeypatch.setattr(renderer, "_stitch", explode)

    with pytest.raises(RenderError, match="r1_c1"):
        renderer.render(_aligned_cell(1, 1), ZOOM, ESRI, base_size=4000)


def test_area_past_world_edge_is_white() -> None:
    cell = GridCell(row=0, col=0, bbox=BBox(170.0, 0.0, 185.0, 10.0))
    renderer = TileMosaicRenderer(StubFetcher())

    result = renderer.render(cell, 3, ESRI, base_size=4000)

    assert result.missing_tiles == 0
    assert _pixel(result.image, result.width - 1, result.height // 2) == (255, 255, 255)
    assert _pixel(result.image, 0, result.height // 2) == _color(TileAddress(3, 7, 3))
