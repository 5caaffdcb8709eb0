"""Concurrent XYZ tile downloads returning per-tile results."""

from __future__ import annotations

import io
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

import requests
from PIL import Image, UnidentifiedImageError
from requests.adapters import HTTPAdapter

from gridprint.core.errors import TileFetchError
from gridprint.core.models import BasemapSource, TileAddress
from gridprint.logging import get_logger

LOGGER = get_logger(__name__)

DEFAULT_USER_AGENT = "gridprint/0.1"


@dataclass(frozen=True)
class TileResult:
    """Outcome of one tile request: a decoded image or a failure reason."""

    address: TileAddress
    image: Optional[Image.Image] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.image is not None


class TileFetcher:
    """Fetch tiles for one cell concurrently and join on all of them.

    Requests carry no credentials and are never retried. Every failure is
    logged and reported as a failed :class:`TileResult`.
    """

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        max_workers: int = 8,
        user_agent: str = DEFAULT_USER_AGENT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._timeout = timeout
        self._max_workers = max(1, int(max_workers))
        self._session = session or self._build_session(user_agent)

    def _build_session(self, user_agent: str) -> requests.Session:
        session = requests.Session()
        session.headers.update({"User-Agent": user_agent})
        adapter = HTTPAdapter(pool_connections=self._max_workers, pool_maxsize=self._max_workers, max_retries=0)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "TileFetcher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def fetch(self, basemap: BasemapSource, address: TileAddress) -> TileResult:
        """Download and decode a single tile; never raises for tile failures."""

        try:
            image = self._download(basemap, address)
        except TileFetchError as exc:
            LOGGER.warning(
                "tile fetch failed",
                extra={"z": address.z, "x": address.x, "y": address.y, "error": str(exc)},
            )
            return TileResult(address=address, error=str(exc))
        return TileResult(address=address, image=image)

    def fetch_all(self, basemap: BasemapSource, addresses: Iterable[TileAddress]) -> Dict[TileAddress, TileResult]:
        """Fetch ``addresses`` concurrently and wait until every request settled."""

        targets = list(addresses)
        if not targets:
            return {}
        workers = min(self._max_workers, len(targets))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="gridprint-tile") as executor:
            futures = {address: executor.submit(self.fetch, basemap, address) for address in targets}
            results = {address: future.result() for address, future in futures.items()}

        failed = sum(1 for result in results.values() if not result.ok)
        LOGGER.debug("tile batch settled", extra={"tiles": len(results), "failed": failed})
        return results

    def _download(self, basemap: BasemapSource, address: TileAddress) -> Image.Image:
        url = basemap.tile_url(address)
        LOGGER.debug("downloading tile", extra={"url": url})
        try:
            response = self._session.get(url, timeout=self._timeout)
        except requests.RequestException as exc:
            raise TileFetchError(f"Failed to download tile {url}: {exc}", address=address) from exc
        if not 200 <= response.status_code < 300:
            raise TileFetchError(f"Failed to download tile {url}: {response.status_code}", address=address)
        try:
            with Image.open(io.BytesIO(response.content)) as decoded:
                return _flatten(decoded)
        except (UnidentifiedImageError, OSError) as exc:
            raise TileFetchError(f"Failed to decode tile {url}: {exc}", address=address) from exc


def _flatten(image: Image.Image) -> Image.Image:
    # Transparent areas become white, matching the blank mosaic background.
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return image.convert("RGB")
