"""Built-in XYZ basemap providers."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Optional

from gridprint.core.errors import ConfigError
from gridprint.core.models import BasemapSource

DEFAULT_BASEMAP = "esri"

_SOURCES = (
    BasemapSource(
        key="esri",
        label="Esri World Imagery",
        url_template="https://server.arcgisonline.com/ArcGIS/rest/services/World_Imagery/MapServer/tile/{z}/{y}/{x}",
        max_zoom=22,
        max_native_zoom=19,
        attribution="Imagery: Esri, Maxar, Earthstar Geographics, and the GIS User Community.",
    ),
    BasemapSource(
        key="gsiPresent",
        label="GSI Seamless Orthophoto (present)",
        url_template="https://cyberjapandata.gsi.go.jp/xyz/seamlessphoto/{z}/{x}/{y}.jpg",
        max_zoom=22,
        max_native_zoom=18,
        attribution="Imagery: Geospatial Information Authority of Japan (GSI).",
    ),
    BasemapSource(
        key="gsi1984",
        label="GSI Aerial Photos (1979-1983)",
        url_template="https://cyberjapandata.gsi.go.jp/xyz/gazo3/{z}/{x}/{y}.jpg",
        max_zoom=22,
        max_native_zoom=18,
        attribution="Imagery: Geospatial Information Authority of Japan (GSI).",
    ),
    BasemapSource(
        key="gsi1974",
        label="GSI Aerial Photos (1974-1978)",
        url_template="https://cyberjapandata.gsi.go.jp/xyz/gazo1/{z}/{x}/{y}.jpg",
        max_zoom=22,
        max_native_zoom=18,
        attribution="Imagery: Geospatial Information Authority of Japan (GSI).",
    ),
    BasemapSource(
        key="gsi1961",
        label="GSI Aerial Photos (1961-1969)",
        url_template="https://cyberjapandata.gsi.go.jp/xyz/ort_old10/{z}/{x}/{y}.png",
        max_zoom=22,
        max_native_zoom=18,
        attribution="Imagery: Geospatial Information Authority of Japan (GSI).",
    ),
    BasemapSource(
        key="googleSat",
        label="Google Satellite",
        url_template="https://mt1.google.com/vt/lyrs=s&x={x}&y={y}&z={z}",
        max_zoom=22,
        max_native_zoom=21,
        attribution="Imagery: Google.",
    ),
    BasemapSource(
        key="googleHybrid",
        label="Google Hybrid",
        url_template="https://mt1.google.com/vt/lyrs=y&x={x}&y={y}&z={z}",
        max_zoom=22,
        max_native_zoom=21,
        attribution="Imagery: Google.",
    ),
    BasemapSource(
        key="googleMaps",
        label="Google Maps",
        url_template="https://mt1.google.com/vt/lyrs=m&x={x}&y={y}&z={z}",
        max_zoom=22,
        max_native_zoom=21,
        attribution="Map data: Google.",
    ),
)

BASEMAPS: Mapping[str, BasemapSource] = MappingProxyType({source.key: source for source in _SOURCES})


def get_basemap(key: str) -> BasemapSource:
    """Return a registered basemap or raise :class:`ConfigError`."""

    try:
        return BASEMAPS[key]
    except KeyError:
        known = ", ".join(sorted(BASEMAPS))
        raise ConfigError(f"Unknown basemap '{key}' (known: {known})") from None


def custom_basemap(
    url_template: str,
    *,
    max_native_zoom: int = 19,
    max_zoom: Optional[int] = None,
    label: str = "Custom XYZ source",
) -> BasemapSource:
    """Describe a user-supplied XYZ template."""

    source = BasemapSource(
        key="custom",
        label=label,
        url_template=url_template,
        max_zoom=max_zoom if max_zoom is not None else max(22, max_native_zoom),
        max_native_zoom=max_native_zoom,
    )
    if not source.has_template:
        raise ConfigError(f"Tile template must contain {{z}}, {{x}} and {{y}}: {url_template}")
    return source
