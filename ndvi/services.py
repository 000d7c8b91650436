from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Final

from django.conf import settings
from django.utils import timezone

from .credentials import Credentials
from .engines.base import (
    NATIVE_SCALE_METERS,
    BBox,
    GeoPoint,
    ImageQuery,
    NdviBackend,
    VisParams,
)
from .exceptions import (
    ConfigurationError,
    NoDataAtLocationError,
    NoImageFoundError,
)
from .metrics import ndvi_point_samples_total

logger = logging.getLogger(__name__)

TILE_WINDOW_DAYS = int(getattr(settings, "NDVI_TILE_WINDOW_DAYS", 90))
POINT_WINDOW_DAYS = int(getattr(settings, "NDVI_POINT_WINDOW_DAYS", 120))
DEFAULT_TILE_MODE = str(getattr(settings, "NDVI_TILE_MODE", "redirect"))
TILE_MODES: Final[tuple[str, ...]] = ("redirect", "proxy")

# west, south, east, north: roughly Kazakhstan and its neighbours.
DEFAULT_SERVICE_AREA: Final[tuple[float, float, float, float]] = (
    46.0,
    40.0,
    88.0,
    56.0,
)

NDVI_VIS: Final[VisParams] = VisParams(
    min=-0.2,
    max=0.8,
    palette=(
        "#E3A857",
        "#FCDD94",
        "#B6D97C",
        "#84C065",
        "#45A24B",
        "#117A37",
    ),
)


@dataclass(frozen=True)
class TileDescriptor:
    url_format: str
    vis: VisParams
    image_id: str


@dataclass(frozen=True)
class PointSample:
    lat: float
    lon: float
    ndvi: float
    image_id: str


def service_area_bbox() -> BBox:
    """Service area box configured as (west, south, east, north)."""

    raw: Sequence[float] = getattr(
        settings, "NDVI_SERVICE_AREA_BBOX", DEFAULT_SERVICE_AREA
    )
    try:
        west, south, east, north = (Decimal(str(v)) for v in raw)
    except (TypeError, ValueError, InvalidOperation) as exc:
        raise ConfigurationError(
            details="NDVI_SERVICE_AREA_BBOX must be four numbers."
        ) from exc
    if not all(v.is_finite() for v in (west, south, east, north)):
        raise ConfigurationError(
            details="NDVI_SERVICE_AREA_BBOX must be four numbers."
        )
    if west >= east or south >= north:
        raise ConfigurationError(
            details=(
                "NDVI_SERVICE_AREA_BBOX must have west < east and "
                "south < north."
            )
        )
    return BBox(south=south, west=west, north=north, east=east)


def _window(days: int, now: datetime | None) -> tuple[datetime, datetime]:
    end = now or timezone.now()
    return end - timedelta(days=days), end


def tile_query(now: datetime | None = None) -> ImageQuery:
    """Query over the fixed service area for map tiles."""

    start, end = _window(TILE_WINDOW_DAYS, now)
    return ImageQuery(region=service_area_bbox(), start=start, end=end)


def point_query(
    lat: float, lon: float, now: datetime | None = None
) -> ImageQuery:
    """Query scoped to a single point to keep the catalog search small."""

    start, end = _window(POINT_WINDOW_DAYS, now)
    return ImageQuery(region=GeoPoint(lat=lat, lon=lon), start=start, end=end)


def resolve_tile_descriptor(
    *,
    backend: NdviBackend,
    credentials: Credentials,
    now: datetime | None = None,
) -> TileDescriptor:
    """Authenticate, pre-flight the composite and resolve a tile template.

    Tiles run the same existence check as point samples so an empty
    window is reported instead of rendering blank tiles.
    """

    backend.establish(credentials)
    image = backend.derive(tile_query(now))
    image_id = backend.probe(image)
    if image_id is None:
        logger.info("ndvi.tiles.no_image window_days=%s", TILE_WINDOW_DAYS)
        raise NoImageFoundError()

    url_format = backend.tile_template(image, NDVI_VIS)
    logger.info("ndvi.tiles.resolved image_id=%s", image_id)
    return TileDescriptor(url_format=url_format, vis=NDVI_VIS, image_id=image_id)


def sample_point(
    *,
    backend: NdviBackend,
    credentials: Credentials,
    lat: float,
    lon: float,
    now: datetime | None = None,
) -> PointSample:
    """Return the NDVI value of the most recent clear image at a point."""

    backend.establish(credentials)
    query = point_query(lat, lon, now)
    image = backend.derive(query)

    image_id = backend.probe(image)
    if image_id is None:
        ndvi_point_samples_total.labels(outcome="no_image").inc()
        logger.info("ndvi.point.no_image lat=%s lon=%s", lat, lon)
        raise NoImageFoundError()

    point = GeoPoint(lat=lat, lon=lon)
    value = backend.reduce_point(image, point, NATIVE_SCALE_METERS)
    if value is None or math.isnan(value):
        ndvi_point_samples_total.labels(outcome="no_data").inc()
        logger.info(
            "ndvi.point.no_data lat=%s lon=%s image_id=%s",
            lat,
            lon,
            image_id,
        )
        raise NoDataAtLocationError()

    ndvi_point_samples_total.labels(outcome="success").inc()
    logger.info(
        "ndvi.point.sampled lat=%s lon=%s image_id=%s", lat, lon, image_id
    )
    return PointSample(lat=lat, lon=lon, ndvi=value, image_id=image_id)
