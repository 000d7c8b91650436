"""Google Earth Engine NDVI backend.

Everything except `establish`, `probe`, `tile_template` and `reduce_point`
only composes `ee` expressions; the remote service sees nothing until one
of those evaluation boundaries calls `getInfo()` or `getMapId()`.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any, Final, TypeVar

import ee
from django.utils import timezone

from ndvi.credentials import Credentials
from ndvi.exceptions import (
    AuthenticationError,
    EvaluationError,
    NdviServiceError,
    TileTemplateError,
)
from ndvi.metrics import (
    ndvi_backend_latency_seconds,
    ndvi_backend_requests_total,
)

from .base import (
    CIRRUS_BIT_MASK,
    CLOUD_BIT_MASK,
    INDEX_PROPERTY,
    NDVI_BAND,
    QA_BAND,
    REFLECTANCE_SCALE,
    TIME_START_PROPERTY,
    BBox,
    DerivedImage,
    GeoPoint,
    GeoRegion,
    ImageQuery,
    NdviBackend,
    SessionHandle,
    VisParams,
)

logger = logging.getLogger(__name__)

CLOUD_COVER_PROPERTY: Final[str] = "CLOUDY_PIXEL_PERCENTAGE"

_T = TypeVar("_T")


def region_geometry(region: GeoRegion) -> Any:
    if isinstance(region, GeoPoint):
        return ee.Geometry.Point([region.lon, region.lat])
    if isinstance(region, BBox):
        return ee.Geometry.Rectangle(
            [
                float(region.west),
                float(region.south),
                float(region.east),
                float(region.north),
            ]
        )
    raise TypeError(f"Unsupported region type: {type(region).__name__}")


def _ee_date(value: datetime) -> Any:
    return ee.Date(int(value.timestamp() * 1000))


class EarthEngineBackend(NdviBackend):
    """Sentinel-2 NDVI on Google Earth Engine."""

    engine_name: Final[str] = "earthengine"

    def establish(self, credentials: Credentials) -> SessionHandle:
        started = time.monotonic()
        try:
            ee_credentials = ee.ServiceAccountCredentials(
                credentials.client_email, key_data=credentials.key_data
            )
            ee.Initialize(ee_credentials, project=credentials.project_id)
        except Exception as exc:
            ndvi_backend_requests_total.labels(
                operation="establish", outcome="error"
            ).inc()
            logger.error(
                "ndvi.ee.establish.failed project=%s error=%s",
                credentials.project_id,
                exc,
            )
            raise AuthenticationError(details=str(exc)) from exc
        finally:
            ndvi_backend_latency_seconds.labels(
                operation="establish"
            ).observe(time.monotonic() - started)

        ndvi_backend_requests_total.labels(
            operation="establish", outcome="success"
        ).inc()
        return SessionHandle(
            project_id=credentials.project_id,
            established_at=timezone.now(),
        )

    def build_collection(self, query: ImageQuery) -> Any:
        # filterBounds precedes the date and cloud filters.
        return (
            ee.ImageCollection(query.collection)
            .filterBounds(region_geometry(query.region))
            .filterDate(_ee_date(query.start), _ee_date(query.end))
            .filter(ee.Filter.lt(CLOUD_COVER_PROPERTY, query.max_cloud))
        )

    @staticmethod
    def mask_clouds(image: Any) -> Any:
        qa = image.select(QA_BAND)
        mask = (
            qa.bitwiseAnd(CLOUD_BIT_MASK)
            .eq(0)
            .And(qa.bitwiseAnd(CIRRUS_BIT_MASK).eq(0))
        )
        return image.updateMask(mask).divide(REFLECTANCE_SCALE)

    @staticmethod
    def select_composite(collection: Any) -> Any:
        return ee.Image(collection.first())

    @staticmethod
    def compute_ndvi(image: Any, nir_band: str, red_band: str) -> Any:
        return image.normalizedDifference([nir_band, red_band]).rename(
            NDVI_BAND
        )

    def derive(self, query: ImageQuery) -> DerivedImage:
        ordered = self.build_collection(query).sort(TIME_START_PROPERTY, False)
        composite = self.select_composite(ordered.map(self.mask_clouds))
        ndvi = self.compute_ndvi(composite, query.nir_band, query.red_band)
        return DerivedImage(query=query, collection=ordered, ndvi=ndvi)

    def probe(self, image: DerivedImage) -> str | None:
        ids = self._evaluate(
            "probe",
            image.collection.limit(1)
            .aggregate_array(INDEX_PROPERTY)
            .getInfo,
        )
        if not ids:
            return None
        return str(ids[0])

    def tile_template(self, image: DerivedImage, vis: VisParams) -> str:
        map_id = self._evaluate(
            "tile_template",
            lambda: image.ndvi.getMapId(vis.as_dict()),
            error=TileTemplateError,
        )
        try:
            return str(map_id["tile_fetcher"].url_format)
        except (KeyError, TypeError, AttributeError) as exc:
            raise TileTemplateError(
                details="Map id response has no tile URL template."
            ) from exc

    def reduce_point(
        self, image: DerivedImage, point: GeoPoint, scale: int
    ) -> float | None:
        value = image.ndvi.reduceRegion(
            reducer=ee.Reducer.first(),
            geometry=region_geometry(point),
            scale=scale,
        ).get(NDVI_BAND)
        result = self._evaluate("reduce_point", value.getInfo)
        if result is None:
            return None
        try:
            return float(result)
        except (TypeError, ValueError) as exc:
            raise EvaluationError(
                details=f"Unexpected NDVI value: {result!r}"
            ) from exc

    def _evaluate(
        self,
        operation: str,
        call: Callable[[], _T],
        *,
        error: type[NdviServiceError] = EvaluationError,
    ) -> _T:
        started = time.monotonic()
        try:
            result = call()
        except Exception as exc:
            ndvi_backend_requests_total.labels(
                operation=operation, outcome="error"
            ).inc()
            logger.warning(
                "ndvi.ee.evaluate.failed operation=%s error=%s",
                operation,
                exc,
            )
            raise error(details=str(exc)) from exc
        finally:
            ndvi_backend_latency_seconds.labels(operation=operation).observe(
                time.monotonic() - started
            )
        ndvi_backend_requests_total.labels(
            operation=operation, outcome="success"
        ).inc()
        return result

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        return f"EarthEngineBackend(engine={self.engine_name})"
