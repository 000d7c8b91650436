from __future__ import annotations

# ruff: noqa: S101
from datetime import timedelta
from decimal import Decimal

import pytest
from pytest_django.fixtures import SettingsWrapper

from ndvi.engines.base import BBox, GeoPoint
from ndvi.exceptions import (
    AuthenticationError,
    ConfigurationError,
    NoDataAtLocationError,
    NoImageFoundError,
)
from ndvi.services import (
    NDVI_VIS,
    PointSample,
    point_query,
    resolve_tile_descriptor,
    sample_point,
    service_area_bbox,
    tile_query,
)

from .fakes import CREDENTIALS, NOW, TILE_TEMPLATE, FakeBackend, scene

ASTANA = {"lat": 51.1694, "lon": 71.4491}


def _sample(backend: FakeBackend) -> PointSample:
    return sample_point(
        backend=backend, credentials=CREDENTIALS, now=NOW, **ASTANA
    )


def test_sample_point_returns_value_of_clear_pixel() -> None:
    backend = FakeBackend([scene("S2_A", days_ago=3, nir=3000, red=1000)])

    sample = _sample(backend)

    assert sample.ndvi == pytest.approx(0.5)
    assert sample.image_id == "S2_A"
    assert sample.lat == ASTANA["lat"]
    assert backend.calls == ["establish", "derive", "probe", "reduce_point"]
    assert backend.scales == [10]


def test_sample_point_queries_the_point_over_120_days() -> None:
    backend = FakeBackend([scene("S2_A", days_ago=3)])

    _sample(backend)

    query = backend.queries[0]
    assert query.region == GeoPoint(**ASTANA)
    assert query.end == NOW
    assert query.end - query.start == timedelta(days=120)
    assert query.max_cloud == 20
    assert (query.nir_band, query.red_band) == ("B8", "B4")


def test_sample_point_uses_most_recent_scene() -> None:
    backend = FakeBackend(
        [
            scene("S2_OLD", days_ago=40, nir=2000, red=2000),
            scene("S2_NEW", days_ago=2, nir=4500, red=500),
            scene("S2_MID", days_ago=20, nir=1000, red=3000),
        ]
    )

    sample = _sample(backend)

    assert sample.image_id == "S2_NEW"
    assert sample.ndvi == pytest.approx(0.8)


def test_sample_point_skips_cloudy_scenes() -> None:
    backend = FakeBackend(
        [
            scene("S2_CLOUDY", days_ago=1, cloud=20.0),
            scene("S2_CLEAR", days_ago=10, cloud=19.9),
        ]
    )

    assert _sample(backend).image_id == "S2_CLEAR"


def test_sample_point_no_image_in_window() -> None:
    backend = FakeBackend(
        [
            scene("S2_STALE", days_ago=130),
            scene("S2_CLOUDY", days_ago=5, cloud=80.0),
        ]
    )

    with pytest.raises(NoImageFoundError):
        _sample(backend)

    assert "reduce_point" not in backend.calls


@pytest.mark.parametrize("qa", [1 << 10, 1 << 11])
def test_sample_point_masked_pixel_is_no_data(qa: int) -> None:
    backend = FakeBackend([scene("S2_A", days_ago=3, qa=qa)])

    with pytest.raises(NoDataAtLocationError):
        _sample(backend)


def test_sample_point_zero_reflectance_is_no_data() -> None:
    backend = FakeBackend([scene("S2_A", days_ago=3, nir=0, red=0)])

    with pytest.raises(NoDataAtLocationError):
        _sample(backend)


def test_sample_point_masked_newest_scene_is_not_replaced() -> None:
    backend = FakeBackend(
        [
            scene("S2_NEW", days_ago=1, qa=1 << 10),
            scene("S2_OLD", days_ago=9),
        ]
    )

    with pytest.raises(NoDataAtLocationError):
        _sample(backend)


def test_no_image_and_no_data_have_distinct_codes() -> None:
    assert NoImageFoundError().get_codes() == "no_image_found"
    assert NoDataAtLocationError().get_codes() == "no_data_at_location"


def test_authentication_failure_stops_before_graph() -> None:
    backend = FakeBackend(
        [scene("S2_A", days_ago=3)],
        establish_error=AuthenticationError(details="invalid_grant"),
    )

    with pytest.raises(AuthenticationError):
        _sample(backend)

    assert backend.calls == ["establish"]


def test_resolve_tile_descriptor_returns_template_and_vis() -> None:
    backend = FakeBackend([scene("S2_A", days_ago=30)])

    descriptor = resolve_tile_descriptor(
        backend=backend, credentials=CREDENTIALS, now=NOW
    )

    assert descriptor.url_format == TILE_TEMPLATE
    assert descriptor.image_id == "S2_A"
    assert descriptor.vis == NDVI_VIS
    assert backend.vis == [NDVI_VIS]
    assert backend.calls == ["establish", "derive", "probe", "tile_template"]


def test_resolve_tile_descriptor_uses_service_area_over_90_days() -> None:
    backend = FakeBackend([scene("S2_A", days_ago=30)])

    resolve_tile_descriptor(backend=backend, credentials=CREDENTIALS, now=NOW)

    query = backend.queries[0]
    assert query.region == service_area_bbox()
    assert query.end - query.start == timedelta(days=90)


def test_resolve_tile_descriptor_without_image() -> None:
    backend = FakeBackend([scene("S2_A", days_ago=100)])

    with pytest.raises(NoImageFoundError):
        resolve_tile_descriptor(
            backend=backend, credentials=CREDENTIALS, now=NOW
        )

    assert "tile_template" not in backend.calls


def test_point_window_is_longer_than_tile_window() -> None:
    backend = FakeBackend([scene("S2_A", days_ago=100)])

    assert _sample(backend).image_id == "S2_A"


def test_ndvi_vis_palette() -> None:
    assert NDVI_VIS.min == -0.2
    assert NDVI_VIS.max == 0.8
    assert NDVI_VIS.palette == (
        "#E3A857",
        "#FCDD94",
        "#B6D97C",
        "#84C065",
        "#45A24B",
        "#117A37",
    )


def test_service_area_bbox_default() -> None:
    assert service_area_bbox() == BBox(
        south=Decimal("40.0"),
        west=Decimal("46.0"),
        north=Decimal("56.0"),
        east=Decimal("88.0"),
    )


def test_service_area_bbox_rejects_inverted_box(
    settings: SettingsWrapper,
) -> None:
    settings.NDVI_SERVICE_AREA_BBOX = (88.0, 40.0, 46.0, 56.0)
    with pytest.raises(ConfigurationError) as excinfo:
        service_area_bbox()
    assert "west < east" in str(excinfo.value.details)
    assert excinfo.value.get_codes() == "configuration_error"


@pytest.mark.parametrize(
    "raw",
    [
        (46.0, 40.0, 88.0),
        ("west", 40.0, 88.0, 56.0),
        (46.0, "nan", 88.0, 56.0),
    ],
)
def test_service_area_bbox_rejects_malformed_box(
    settings: SettingsWrapper, raw: tuple[object, ...]
) -> None:
    settings.NDVI_SERVICE_AREA_BBOX = raw
    with pytest.raises(ConfigurationError) as excinfo:
        service_area_bbox()
    assert excinfo.value.details == (
        "NDVI_SERVICE_AREA_BBOX must be four numbers."
    )


def test_queries_end_at_given_time() -> None:
    assert tile_query(NOW).end == NOW
    assert point_query(1.0, 2.0, NOW).region == GeoPoint(lat=1.0, lon=2.0)
