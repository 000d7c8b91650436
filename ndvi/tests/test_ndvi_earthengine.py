from __future__ import annotations

# ruff: noqa: S101
from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock, call

import pytest

from ndvi.engines.base import (
    BBox,
    DerivedImage,
    GeoPoint,
    ImageQuery,
    VisParams,
)
from ndvi.engines.earthengine import EarthEngineBackend, region_geometry
from ndvi.exceptions import (
    AuthenticationError,
    EvaluationError,
    TileTemplateError,
)

from .fakes import CREDENTIALS, NOW, TILE_TEMPLATE


@pytest.fixture
def fake_ee(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    module = MagicMock(name="ee")
    monkeypatch.setattr("ndvi.engines.earthengine.ee", module)
    return module


def _point_query() -> ImageQuery:
    return ImageQuery(
        region=GeoPoint(lat=51.1, lon=71.4),
        start=NOW - timedelta(days=120),
        end=NOW,
    )


def _image() -> DerivedImage:
    return DerivedImage(
        query=_point_query(), collection=MagicMock(), ndvi=MagicMock()
    )


def test_establish_initializes_with_service_account(
    fake_ee: MagicMock,
) -> None:
    handle = EarthEngineBackend().establish(CREDENTIALS)

    fake_ee.ServiceAccountCredentials.assert_called_once_with(
        CREDENTIALS.client_email, key_data=CREDENTIALS.key_data
    )
    fake_ee.Initialize.assert_called_once_with(
        fake_ee.ServiceAccountCredentials.return_value, project="demo"
    )
    assert handle.project_id == "demo"


def test_establish_failure_is_authentication_error(
    fake_ee: MagicMock,
) -> None:
    fake_ee.Initialize.side_effect = RuntimeError("invalid_grant")

    with pytest.raises(AuthenticationError) as excinfo:
        EarthEngineBackend().establish(CREDENTIALS)

    assert excinfo.value.details == "invalid_grant"
    assert excinfo.value.get_codes() == "authentication_failed"


def test_region_geometry_point_uses_lon_lat_order(fake_ee: MagicMock) -> None:
    region_geometry(GeoPoint(lat=51.1, lon=71.4))
    fake_ee.Geometry.Point.assert_called_once_with([71.4, 51.1])


def test_region_geometry_bbox_uses_west_south_east_north(
    fake_ee: MagicMock,
) -> None:
    region_geometry(
        BBox(
            south=Decimal("40"),
            west=Decimal("46"),
            north=Decimal("56"),
            east=Decimal("88"),
        )
    )
    fake_ee.Geometry.Rectangle.assert_called_once_with(
        [46.0, 40.0, 88.0, 56.0]
    )


def test_derive_composes_graph_without_evaluating(fake_ee: MagicMock) -> None:
    query = _point_query()

    image = EarthEngineBackend().derive(query)

    fake_ee.ImageCollection.assert_called_once_with(
        "COPERNICUS/S2_SR_HARMONIZED"
    )
    bounded = fake_ee.ImageCollection.return_value.filterBounds
    bounded.assert_called_once_with(fake_ee.Geometry.Point.return_value)
    dated = bounded.return_value.filterDate
    assert dated.call_count == 1
    fake_ee.Filter.lt.assert_called_once_with("CLOUDY_PIXEL_PERCENTAGE", 20)
    clouded = dated.return_value.filter
    clouded.assert_called_once_with(fake_ee.Filter.lt.return_value)
    ordered = clouded.return_value.sort
    ordered.assert_called_once_with("system:time_start", False)
    assert image.collection is ordered.return_value

    ordered.return_value.map.assert_called_once_with(
        EarthEngineBackend.mask_clouds
    )
    composite = fake_ee.Image.return_value
    composite.normalizedDifference.assert_called_once_with(["B8", "B4"])
    composite.normalizedDifference.return_value.rename.assert_called_once_with(
        "NDVI"
    )
    assert image.query is query
    assert not image.collection.getInfo.called
    assert not image.ndvi.getMapId.called


def test_derive_uses_millisecond_dates(fake_ee: MagicMock) -> None:
    query = _point_query()
    EarthEngineBackend().derive(query)
    assert fake_ee.Date.call_args_list == [
        call(int(query.start.timestamp() * 1000)),
        call(int(query.end.timestamp() * 1000)),
    ]


def test_mask_clouds_checks_both_bits_and_scales() -> None:
    image = MagicMock()
    qa = image.select.return_value

    EarthEngineBackend.mask_clouds(image)

    image.select.assert_called_once_with("QA60")
    assert qa.bitwiseAnd.call_args_list == [call(1024), call(2048)]
    image.updateMask.return_value.divide.assert_called_once_with(10000)


def test_probe_returns_first_index() -> None:
    image = _image()
    ids = image.collection.limit.return_value.aggregate_array.return_value
    ids.getInfo.return_value = ["20250528T063631_20250528T064254_T42UXE"]

    result = EarthEngineBackend().probe(image)

    image.collection.limit.assert_called_once_with(1)
    image.collection.limit.return_value.aggregate_array.assert_called_once_with(
        "system:index"
    )
    assert result == "20250528T063631_20250528T064254_T42UXE"


def test_probe_empty_collection_returns_none() -> None:
    image = _image()
    ids = image.collection.limit.return_value.aggregate_array.return_value
    ids.getInfo.return_value = []
    assert EarthEngineBackend().probe(image) is None


def test_probe_failure_is_evaluation_error() -> None:
    image = _image()
    ids = image.collection.limit.return_value.aggregate_array.return_value
    ids.getInfo.side_effect = RuntimeError("quota exceeded")

    with pytest.raises(EvaluationError) as excinfo:
        EarthEngineBackend().probe(image)

    assert excinfo.value.details == "quota exceeded"


def test_tile_template_reads_url_format() -> None:
    image = _image()
    image.ndvi.getMapId.return_value = {
        "tile_fetcher": SimpleNamespace(url_format=TILE_TEMPLATE)
    }
    vis = VisParams(min=-0.2, max=0.8, palette=("#E3A857", "#117A37"))

    assert EarthEngineBackend().tile_template(image, vis) == TILE_TEMPLATE
    image.ndvi.getMapId.assert_called_once_with(vis.as_dict())


def test_tile_template_missing_fetcher() -> None:
    image = _image()
    image.ndvi.getMapId.return_value = {"mapid": "abc"}
    vis = VisParams(min=0, max=1, palette=())

    with pytest.raises(TileTemplateError):
        EarthEngineBackend().tile_template(image, vis)


def test_tile_template_failure_has_own_code() -> None:
    image = _image()
    image.ndvi.getMapId.side_effect = RuntimeError("Image.normalizedDifference")
    vis = VisParams(min=0, max=1, palette=())

    with pytest.raises(TileTemplateError) as excinfo:
        EarthEngineBackend().tile_template(image, vis)

    assert excinfo.value.get_codes() == "tile_template_failed"


def test_reduce_point_uses_first_reducer_at_scale(fake_ee: MagicMock) -> None:
    image = _image()
    reduced = image.ndvi.reduceRegion.return_value
    reduced.get.return_value.getInfo.return_value = 0.6123

    value = EarthEngineBackend().reduce_point(
        image, GeoPoint(lat=51.1, lon=71.4), 10
    )

    assert value == pytest.approx(0.6123)
    image.ndvi.reduceRegion.assert_called_once_with(
        reducer=fake_ee.Reducer.first.return_value,
        geometry=fake_ee.Geometry.Point.return_value,
        scale=10,
    )
    reduced.get.assert_called_once_with("NDVI")


def test_reduce_point_masked_pixel_returns_none(fake_ee: MagicMock) -> None:
    image = _image()
    reduced = image.ndvi.reduceRegion.return_value
    reduced.get.return_value.getInfo.return_value = None

    assert (
        EarthEngineBackend().reduce_point(
            image, GeoPoint(lat=51.1, lon=71.4), 10
        )
        is None
    )


def test_reduce_point_non_numeric_is_evaluation_error(
    fake_ee: MagicMock,
) -> None:
    image = _image()
    reduced = image.ndvi.reduceRegion.return_value
    reduced.get.return_value.getInfo.return_value = {"NDVI": "x"}

    with pytest.raises(EvaluationError):
        EarthEngineBackend().reduce_point(
            image, GeoPoint(lat=51.1, lon=71.4), 10
        )
