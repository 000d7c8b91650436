"""System checks run by `manage.py check` and at server startup."""

from __future__ import annotations

from typing import Any

from django.core.checks import CheckMessage, Error, register

from .credentials import CredentialsConfigError, load_credentials
from .exceptions import ConfigurationError
from .services import service_area_bbox


@register("ndvi")
def check_earth_engine_credentials(
    app_configs: Any = None, **kwargs: Any
) -> list[CheckMessage]:
    try:
        load_credentials()
    except CredentialsConfigError as exc:
        return [
            Error(
                f"{exc.details} ({exc.code})",
                hint="Set GEE_PRIVATE_KEY_JSON and GEE_PROJECT_ID.",
                id="ndvi.E001",
            )
        ]
    return []


@register("ndvi")
def check_service_area(
    app_configs: Any = None, **kwargs: Any
) -> list[CheckMessage]:
    try:
        service_area_bbox()
    except ConfigurationError as exc:
        return [
            Error(
                str(exc.details),
                hint="Set NDVI_SERVICE_AREA_BBOX to west,south,east,north.",
                id="ndvi.E002",
            )
        ]
    return []
