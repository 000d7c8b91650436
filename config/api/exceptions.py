from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeAlias

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response

JSONValue: TypeAlias = (
    None
    | bool
    | int
    | float
    | str
    | list["JSONValue"]
    | dict[str, "JSONValue"]
)


class ServiceError(APIException):
    """Server-side failure carrying a stable code and optional details."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Service failure."
    default_code = "service_error"

    def __init__(
        self,
        detail: str | None = None,
        *,
        details: str | None = None,
    ) -> None:
        super().__init__(detail=detail)
        self.details = details


def _to_json_value(value: object) -> JSONValue:
    if value is None or isinstance(value, str | int | float | bool):
        return value
    if isinstance(value, Mapping):
        return {str(k): _to_json_value(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_to_json_value(v) for v in value]
    return str(value)


def custom_exception_handler(
    exc: Exception,
    context: dict[str, Any],
) -> Response:
    from rest_framework.views import exception_handler as drf_exception_handler

    response = drf_exception_handler(exc, context)

    if response is None:
        return Response(
            {
                "status": 1,
                "message": "Internal server error",
                "data": None,
                "errors": None,
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, ServiceError):
        response.data = {
            "status": 1,
            "message": str(exc.detail),
            "data": None,
            "errors": {
                "code": _to_json_value(exc.get_codes()),
                "details": exc.details,
            },
        }
        return response

    detail = _to_json_value(response.data)
    message = "Request failed"
    if isinstance(detail, dict):
        maybe = detail.get("detail")
        if isinstance(maybe, str):
            message = maybe

    response.data = {
        "status": 1,
        "message": message,
        "data": None,
        "errors": detail,
    }
    return response
