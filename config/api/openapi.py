"""Schema-only serializers describing the JSON envelopes.

`config.api.responses` and `config.api.exceptions.custom_exception_handler`
produce these shapes at runtime; nothing here is used to render responses.
"""

from __future__ import annotations

from drf_spectacular.utils import inline_serializer
from rest_framework import serializers
from rest_framework.serializers import Serializer


def _envelope(name: str, data: serializers.Field) -> Serializer:
    return inline_serializer(
        name=name,
        fields={
            "status": serializers.IntegerField(),
            "message": serializers.CharField(),
            "data": data,
            "errors": serializers.JSONField(allow_null=True),
        },
    )


def success_envelope_serializer(
    name: str,
    *,
    data: serializers.Field,
) -> Serializer:
    """`{"status": 0, "message", "data": <data>, "errors": null}`."""

    return _envelope(name, data)


def error_envelope_serializer(name: str) -> Serializer:
    """`{"status": 1, "message", "data": null, "errors": ...}`.

    `errors` holds field errors for validation failures and
    `{"code": <str>, "details": <str|null>}` for service failures.
    """

    return _envelope(name, serializers.JSONField(allow_null=True))
