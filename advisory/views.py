"""Agronomic recommendation endpoint.

Called cross-origin by the map UI, so every response (errors included)
carries the CORS headers below and `OPTIONS` answers the pre-flight.
"""

from __future__ import annotations

import logging
from typing import Any

from django.conf import settings
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from config.api.openapi import (
    error_envelope_serializer,
    success_envelope_serializer,
)
from config.api.responses import (
    empty_response,
    error_response,
    success_response,
)

from .client import get_chat_client
from .exceptions import RecommendationError
from .metrics import advisory_recommendations_total
from .prompts import create_prompt_for_agronomist
from .serializers import (
    MISSING_FIELDS_MESSAGE,
    RecommendationRequestSerializer,
    RecommendationSerializer,
)

logger = logging.getLogger(__name__)

advisory_error_response = error_envelope_serializer("AdvisoryErrorResponse")
recommendation_success_response = success_envelope_serializer(
    "RecommendationSuccess", data=RecommendationSerializer()
)


def cors_headers() -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": getattr(
            settings, "ADVISORY_CORS_ALLOW_ORIGIN", "*"
        ),
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }


class RecommendationView(APIView):
    permission_classes = [AllowAny]

    def finalize_response(
        self,
        request: Request,
        response: Any,
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        response = super().finalize_response(
            request, response, *args, **kwargs
        )
        for header, value in cors_headers().items():
            response[header] = value
        return response

    @extend_schema(exclude=True)
    def options(self, request: Request, *args: Any, **kwargs: Any) -> Response:
        return empty_response()

    @extend_schema(
        request=RecommendationRequestSerializer,
        responses={
            200: recommendation_success_response,
            400: OpenApiResponse(response=advisory_error_response),
            500: OpenApiResponse(response=advisory_error_response),
        },
        description=(
            "Generate wheat-growing recommendations for a field from its "
            "coordinates, current NDVI and a 16-day weather forecast."
        ),
    )
    def post(self, request: Request) -> Response:
        serializer = RecommendationRequestSerializer(data=request.data)
        if not serializer.is_valid():
            missing = serializer.missing_fields()
            advisory_recommendations_total.labels(outcome="invalid").inc()
            return error_response(
                MISSING_FIELDS_MESSAGE if missing else "Invalid request.",
                errors=serializer.errors,
                status_code=status.HTTP_400_BAD_REQUEST,
            )

        data = serializer.validated_data
        client = get_chat_client()
        prompt = create_prompt_for_agronomist(
            lat=data["lat"],
            lon=data["lon"],
            ndvi=data["ndvi"],
            weather=data["weatherData"],
            lang=data.get("lang"),
        )
        try:
            text = client.complete(prompt)
        except RecommendationError as exc:
            advisory_recommendations_total.labels(outcome="error").inc()
            logger.error(
                "advisory.recommendation.failed details=%s", exc.details
            )
            raise

        advisory_recommendations_total.labels(outcome="success").inc()
        logger.info(
            "advisory.recommendation.generated lat=%s lon=%s lang=%s",
            data["lat"],
            data["lon"],
            data.get("lang"),
        )
        return success_response({"recommendation": text})
