"""NDVI API endpoints.

Authentication: none (public map and advisory UI).
JSON responses use `config.api.responses.success_response` with the
standard envelope:

    {"status": 0, "message": "<str>", "data": <object|null>, "errors": null}

Tile requests answer with a redirect or the proxied upstream tile instead.
"""

from __future__ import annotations

import logging

from django.http import (
    HttpResponseBase,
    HttpResponseRedirect,
    StreamingHttpResponse,
)
from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    OpenApiTypes,
    extend_schema,
)
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from config.api.openapi import (
    error_envelope_serializer,
    success_envelope_serializer,
)
from config.api.responses import success_response

from .credentials import get_credentials
from .engines.registry import get_backend
from .serializers import (
    PointSampleSerializer,
    PointValueRequestSerializer,
    TileDescriptorSerializer,
    TileRequestSerializer,
)
from .services import resolve_tile_descriptor, sample_point
from .tiles import fill_tile_url, get_tile_proxy

logger = logging.getLogger(__name__)

ndvi_error_response = error_envelope_serializer("NdviErrorResponse")

tile_descriptor_success_response = success_envelope_serializer(
    "NdviTileDescriptorSuccess", data=TileDescriptorSerializer()
)

point_success_response = success_envelope_serializer(
    "NdviPointValueSuccess", data=PointSampleSerializer()
)

point_query_params = [
    OpenApiParameter(
        name="lat",
        type=OpenApiTypes.FLOAT,
        location=OpenApiParameter.QUERY,
        required=True,
    ),
    OpenApiParameter(
        name="lon",
        type=OpenApiTypes.FLOAT,
        location=OpenApiParameter.QUERY,
        required=True,
    ),
]

tile_query_params = [
    OpenApiParameter(
        name="mode",
        type=OpenApiTypes.STR,
        location=OpenApiParameter.QUERY,
        required=False,
        description="redirect (default) or proxy",
    ),
]


class NdviTileDescriptorView(APIView):
    """Return the tile URL template and visualization for the NDVI layer."""

    permission_classes = [AllowAny]

    @extend_schema(
        responses={
            200: tile_descriptor_success_response,
            500: ndvi_error_response,
        },
    )
    def get(self, request: Request) -> Response:
        descriptor = resolve_tile_descriptor(
            backend=get_backend(), credentials=get_credentials()
        )
        return success_response(
            TileDescriptorSerializer(descriptor).data,
            message="NDVI tile descriptor",
        )


class NdviTileView(APIView):
    """Serve one NDVI map tile.

    Redirect mode answers 302 to the upstream tile URL. Proxy mode fetches
    the tile server-side and streams the upstream status, headers and body
    back unchanged, forwarding the caller's User-Agent.
    """

    permission_classes = [AllowAny]

    @extend_schema(
        parameters=tile_query_params,
        responses={
            (200, "image/png"): OpenApiResponse(
                response=OpenApiTypes.BINARY,
                description="Proxied upstream tile",
            ),
            302: OpenApiResponse(description="Redirect to the tile URL"),
            400: ndvi_error_response,
            500: ndvi_error_response,
        },
    )
    def get(
        self, request: Request, z: int, x: int, y: int
    ) -> HttpResponseBase:
        serializer = TileRequestSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        mode = serializer.validated_data["mode"]

        descriptor = resolve_tile_descriptor(
            backend=get_backend(), credentials=get_credentials()
        )
        url = fill_tile_url(descriptor.url_format, z=z, x=x, y=y)

        if mode == "redirect":
            return HttpResponseRedirect(url)

        upstream = get_tile_proxy().open(
            url, user_agent=request.META.get("HTTP_USER_AGENT")
        )
        logger.debug(
            "ndvi.tile.proxy z=%s x=%s y=%s status=%s",
            z,
            x,
            y,
            upstream.status_code,
        )
        return StreamingHttpResponse(
            upstream,
            status=upstream.status_code,
            headers=upstream.headers,
        )


class NdviPointValueView(APIView):
    """Sample NDVI at a single coordinate."""

    permission_classes = [AllowAny]

    @extend_schema(
        parameters=point_query_params,
        responses={
            200: point_success_response,
            400: ndvi_error_response,
            500: ndvi_error_response,
        },
    )
    def get(self, request: Request) -> Response:
        """Return the NDVI value at lat/lon.

        Coordinates are validated before any Earth Engine work. An empty
        time window and a masked pixel fail with distinct error codes.
        """

        serializer = PointValueRequestSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        params = serializer.validated_data

        sample = sample_point(
            backend=get_backend(),
            credentials=get_credentials(),
            lat=float(params["lat"]),
            lon=float(params["lon"]),
        )
        return success_response(
            PointSampleSerializer(sample).data, message="NDVI value"
        )
