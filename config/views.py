"""Landing endpoint with links to the public API surface."""

from __future__ import annotations

from django.http import HttpRequest, JsonResponse

PUBLIC_ENDPOINTS = {
    "tiles": "/api/v1/ndvi/tiles/",
    "tile": "/api/v1/ndvi/tiles/{z}/{x}/{y}/",
    "value": "/api/v1/ndvi/value/",
    "recommendations": "/api/v1/advisory/recommendations/",
    "metrics": "/metrics",
}


def home(request: HttpRequest) -> JsonResponse:
    return JsonResponse(
        {
            "ok": True,
            "service": "ndvi-tiles",
            "endpoints": PUBLIC_ENDPOINTS,
            "docs": "/api/docs/",
            "redoc": "/api/redoc/",
        }
    )
