"""Tile URL templating and streaming tile proxy."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Final

import httpx
from django.conf import settings

from .exceptions import ProxyIOError, TileTemplateError
from .metrics import ndvi_tile_proxy_requests_total

logger = logging.getLogger(__name__)

TILE_PLACEHOLDERS: Final[tuple[str, ...]] = ("{z}", "{x}", "{y}")

# Not forwarded to the client; WSGI servers reject them.
HOP_BY_HOP_HEADERS: Final[frozenset[str]] = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "trailers",
        "transfer-encoding",
        "upgrade",
    }
)

DEFAULT_TIMEOUT: Final[float] = float(
    getattr(settings, "NDVI_REQUEST_TIMEOUT_SECONDS", 20)
)


def fill_tile_url(template: str, *, z: int, x: int, y: int) -> str:
    """Substitute zoom/x/y into a tile template, each exactly once."""

    for placeholder in TILE_PLACEHOLDERS:
        count = template.count(placeholder)
        if count != 1:
            raise TileTemplateError(
                details=(
                    f"Tile URL template must contain {placeholder} exactly "
                    f"once, found {count}."
                )
            )
    return (
        template.replace("{z}", str(z), 1)
        .replace("{x}", str(x), 1)
        .replace("{y}", str(y), 1)
    )


@dataclass
class UpstreamTile:
    """An open upstream tile response whose body has not been read yet."""

    status_code: int
    headers: dict[str, str]
    response: httpx.Response = field(repr=False)

    def __iter__(self) -> Iterator[bytes]:
        return self.iter_body()

    def close(self) -> None:
        """Release the upstream connection, read or not."""

        self.response.close()

    def iter_body(self) -> Iterator[bytes]:
        """Yield raw upstream bytes as they arrive, then close the stream."""

        try:
            for chunk in self.response.iter_raw():
                if chunk:
                    yield chunk
        except httpx.HTTPError as exc:
            ndvi_tile_proxy_requests_total.labels(outcome="stream_error").inc()
            logger.error(
                "ndvi.tile.proxy.stream_failed url=%s error=%s",
                self.response.request.url,
                exc,
            )
            raise ProxyIOError(details=str(exc)) from exc
        finally:
            self.response.close()


class TileProxy:
    """Fetch tiles server-side and hand back a streaming upstream response."""

    def __init__(
        self,
        *,
        timeout_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds or DEFAULT_TIMEOUT
        self._http = httpx.Client(
            timeout=self.timeout_seconds,
            transport=transport,
            follow_redirects=False,
        )

    def open(self, url: str, *, user_agent: str | None) -> UpstreamTile:
        headers: dict[str, str] = {}
        if user_agent:
            headers["User-Agent"] = user_agent
        request = self._http.build_request("GET", url, headers=headers)
        try:
            response = self._http.send(request, stream=True)
        except httpx.HTTPError as exc:
            ndvi_tile_proxy_requests_total.labels(outcome="network").inc()
            logger.error("ndvi.tile.proxy.failed url=%s error=%s", url, exc)
            raise ProxyIOError(details=str(exc)) from exc

        ndvi_tile_proxy_requests_total.labels(
            outcome=str(response.status_code)
        ).inc()
        forwarded = {
            name: value
            for name, value in response.headers.items()
            if name.lower() not in HOP_BY_HOP_HEADERS
        }
        return UpstreamTile(
            status_code=response.status_code,
            headers=forwarded,
            response=response,
        )


@lru_cache(maxsize=1)
def get_tile_proxy() -> TileProxy:
    return TileProxy()
