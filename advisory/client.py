"""Chat-completions client used to generate recommendations."""

from __future__ import annotations

import logging
import time
from functools import lru_cache
from typing import Any, Final

import httpx
from django.conf import settings

from .exceptions import AdvisoryConfigurationError, RecommendationError
from .metrics import advisory_upstream_latency_seconds

logger = logging.getLogger(__name__)

MAX_TOKENS: Final[int] = 1024
TEMPERATURE: Final[float] = 0.2


def _response_snippet(response: httpx.Response, limit: int = 500) -> str:
    text = response.text
    if len(text) > limit:
        return text[:limit] + "..."
    return text


class ChatCompletionClient:
    """Single-shot OpenAI-compatible chat completion. No retries."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or getattr(settings, "OPENAI_API_KEY", "")
        if not self.api_key:
            logger.error("advisory.client.missing_api_key")
            raise AdvisoryConfigurationError()

        base = base_url or getattr(
            settings, "OPENAI_BASE_URL", "https://api.openai.com/v1"
        )
        self.completions_url = f"{base.rstrip('/')}/chat/completions"
        self.model = model or getattr(settings, "OPENAI_MODEL", "gpt-5-mini")
        self.timeout_seconds = timeout_seconds or float(
            getattr(settings, "OPENAI_TIMEOUT_SECONDS", 60)
        )
        self._http = httpx.Client(
            timeout=self.timeout_seconds, transport=transport
        )

    def build_payload(self, prompt: str) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": MAX_TOKENS,
            "temperature": TEMPERATURE,
        }

    def complete(self, prompt: str) -> str:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        start = time.monotonic()
        try:
            response = self._http.post(
                self.completions_url,
                json=self.build_payload(prompt),
                headers=headers,
            )
        except httpx.HTTPError as exc:
            raise RecommendationError(
                details=f"Request to OpenAI API failed: {exc}"
            ) from exc
        finally:
            advisory_upstream_latency_seconds.observe(
                time.monotonic() - start
            )

        if not response.is_success:
            logger.warning(
                "advisory.client.upstream_error status=%s",
                response.status_code,
            )
            raise RecommendationError(
                details=(
                    "OpenAI API request failed with status "
                    f"{response.status_code}: {_response_snippet(response)}"
                )
            )

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise RecommendationError(
                details="Failed to parse OpenAI response."
            ) from exc
        if not isinstance(content, str):
            raise RecommendationError(
                details="Failed to parse OpenAI response."
            )
        return content.strip()


@lru_cache(maxsize=1)
def get_chat_client() -> ChatCompletionClient:
    return ChatCompletionClient()
