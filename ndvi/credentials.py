"""Earth Engine service-account credentials loader.

Loads GEE_PRIVATE_KEY_JSON / GEE_PROJECT_ID once per process and hands out
the same immutable value to every request.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache

from django.conf import settings

from .exceptions import ConfigurationError


@dataclass(frozen=True)
class Credentials:
    client_email: str
    key_data: str
    project_id: str

    def __repr__(self) -> str:
        return (
            f"Credentials(client_email={self.client_email}, "
            f"project_id={self.project_id})"
        )


class CredentialsConfigError(ConfigurationError):
    """Raised when Earth Engine credentials are missing or invalid."""

    def __init__(self, message: str, *, code: str) -> None:
        super().__init__(
            "Server configuration error: Earth Engine credentials.",
            details=message,
        )
        self.code = code


def load_credentials() -> Credentials:
    """Return validated credentials read from settings."""

    raw = getattr(settings, "GEE_PRIVATE_KEY_JSON", "")
    if not isinstance(raw, str):
        raise CredentialsConfigError(
            "GEE_PRIVATE_KEY_JSON must be a string.", code="bad_json"
        )
    raw = raw.strip()
    if not raw:
        raise CredentialsConfigError(
            "GEE_PRIVATE_KEY_JSON is required.", code="missing_config"
        )

    try:
        key = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise CredentialsConfigError(
            "GEE_PRIVATE_KEY_JSON must be valid JSON.", code="bad_json"
        ) from exc
    if not isinstance(key, dict):
        raise CredentialsConfigError(
            "GEE_PRIVATE_KEY_JSON must be a JSON object.", code="bad_json"
        )

    client_email = key.get("client_email")
    private_key = key.get("private_key")
    if not isinstance(client_email, str) or not client_email.strip():
        raise CredentialsConfigError(
            "GEE_PRIVATE_KEY_JSON is missing client_email.",
            code="bad_key",
        )
    if not isinstance(private_key, str) or not private_key.strip():
        raise CredentialsConfigError(
            "GEE_PRIVATE_KEY_JSON is missing private_key.",
            code="bad_key",
        )

    project_id = str(getattr(settings, "GEE_PROJECT_ID", "") or "").strip()
    if not project_id:
        project_id = str(key.get("project_id") or "").strip()
    if not project_id:
        raise CredentialsConfigError(
            "GEE_PROJECT_ID is required.", code="missing_config"
        )

    return Credentials(
        client_email=client_email.strip(),
        key_data=raw,
        project_id=project_id,
    )


@lru_cache(maxsize=1)
def get_credentials() -> Credentials:
    """Load credentials on first use and reuse them for the process."""

    return load_credentials()
