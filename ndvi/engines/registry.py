from __future__ import annotations

from functools import lru_cache

from django.conf import settings
from django.utils.module_loading import import_string

from .base import NdviBackend


@lru_cache(maxsize=1)
def get_backend() -> NdviBackend:
    """Return the configured NDVI backend instance."""

    backend_path = getattr(
        settings,
        "NDVI_BACKEND_PATH",
        "ndvi.engines.earthengine.EarthEngineBackend",
    )
    backend_cls: type[NdviBackend] = import_string(backend_path)
    return backend_cls()
