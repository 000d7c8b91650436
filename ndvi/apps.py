from __future__ import annotations

from django.apps import AppConfig


class NdviConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "ndvi"
    verbose_name = "NDVI"

    def ready(self) -> None:
        from . import checks  # noqa: F401
