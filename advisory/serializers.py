from __future__ import annotations

from typing import Any

from rest_framework import serializers

REQUIRED_FIELDS = ("lat", "lon", "ndvi", "weatherData")
MISSING_FIELDS_MESSAGE = (
    "Missing required data: lat, lon, ndvi, and weatherData are required."
)


class RecommendationRequestSerializer(serializers.Serializer):
    lat = serializers.FloatField(min_value=-90, max_value=90)
    lon = serializers.FloatField(min_value=-180, max_value=180)
    ndvi = serializers.FloatField(min_value=-1, max_value=1)
    weatherData = serializers.JSONField()
    lang = serializers.CharField(
        required=False, allow_blank=True, max_length=8, default="ru"
    )

    def validate_weatherData(self, value: Any) -> dict[str, Any]:
        if not isinstance(value, dict):
            raise serializers.ValidationError(
                "weatherData must be a JSON object."
            )
        for block in ("current", "daily"):
            if not isinstance(value.get(block), dict):
                raise serializers.ValidationError(
                    f"weatherData.{block} must be a JSON object."
                )
        return value

    def missing_fields(self) -> list[str]:
        """Required fields reported as absent or null after validation."""

        missing = []
        for name in REQUIRED_FIELDS:
            for error in self.errors.get(name, []):
                if getattr(error, "code", None) in {"required", "null"}:
                    missing.append(name)
                    break
        return missing


class RecommendationSerializer(serializers.Serializer):
    recommendation = serializers.CharField()
