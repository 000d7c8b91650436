from __future__ import annotations

import math
from typing import Any

from rest_framework import serializers

from .services import DEFAULT_TILE_MODE, TILE_MODES


class PointValueRequestSerializer(serializers.Serializer):
    lat = serializers.FloatField(min_value=-90.0, max_value=90.0)
    lon = serializers.FloatField(min_value=-180.0, max_value=180.0)

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        for name in ("lat", "lon"):
            if math.isnan(attrs[name]):
                raise serializers.ValidationError(
                    {name: ["A valid number is required."]}
                )
        return attrs


class TileRequestSerializer(serializers.Serializer):
    mode = serializers.ChoiceField(
        choices=TILE_MODES, required=False, default=DEFAULT_TILE_MODE
    )


class PointSampleSerializer(serializers.Serializer):
    lat = serializers.FloatField()
    lon = serializers.FloatField()
    ndvi = serializers.FloatField()
    image_id = serializers.CharField()


class TileDescriptorSerializer(serializers.Serializer):
    url_format = serializers.CharField()
    min = serializers.FloatField(source="vis.min")
    max = serializers.FloatField(source="vis.max")
    palette = serializers.ListField(
        child=serializers.CharField(), source="vis.palette"
    )
    image_id = serializers.CharField()
