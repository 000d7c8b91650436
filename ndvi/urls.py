from __future__ import annotations

from django.urls import path

from .views import NdviPointValueView, NdviTileDescriptorView, NdviTileView

urlpatterns = [
    path(
        "ndvi/tiles/",
        NdviTileDescriptorView.as_view(),
        name="ndvi-tile-descriptor",
    ),
    path(
        "ndvi/tiles/<int:z>/<int:x>/<int:y>/",
        NdviTileView.as_view(),
        name="ndvi-tile",
    ),
    path(
        "ndvi/value/",
        NdviPointValueView.as_view(),
        name="ndvi-value",
    ),
]
