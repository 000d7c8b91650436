from __future__ import annotations

from django.urls import path

from .views import RecommendationView

urlpatterns = [
    path(
        "advisory/recommendations/",
        RecommendationView.as_view(),
        name="advisory-recommendations",
    ),
]
