from __future__ import annotations

from django.urls import path

from .views import (
    VegetationIndexRefreshView,
    VegetationIndexRunStatusView,
    VegetationIndexView,
)

urlpatterns = [
    path(
        "ndvi/vegetation-index/",
        VegetationIndexView.as_view(),
        name="ndvi-vegetation-index",
    ),
    path(
        "ndvi/vegetation-index/refresh/",
        VegetationIndexRefreshView.as_view(),
        name="ndvi-vegetation-index-refresh",
    ),
    path(
        "ndvi/runs/<int:run_id>/",
        VegetationIndexRunStatusView.as_view(),
        name="ndvi-run",
    ),
]
