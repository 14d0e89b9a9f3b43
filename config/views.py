"""Project-level non-DRF views.

The root landing endpoint answers quick service checks and points at the
interactive API documentation.
"""

from __future__ import annotations

from django.http import HttpRequest, JsonResponse


def home(request: HttpRequest) -> JsonResponse:
    """Return basic service metadata and documentation links."""
    return JsonResponse(
        {
            "ok": True,
            "service": "vineyard-analytics",
            "docs": "/api/docs/",
            "redoc": "/api/redoc/",
            "endpoints": {
                "analytics": "/api/v1/analytics/",
                "vegetation_index": "/api/v1/ndvi/vegetation-index/",
            },
        }
    )
