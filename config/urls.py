"""Root URL configuration.

Routes:
- GET / -> home
- /admin/ -> Django admin
- /metrics -> Prometheus exposition (django_prometheus)
- /api/schema/, /api/docs/, /api/redoc/ -> OpenAPI
- /api/v1/blocks/ -> vineyard.urls
- /api/v1/analytics/ -> analytics.urls
- /api/v1/ndvi/ -> ndvi.urls
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularRedocView,
    SpectacularSwaggerView,
)
from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
)

from .views import home

urlpatterns = [
    path("admin/", admin.site.urls),
    path("", home, name="home"),
    path("", include("django_prometheus.urls")),
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path(
        "api/docs/",
        SpectacularSwaggerView.as_view(url_name="schema"),
        name="swagger-ui",
    ),
    path(
        "api/redoc/",
        SpectacularRedocView.as_view(url_name="schema"),
        name="redoc",
    ),
    path(
        "api/v1/auth/token/",
        TokenObtainPairView.as_view(),
        name="token_obtain_pair",
    ),
    path(
        "api/v1/auth/token/refresh/",
        TokenRefreshView.as_view(),
        name="token_refresh",
    ),
    path("api/v1/", include("vineyard.urls")),
    path("api/v1/", include("analytics.urls")),
    path("api/v1/", include("ndvi.urls")),
]
