from __future__ import annotations

from django.apps import AppConfig


class AnalyticsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "analytics"
    verbose_name = "Vineyard analytics"

    def ready(self) -> None:
        # Track record changes for the source reload check.
        from . import signals  # noqa: F401
