from __future__ import annotations

from django.apps import AppConfig


class VineyardConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "vineyard"
    verbose_name = "Vineyard blocks and operational records"
