"""Bump an owner's source generation whenever a consumed record changes."""

from __future__ import annotations

from typing import Any

from django.db.models import Model
from django.db.models.signals import post_delete, post_save

from vineyard.models import (
    FieldYieldHistory,
    HarvestSample,
    InventoryItem,
    InventoryTransaction,
    IrrigationEvent,
    LaborLog,
    SprayApplication,
    VineyardBlock,
)

from .services import bump_source_generation

SOURCE_MODELS: tuple[type[Model], ...] = (
    VineyardBlock,
    LaborLog,
    InventoryItem,
    InventoryTransaction,
    SprayApplication,
    IrrigationEvent,
    HarvestSample,
    FieldYieldHistory,
)


def source_record_changed(sender: Any, instance: Any, **_: Any) -> None:
    bump_source_generation(instance.owner_id)


for _model in SOURCE_MODELS:
    post_save.connect(
        source_record_changed,
        sender=_model,
        dispatch_uid=f"analytics.source_saved.{_model.__name__}",
    )
    post_delete.connect(
        source_record_changed,
        sender=_model,
        dispatch_uid=f"analytics.source_deleted.{_model.__name__}",
    )
