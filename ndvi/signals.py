"""Queue an NDVI run whenever an owner's set of mapped blocks changes."""

from __future__ import annotations

import logging
from typing import Any

from django.conf import settings
from django.db import transaction
from django.db.models.signals import post_delete, post_save, pre_save
from django.dispatch import receiver
from django.utils import timezone

from vineyard.models import VineyardBlock

from .services import enqueue_run, is_sentinel_hub_configured
from .tasks import run_vegetation_index_task

logger = logging.getLogger(__name__)

_FIELD_SET_ATTRS = ("geom", "is_active")


def _enabled() -> bool:
    if not getattr(settings, "NDVI_AUTO_REFRESH", True):
        return False
    return is_sentinel_hub_configured()


def _schedule(owner_id: int) -> None:
    if not _enabled():
        return

    def _dispatch() -> None:
        run, created = enqueue_run(owner_id, timezone.localdate().year)
        if created:
            run_vegetation_index_task.delay(run.id)

    transaction.on_commit(_dispatch)


@receiver(pre_save, sender=VineyardBlock)
def remember_field_set(sender: Any, instance: VineyardBlock, **_: Any) -> None:
    if not _enabled():
        return
    if instance.pk is None:
        instance._ndvi_field_set_changed = True  # type: ignore[attr-defined]
        return
    previous = (
        VineyardBlock.objects.filter(pk=instance.pk)
        .values(*_FIELD_SET_ATTRS)
        .first()
    )
    changed = previous is None or any(
        previous[attr] != getattr(instance, attr) for attr in _FIELD_SET_ATTRS
    )
    instance._ndvi_field_set_changed = changed  # type: ignore[attr-defined]


@receiver(post_save, sender=VineyardBlock)
def block_saved(sender: Any, instance: VineyardBlock, **_: Any) -> None:
    if getattr(instance, "_ndvi_field_set_changed", False):
        logger.info(
            "ndvi.field_set.changed owner_id=%s block_id=%s",
            instance.owner_id,
            instance.pk,
        )
        _schedule(instance.owner_id)


@receiver(post_delete, sender=VineyardBlock)
def block_deleted(sender: Any, instance: VineyardBlock, **_: Any) -> None:
    _schedule(instance.owner_id)
