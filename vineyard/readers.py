"""ORM-backed source readers.

Each reader returns a `ReaderResult` of plain dictionaries and never raises:
database failures are reported through `ReaderResult.error` so callers can
degrade that source to empty.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import date
from functools import wraps
from typing import Any, ParamSpec

from django.db import DatabaseError
from django.db.models import F

from analytics.types import ReaderResult

from .models import (
    FieldYieldHistory,
    HarvestSample,
    InventoryTransaction,
    IrrigationEvent,
    LaborLog,
    SprayApplication,
    VineyardBlock,
)

logger = logging.getLogger(__name__)

P = ParamSpec("P")


def _reader(
    func: Callable[P, Iterable[Mapping[str, Any]]],
) -> Callable[P, ReaderResult]:
    @wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> ReaderResult:
        try:
            rows = [dict(row) for row in func(*args, **kwargs)]
        except DatabaseError as exc:
            logger.warning("reader.failed reader=%s err=%s", func.__name__, exc)
            return ReaderResult(data=[], error=str(exc))
        return ReaderResult(data=rows)

    return wrapper


@_reader
def list_vineyard_blocks(owner_id: int) -> Iterable[Mapping[str, Any]]:
    return (
        VineyardBlock.objects.filter(owner_id=owner_id, is_active=True)
        .order_by("name")
        .values("id", "name", "variety", "acres", "geom")
    )


@_reader
def list_labor_logs(
    owner_id: int, filters: Mapping[str, Any] | None = None
) -> Iterable[Mapping[str, Any]]:
    filters = filters or {}
    qs = LaborLog.objects.filter(owner_id=owner_id)
    start = filters.get("start_date")
    end = filters.get("end_date")
    if start:
        qs = qs.filter(log_date__gte=start)
    if end:
        qs = qs.filter(log_date__lte=end)
    return qs.order_by("-log_date").values(
        "id",
        "block_id",
        "log_date",
        "task_type",
        "hours_worked",
        "hourly_rate",
    )


@_reader
def list_inventory_transactions(
    owner_id: int,
    item_id: int | None = None,
    limit: int = 100,
    start_date: date | None = None,
    end_date: date | None = None,
) -> Iterable[Mapping[str, Any]]:
    qs = InventoryTransaction.objects.filter(owner_id=owner_id)
    if item_id:
        qs = qs.filter(item_id=item_id)
    if start_date:
        qs = qs.filter(transaction_date__gte=start_date)
    if end_date:
        qs = qs.filter(transaction_date__lte=end_date)
    return (
        qs.order_by("-transaction_date")
        .annotate(
            item_category=F("item__category"),
            item_unit_cost=F("item__unit_cost"),
        )
        .values(
            "id",
            "item_id",
            "transaction_type",
            "transaction_date",
            "quantity",
            "unit_cost",
            "item_category",
            "item_unit_cost",
        )[:limit]
    )


@_reader
def list_field_yield_history(
    owner_id: int, field_id: int | None = None, year: int | None = None
) -> Iterable[Mapping[str, Any]]:
    qs = FieldYieldHistory.objects.filter(owner_id=owner_id)
    if field_id:
        qs = qs.filter(block_id=field_id)
    if year:
        qs = qs.filter(harvest_year=year)
    return qs.order_by("-harvest_year", "-harvest_date").values(
        "id",
        "block_id",
        "harvest_year",
        "harvest_date",
        "tons_harvested",
        "price_per_ton",
        "brix",
        "ph",
        "ta",
    )


@_reader
def list_spray_applications(owner_id: int) -> Iterable[Mapping[str, Any]]:
    return (
        SprayApplication.objects.filter(owner_id=owner_id)
        .order_by("-application_date")
        .values("id", "block_id", "application_date", "product_name")
    )


@_reader
def list_harvest_samples(
    owner_id: int, field_id: int | None = None, year: int | None = None
) -> Iterable[Mapping[str, Any]]:
    qs = HarvestSample.objects.filter(owner_id=owner_id)
    if field_id:
        qs = qs.filter(block_id=field_id)
    if year:
        qs = qs.filter(
            sample_date__gte=date(year, 1, 1),
            sample_date__lte=date(year, 12, 31),
        )
    return qs.order_by("-sample_date").values(
        "id", "block_id", "sample_date", "brix", "ph", "ta"
    )


@_reader
def list_irrigation_events(owner_id: int) -> Iterable[Mapping[str, Any]]:
    return (
        IrrigationEvent.objects.filter(owner_id=owner_id)
        .order_by("-event_date")
        .values(
            "id",
            "block_id",
            "event_date",
            "duration_hours",
            "total_water_gallons",
        )
    )
