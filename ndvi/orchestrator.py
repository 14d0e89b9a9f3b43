"""Concurrent NDVI fan-out over a field x growing-season-month matrix.

Every (field, month) pair is an independent query. A failed query turns into
a gap for that month only; nothing raised by one query reaches the others or
the caller.
"""

from __future__ import annotations

import asyncio
import calendar
import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from datetime import date
from typing import Any, Final

from django.conf import settings
from django.utils import timezone

from vineyard.geometry import has_valid_polygon

from .engines.base import NdviStats, NdviUnavailable
from .metrics import ndvi_orchestrator_requests_total

logger = logging.getLogger(__name__)

GROWING_SEASON_MONTHS: Final[tuple[int, ...]] = (4, 5, 6, 7, 8, 9, 10)

Field = Mapping[str, Any]
MonthlyNdvi = dict[str, Any]
FetchNdvi = Callable[[Field, date, date], Awaitable[NdviStats]]
ProgressCallback = Callable[[int, int], None | Awaitable[None]]


def eligible_months(year: int, today: date) -> list[int]:
    """Growing-season months of ``year`` that have already started."""

    return [m for m in GROWING_SEASON_MONTHS if date(year, m, 1) <= today]


def month_bounds(year: int, month: int) -> tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def gap_marker(month: int) -> MonthlyNdvi:
    return {
        "month": month,
        "month_name": calendar.month_abbr[month],
        "mean_ndvi": None,
    }


def sample_from_stats(month: int, stats: NdviStats) -> MonthlyNdvi:
    return {
        "month": month,
        "month_name": calendar.month_abbr[month],
        "mean_ndvi": stats.mean,
        "min_ndvi": stats.min,
        "max_ndvi": stats.max,
        "std_dev_ndvi": stats.std_dev,
        "date_range": {
            "from": stats.start.isoformat(),
            "to": stats.end.isoformat(),
        },
    }


async def load_vegetation_index(
    fields: Sequence[Field],
    year: int,
    *,
    fetch: FetchNdvi | None = None,
    on_progress: ProgressCallback | None = None,
    today: date | None = None,
    max_concurrency: int | None = None,
) -> dict[Any, list[MonthlyNdvi]]:
    """Query NDVI for every eligible field and month of ``year``.

    Fields without a valid polygon never appear in the result. Each field
    maps to its months in calendar order; failed months are gap markers.
    ``on_progress(completed, total)`` is called once with ``completed=0``
    and then once per finished query; a failing callback is logged and
    never stops the queries.
    """

    if fetch is None:
        from .services import fetch_ndvi_for_block

        fetch = fetch_ndvi_for_block
    today = today or timezone.localdate()
    limit = max_concurrency or int(
        getattr(settings, "NDVI_MAX_CONCURRENT_REQUESTS", 8)
    )

    eligible = [field for field in fields if has_valid_polygon(field.get("geom"))]
    months = eligible_months(year, today)
    pairs = [(field, month) for field in eligible for month in months]
    total = len(pairs)

    semaphore = asyncio.Semaphore(max(1, limit))
    progress_lock = asyncio.Lock()
    completed = 0

    async def report(done: int) -> None:
        if on_progress is None:
            return
        try:
            result = on_progress(done, total)
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "ndvi.orchestrator.progress_failed completed=%s total=%s err=%s",
                done,
                total,
                exc,
            )

    async def advance() -> None:
        nonlocal completed
        async with progress_lock:
            completed += 1
            await report(completed)

    async def query(field: Field, month: int) -> NdviStats | None:
        start, end = month_bounds(year, month)
        stats: NdviStats | None = None
        async with semaphore:
            try:
                stats = await fetch(field, start, end)
            except asyncio.CancelledError:
                raise
            except NdviUnavailable as exc:
                ndvi_orchestrator_requests_total.labels(
                    outcome="unavailable"
                ).inc()
                logger.info(
                    "ndvi.orchestrator.unavailable field_id=%s month=%s err=%s",
                    field.get("id"),
                    month,
                    exc,
                )
            except Exception as exc:  # noqa: BLE001
                ndvi_orchestrator_requests_total.labels(outcome="failed").inc()
                logger.warning(
                    "ndvi.orchestrator.failed field_id=%s month=%s err=%s",
                    field.get("id"),
                    month,
                    exc,
                )
            else:
                ndvi_orchestrator_requests_total.labels(outcome="ok").inc()
        await advance()
        return stats

    await report(0)
    outcomes = await asyncio.gather(
        *(query(field, month) for field, month in pairs)
    )

    by_pair = {
        (id(field), month): stats
        for (field, month), stats in zip(pairs, outcomes, strict=True)
    }
    result: dict[Any, list[MonthlyNdvi]] = {}
    for field in eligible:
        series: list[MonthlyNdvi] = []
        for month in months:
            stats = by_pair[(id(field), month)]
            series.append(
                gap_marker(month)
                if stats is None
                else sample_from_stats(month, stats)
            )
        result[field.get("id")] = series
    logger.info(
        "ndvi.orchestrator.done year=%s fields=%s queries=%s",
        year,
        len(eligible),
        total,
    )
    return result
