from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from datetime import date
from functools import partial
from typing import Any, cast

import httpx
from asgiref.sync import sync_to_async
from django.conf import settings
from django.core.cache import caches
from django.utils import timezone

from analytics.presentation import vegetation_series
from vineyard import readers
from vineyard.geometry import validate_polygon

from .engines.base import NdviStats
from .engines.sentinelhub import DEFAULT_TIMEOUT, SentinelHubEngine
from .metrics import ndvi_cache_hit_total
from .models import VegetationIndexRun
from .orchestrator import (
    FetchNdvi,
    ProgressCallback,
    eligible_months,
    load_vegetation_index,
)

logger = logging.getLogger(__name__)

RESULT_CACHE_TTL = int(getattr(settings, "NDVI_RESULT_CACHE_TTL_SECONDS", 86400))
REFRESH_COOLDOWN_SECONDS = int(
    getattr(settings, "NDVI_REFRESH_COOLDOWN_SECONDS", 300)
)


class VegetationIndexError(RuntimeError):
    """A run could not start, e.g. the block list failed to load."""


def is_sentinel_hub_configured() -> bool:
    return bool(
        os.getenv("SENTINELHUB_CLIENT_ID")
        and os.getenv("SENTINELHUB_CLIENT_SECRET")
    )


def get_engine(client: httpx.AsyncClient | None = None) -> SentinelHubEngine:
    return SentinelHubEngine(client=client)


async def fetch_ndvi_for_block(
    field: Mapping[str, Any],
    start: date,
    end: date,
    *,
    engine: SentinelHubEngine | None = None,
) -> NdviStats:
    """NDVI statistics for one block over ``start..end``."""

    geom = field.get("geom")
    validate_polygon(geom)
    geom = cast(Mapping[str, Any], geom)
    if engine is not None:
        return await engine.fetch_for_geometry(geom, start=start, end=end)
    async with get_engine() as own_engine:
        return await own_engine.fetch_for_geometry(geom, start=start, end=end)


def result_cache_key(owner_id: int, year: int) -> str:
    return f"ndvi:vegetation-index:{owner_id}:{year}"


def get_cached_vegetation_index(owner_id: int, year: int) -> dict[str, Any] | None:
    cached = caches["default"].get(result_cache_key(owner_id, year))
    if cached is not None:
        ndvi_cache_hit_total.labels(layer="vegetation_index").inc()
    return cached


def store_vegetation_index(
    owner_id: int, year: int, payload: dict[str, Any]
) -> None:
    # Each run replaces the previous result as a whole.
    caches["default"].set(
        result_cache_key(owner_id, year), payload, RESULT_CACHE_TTL
    )


async def run_vegetation_index(
    owner_id: int,
    year: int,
    *,
    on_progress: ProgressCallback | None = None,
    today: date | None = None,
    fetch: FetchNdvi | None = None,
) -> dict[str, Any]:
    """Run the NDVI orchestration for the owner's blocks.

    Returns ``{}`` without querying anything when Sentinel Hub is not
    configured; otherwise the chart-ready payload of the run.
    """

    if not is_sentinel_hub_configured():
        logger.info("ndvi.run.skipped owner_id=%s reason=not_configured", owner_id)
        return {}

    today = today or timezone.localdate()
    blocks = await sync_to_async(readers.list_vineyard_blocks)(owner_id)
    if blocks.error:
        raise VegetationIndexError(f"Could not load blocks: {blocks.error}")
    fields = list(blocks.data)

    if fetch is not None:
        result = await load_vegetation_index(
            fields, year, fetch=fetch, on_progress=on_progress, today=today
        )
    else:
        async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as client:
            result = await load_vegetation_index(
                fields,
                year,
                fetch=partial(fetch_ndvi_for_block, engine=get_engine(client)),
                on_progress=on_progress,
                today=today,
            )

    return {
        "year": year,
        "months": eligible_months(year, today),
        "generated_at": timezone.now().isoformat(),
        "series": vegetation_series(result, fields),
    }


def active_run(owner_id: int, year: int) -> VegetationIndexRun | None:
    return (
        VegetationIndexRun.objects.filter(
            owner_id=owner_id,
            year=year,
            status__in=[
                VegetationIndexRun.RunStatus.QUEUED,
                VegetationIndexRun.RunStatus.RUNNING,
            ],
        )
        .order_by("-created_at")
        .first()
    )


def enqueue_run(
    owner_id: int, year: int
) -> tuple[VegetationIndexRun, bool]:
    """Create a queued run unless one is already pending for the year.

    Returns ``(run, created)`` like `get_or_create`.
    """

    existing = active_run(owner_id, year)
    if existing:
        return existing, False
    run = VegetationIndexRun.objects.create(owner_id=owner_id, year=year)
    logger.info(
        "ndvi.run.queued run_id=%s owner_id=%s year=%s", run.id, owner_id, year
    )
    return run, True


def latest_run(owner_id: int, year: int) -> VegetationIndexRun | None:
    return (
        VegetationIndexRun.objects.filter(owner_id=owner_id, year=year)
        .order_by("-created_at", "-id")
        .first()
    )
