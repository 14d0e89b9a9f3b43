from __future__ import annotations

import itertools
import logging
import threading
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from functools import partial
from typing import Any

from django.conf import settings
from django.core.cache import caches
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError

from vineyard import readers

from .calculator import AnalyticsSnapshot, compute_analytics
from .metrics import analytics_report_latency_seconds, analytics_reports_total
from .presentation import snapshot_payload
from .settle import Reader, settle_all_detailed
from .types import AnalyticsSources, ReaderResult
from .windows import ReportingWindow, WindowKind

logger = logging.getLogger(__name__)

ReadersFactory = Callable[
    [int, ReportingWindow, date | None], Mapping[str, Reader]
]


class ReportSuperseded(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "A newer analytics request replaced this one."
    default_code = "superseded"


def inventory_transaction_limit() -> int:
    return int(getattr(settings, "ANALYTICS_INVENTORY_TRANSACTION_LIMIT", 1000))


def normalize_window(kind: str | None, year: int | None) -> ReportingWindow:
    raw = (kind or WindowKind.YTD).lower()
    try:
        window_kind = WindowKind(raw)
    except ValueError as exc:
        choices = ", ".join(k.value for k in WindowKind)
        raise ValidationError(
            {"window": f"Unsupported window '{raw}'. Use one of: {choices}."}
        ) from exc
    reference_year = year or date.today().year
    if reference_year < 1900 or reference_year > 2100:
        raise ValidationError({"year": "year must be between 1900 and 2100."})
    return ReportingWindow(kind=window_kind, reference_year=reference_year)


def bounded_inventory_transactions(
    owner_id: int,
    start: date | None,
    end: date | None,
    limit: int,
) -> ReaderResult:
    """Transactions dated within ``start..end``, newest first.

    One row past ``limit`` is requested so a cut-off result comes back
    flagged as truncated instead of looking complete.
    """

    result = readers.list_inventory_transactions(
        owner_id, None, limit + 1, start, end
    )
    if not result.ok or len(result.data) <= limit:
        return result
    return ReaderResult(data=list(result.data)[:limit], truncated=True)


def orm_readers(
    owner_id: int,
    window: ReportingWindow | None = None,
    today: date | None = None,
) -> dict[str, Reader]:
    """Bind the ORM readers for one owner and load cycle."""

    start, end = window.bounds(today) if window is not None else (None, None)
    return {
        "blocks": partial(readers.list_vineyard_blocks, owner_id),
        "labor_logs": partial(readers.list_labor_logs, owner_id, {}),
        "inventory_transactions": partial(
            bounded_inventory_transactions,
            owner_id,
            start,
            end,
            inventory_transaction_limit(),
        ),
        "yield_history": partial(readers.list_field_yield_history, owner_id),
        "spray_applications": partial(readers.list_spray_applications, owner_id),
        "harvest_samples": partial(readers.list_harvest_samples, owner_id),
        "irrigation_events": partial(readers.list_irrigation_events, owner_id),
    }


def _generation_key(owner_id: int) -> str:
    return f"analytics:sources:generation:{owner_id}"


def bump_source_generation(owner_id: int) -> None:
    """Record that one of the owner's source records changed."""

    cache = caches["default"]
    key = _generation_key(owner_id)
    try:
        cache.incr(key)
    except ValueError:
        cache.set(key, 1, None)


async def source_generation(owner_id: int) -> int:
    return int(await caches["default"].aget(_generation_key(owner_id), 0))


class LoadState(StrEnum):
    INIT = "init"
    LOADED = "loaded"
    STALE = "stale"


class SourceRepository:
    """Explicit load lifecycle around a set of source readers.

    ``init -> loaded`` on first `load()`, ``loaded -> stale`` through
    `invalidate()`, and a `load()` from ``stale`` reloads every source.
    With a ``version`` callable, a version change during a load marks the
    result stale and reloads once.
    """

    def __init__(
        self,
        readers_map: Mapping[str, Reader],
        *,
        version: Callable[[], Awaitable[int]] | None = None,
    ) -> None:
        self._readers = dict(readers_map)
        self._version = version
        self._sources: AnalyticsSources | None = None
        self.state = LoadState.INIT

    async def _current_version(self) -> int | None:
        return await self._version() if self._version is not None else None

    async def _settle(self) -> AnalyticsSources:
        settled = await settle_all_detailed(self._readers)
        self.state = LoadState.LOADED
        return AnalyticsSources.from_settled(
            settled.data, incomplete=settled.incomplete
        )

    async def load(self) -> AnalyticsSources:
        if self.state is LoadState.LOADED and self._sources is not None:
            return self._sources
        if self.state is LoadState.STALE:
            logger.info("analytics.sources.reload count=%s", len(self._readers))
        before = await self._current_version()
        self._sources = await self._settle()
        if await self._current_version() != before:
            logger.info("analytics.sources.changed_during_load")
            self.invalidate()
            self._sources = await self._settle()
        return self._sources

    def invalidate(self) -> None:
        if self.state is LoadState.LOADED:
            self.state = LoadState.STALE


@dataclass(frozen=True)
class ReportToken:
    generation: int
    window: ReportingWindow


class ReportSession:
    """Keeps only the newest requested snapshot.

    Each request takes a token; `commit` stores the result only while that
    token is still the latest one, so a slow load never overwrites a result
    for a window selected after it started.
    """

    def __init__(self) -> None:
        self._counter = itertools.count(1)
        self._latest = 0
        self._lock = threading.Lock()
        self.snapshot: AnalyticsSnapshot | None = None

    def begin(self, window: ReportingWindow) -> ReportToken:
        with self._lock:
            generation = next(self._counter)
            self._latest = generation
        return ReportToken(generation=generation, window=window)

    def is_current(self, token: ReportToken) -> bool:
        return token.generation == self._latest

    def cancel(self) -> None:
        with self._lock:
            self._latest = next(self._counter)

    def commit(self, token: ReportToken, snapshot: AnalyticsSnapshot) -> bool:
        with self._lock:
            if token.generation != self._latest:
                logger.info(
                    "analytics.snapshot.discarded generation=%s latest=%s",
                    token.generation,
                    self._latest,
                )
                return False
            self.snapshot = snapshot
            return True


async def run_report(
    repository: SourceRepository,
    window: ReportingWindow,
    *,
    session: ReportSession | None = None,
    today: date | None = None,
) -> AnalyticsSnapshot | None:
    """Load sources and compute a snapshot.

    Returns ``None`` when a newer request on ``session`` superseded this one.
    """

    token = session.begin(window) if session is not None else None
    started = time.perf_counter()
    try:
        sources = await repository.load()
        snapshot = compute_analytics(
            sources, window, window.reference_year, today=today
        )
    except Exception:
        analytics_reports_total.labels(
            window=str(window.kind), outcome="error"
        ).inc()
        raise
    finally:
        analytics_report_latency_seconds.labels(
            window=str(window.kind)
        ).observe(time.perf_counter() - started)

    outcome = "partial" if snapshot.incomplete_sources else "ok"
    analytics_reports_total.labels(
        window=str(window.kind), outcome=outcome
    ).inc()
    if session is not None and token is not None:
        if not session.commit(token, snapshot):
            return None
    return snapshot


_sessions: dict[int, ReportSession] = {}
_sessions_lock = threading.Lock()


def report_session(owner_id: int) -> ReportSession:
    """Process-wide session shared by every report request of one owner."""

    with _sessions_lock:
        return _sessions.setdefault(owner_id, ReportSession())


async def build_report(
    owner_id: int,
    window: ReportingWindow,
    reference_year: int | None = None,
    *,
    today: date | None = None,
    readers_factory: ReadersFactory = orm_readers,
    session: ReportSession | None = None,
) -> dict[str, Any] | None:
    """Compute the owner's snapshot payload for ``window``.

    Returns ``None`` when a newer request of the same owner started while
    this one was loading.
    """

    if reference_year is not None and reference_year != window.reference_year:
        window = ReportingWindow(kind=window.kind, reference_year=reference_year)
    repository = SourceRepository(
        readers_factory(owner_id, window, today),
        version=partial(source_generation, owner_id),
    )
    snapshot = await run_report(
        repository,
        window,
        session=session if session is not None else report_session(owner_id),
        today=today,
    )
    if snapshot is None:
        logger.info("analytics.report.superseded owner_id=%s", owner_id)
        return None
    if snapshot.incomplete_sources:
        logger.warning(
            "analytics.report.incomplete owner_id=%s sources=%s",
            owner_id,
            ",".join(snapshot.incomplete_sources),
        )
    return snapshot_payload(snapshot)
