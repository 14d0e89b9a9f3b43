"""Fail-soft concurrent loading of source readers.

Coroutine readers overlap on the event loop. Sync (ORM) readers run through
`sync_to_async(thread_sensitive=True)` on the single thread that owns the
database connection, so they execute one after another.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import cast

from asgiref.sync import sync_to_async

from .metrics import analytics_source_failures_total
from .types import ReaderResult, Record

logger = logging.getLogger(__name__)

Reader = Callable[[], ReaderResult | Awaitable[ReaderResult]]


@dataclass(frozen=True)
class SettledSources:
    data: dict[str, list[Record]]
    failed: tuple[str, ...] = field(default=())
    truncated: tuple[str, ...] = field(default=())

    @property
    def incomplete(self) -> tuple[str, ...]:
        return self.failed + self.truncated


def _is_async(reader: Reader) -> bool:
    return inspect.iscoroutinefunction(
        reader
    ) or inspect.iscoroutinefunction(getattr(reader, "__call__", None))


async def _run_reader(reader: Reader) -> ReaderResult:
    if _is_async(reader):
        return await cast(Awaitable[ReaderResult], reader())
    result = await sync_to_async(reader, thread_sensitive=True)()
    if inspect.isawaitable(result):
        return await result
    return result


def _degrade(name: str, reason: str) -> None:
    logger.warning("analytics.source.failed source=%s err=%s", name, reason)
    analytics_source_failures_total.labels(source=name).inc()


async def settle_all_detailed(readers: Mapping[str, Reader]) -> SettledSources:
    """Run every reader concurrently; a failure only empties its own source."""

    names = list(readers)
    outcomes = await asyncio.gather(
        *(_run_reader(readers[name]) for name in names),
        return_exceptions=True,
    )

    data: dict[str, list[Record]] = {}
    failed: list[str] = []
    truncated: list[str] = []
    for name, outcome in zip(names, outcomes, strict=True):
        if isinstance(outcome, BaseException):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            _degrade(name, f"{outcome.__class__.__name__}: {outcome}")
            data[name] = []
            failed.append(name)
            continue
        if outcome.error:
            _degrade(name, outcome.error)
            data[name] = []
            failed.append(name)
            continue
        data[name] = list(outcome.data or [])
        if outcome.truncated:
            logger.warning(
                "analytics.source.truncated source=%s rows=%s",
                name,
                len(data[name]),
            )
            truncated.append(name)
    return SettledSources(
        data=data, failed=tuple(failed), truncated=tuple(truncated)
    )


async def settle_all(readers: Mapping[str, Reader]) -> dict[str, list[Record]]:
    settled = await settle_all_detailed(readers)
    return settled.data
