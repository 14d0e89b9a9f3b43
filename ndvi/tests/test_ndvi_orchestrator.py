from __future__ import annotations

# ruff: noqa: S101
import asyncio
from datetime import date
from typing import Any

from ndvi.engines.base import NdviStats, NdviUnavailable
from ndvi.orchestrator import (
    eligible_months,
    gap_marker,
    load_vegetation_index,
    month_bounds,
)

POLYGON = {
    "type": "Polygon",
    "coordinates": [
        [[0.0, 0.0], [0.0, 0.01], [0.01, 0.01], [0.01, 0.0], [0.0, 0.0]]
    ],
}
FIELDS = [
    {"id": 1, "name": "North", "geom": POLYGON},
    {"id": 2, "name": "South", "geom": POLYGON},
    {"id": 3, "name": "Unmapped", "geom": None},
    {"id": 4, "name": "Broken", "geom": {"type": "Polygon", "coordinates": []}},
]
END_OF_SEASON = date(2024, 12, 1)


def _stats(start: date, end: date, mean: float = 0.6) -> NdviStats:
    return NdviStats(
        mean=mean, min=0.1, max=0.9, std_dev=0.05, start=start, end=end
    )


async def _ok_fetch(field: dict[str, Any], start: date, end: date) -> NdviStats:
    await asyncio.sleep(0)
    return _stats(start, end, mean=round(0.5 + start.month / 100, 3))


def test_eligible_months_skip_future_periods() -> None:
    assert eligible_months(2024, date(2024, 3, 31)) == []
    assert eligible_months(2024, date(2024, 6, 1)) == [4, 5, 6]
    assert eligible_months(2023, date(2024, 1, 1)) == [4, 5, 6, 7, 8, 9, 10]


def test_month_bounds_cover_whole_month() -> None:
    assert month_bounds(2024, 4) == (date(2024, 4, 1), date(2024, 4, 30))
    assert month_bounds(2024, 8) == (date(2024, 8, 1), date(2024, 8, 31))


def test_fields_without_geometry_are_not_keys() -> None:
    result = asyncio.run(
        load_vegetation_index(FIELDS, 2024, fetch=_ok_fetch, today=END_OF_SEASON)
    )

    assert set(result) == {1, 2}
    assert [point["month"] for point in result[1]] == [4, 5, 6, 7, 8, 9, 10]
    june = result[1][2]
    assert june["month_name"] == "Jun"
    assert june["mean_ndvi"] == 0.56
    assert june["date_range"] == {"from": "2024-06-01", "to": "2024-06-30"}


def test_single_failure_becomes_gap_without_affecting_others() -> None:
    async def flaky(field: dict[str, Any], start: date, end: date) -> NdviStats:
        if field["id"] == 2 and start.month == 6:
            raise RuntimeError("upstream 502")
        if field["id"] == 1 and start.month == 9:
            raise NdviUnavailable("all clouds")
        return await _ok_fetch(field, start, end)

    result = asyncio.run(
        load_vegetation_index(FIELDS, 2024, fetch=flaky, today=END_OF_SEASON)
    )

    assert result[2][2] == gap_marker(6)
    assert result[2][2] == {"month": 6, "month_name": "Jun", "mean_ndvi": None}
    assert result[1][5] == gap_marker(9)
    ok_points = [
        point
        for series in result.values()
        for point in series
        if point["mean_ndvi"] is not None
    ]
    assert len(ok_points) == 12


def test_future_months_are_never_queried() -> None:
    queried: list[int] = []

    async def recording(field: dict[str, Any], start: date, end: date) -> NdviStats:
        queried.append(start.month)
        return _stats(start, end)

    result = asyncio.run(
        load_vegetation_index(
            FIELDS[:1], 2024, fetch=recording, today=date(2024, 6, 15)
        )
    )

    assert sorted(queried) == [4, 5, 6]
    assert [point["month"] for point in result[1]] == [4, 5, 6]


def test_progress_is_monotonic_with_fixed_total() -> None:
    calls: list[tuple[int, int]] = []

    asyncio.run(
        load_vegetation_index(
            FIELDS,
            2024,
            fetch=_ok_fetch,
            today=END_OF_SEASON,
            on_progress=lambda done, total: calls.append((done, total)),
        )
    )

    assert calls[0] == (0, 14)
    assert [done for done, _ in calls] == list(range(15))
    assert {total for _, total in calls} == {14}


def test_async_progress_callback_is_awaited() -> None:
    calls: list[int] = []

    async def on_progress(done: int, total: int) -> None:
        await asyncio.sleep(0)
        calls.append(done)

    asyncio.run(
        load_vegetation_index(
            FIELDS[:1],
            2024,
            fetch=_ok_fetch,
            today=date(2024, 5, 2),
            on_progress=on_progress,
        )
    )
    assert calls == [0, 1, 2]


def test_concurrency_is_bounded() -> None:
    in_flight = 0
    peak = 0

    async def slow(field: dict[str, Any], start: date, end: date) -> NdviStats:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return _stats(start, end)

    result = asyncio.run(
        load_vegetation_index(
            FIELDS,
            2024,
            fetch=slow,
            today=END_OF_SEASON,
            max_concurrency=3,
        )
    )

    assert peak <= 3
    assert all(p["mean_ndvi"] == 0.6 for s in result.values() for p in s)


def test_year_not_started_yields_empty_series() -> None:
    calls: list[tuple[int, int]] = []
    result = asyncio.run(
        load_vegetation_index(
            FIELDS,
            2025,
            fetch=_ok_fetch,
            today=date(2024, 12, 31),
            on_progress=lambda done, total: calls.append((done, total)),
        )
    )
    assert result == {1: [], 2: []}
    assert calls == [(0, 0)]


def test_failing_progress_callback_does_not_stop_queries() -> None:
    seen: list[int] = []
    fetched: list[tuple[int, int]] = []

    async def fetch(field: dict[str, Any], start: date, end: date) -> NdviStats:
        fetched.append((field["id"], start.month))
        return await _ok_fetch(field, start, end)

    def on_progress(done: int, total: int) -> None:
        seen.append(done)
        if done == 2:
            raise RuntimeError("progress store down")

    result = asyncio.run(
        load_vegetation_index(
            FIELDS,
            2024,
            fetch=fetch,
            today=END_OF_SEASON,
            on_progress=on_progress,
            max_concurrency=2,
        )
    )

    assert len(fetched) == 14
    assert seen == list(range(15))
    assert all(
        point["mean_ndvi"] is not None
        for series in result.values()
        for point in series
    )
    assert set(result) == {1, 2}
