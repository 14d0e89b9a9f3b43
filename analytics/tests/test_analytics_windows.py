from __future__ import annotations

# ruff: noqa: S101
from datetime import date, datetime

import pytest

from analytics.windows import (
    ReportingWindow,
    WindowKind,
    filter_by_month,
    filter_by_window,
    parse_record_date,
)

TODAY = date(2024, 6, 15)


def test_ytd_bounds_end_at_today_for_current_year() -> None:
    window = ReportingWindow(WindowKind.YTD, 2024)
    assert window.bounds(TODAY) == (date(2024, 1, 1), TODAY)


def test_ytd_bounds_cover_whole_past_year() -> None:
    window = ReportingWindow(WindowKind.YTD, 2023)
    assert window.bounds(TODAY) == (date(2023, 1, 1), date(2023, 12, 31))


def test_ytd_bounds_for_future_year_collapse_to_first_day() -> None:
    window = ReportingWindow(WindowKind.YTD, 2025)
    assert window.bounds(TODAY) == (date(2025, 1, 1), date(2025, 1, 1))
    assert window.has_started(TODAY) is False
    assert ReportingWindow(WindowKind.YTD, 2024).has_started(TODAY) is True


def test_future_ytd_window_selects_nothing() -> None:
    records = [{"id": 1, "d": "2025-01-01"}, {"id": 2, "d": "2024-06-01"}]
    selected = filter_by_window(
        records, "d", ReportingWindow(WindowKind.YTD, 2025), today=TODAY
    )
    assert selected == []


def test_year_bounds_ignore_today() -> None:
    window = ReportingWindow(WindowKind.YEAR, 2024)
    assert window.bounds(TODAY) == (date(2024, 1, 1), date(2024, 12, 31))


def test_month_window_uses_current_month_not_reference_year() -> None:
    window = ReportingWindow(WindowKind.MONTH, 2020)
    assert window.bounds(date(2024, 2, 10)) == (
        date(2024, 2, 1),
        date(2024, 2, 29),
    )


@pytest.mark.parametrize(
    ("today", "expected"),
    [
        (date(2024, 5, 1), (date(2024, 4, 1), date(2024, 6, 30))),
        (date(2024, 11, 5), (date(2024, 10, 1), date(2024, 12, 31))),
        (date(2024, 1, 31), (date(2024, 1, 1), date(2024, 3, 31))),
    ],
)
def test_quarter_window_bounds(
    today: date, expected: tuple[date, date]
) -> None:
    window = ReportingWindow(WindowKind.QUARTER, 1999)
    assert window.bounds(today) == expected


def test_parse_record_date_accepts_common_shapes() -> None:
    assert parse_record_date("2024-03-01") == date(2024, 3, 1)
    assert parse_record_date("2024-03-01T10:00:00Z") == date(2024, 3, 1)
    assert parse_record_date(datetime(2024, 3, 1, 8, 30)) == date(2024, 3, 1)
    assert parse_record_date(date(2024, 3, 1)) == date(2024, 3, 1)


@pytest.mark.parametrize("value", [None, "", "   ", "garbage", 20240301])
def test_parse_record_date_rejects_unusable_values(value: object) -> None:
    assert parse_record_date(value) is None


def test_filter_by_window_selects_reference_year_only() -> None:
    records = [
        {"id": 1, "log_date": "2024-03-01"},
        {"id": 2, "log_date": "2023-12-31"},
        {"id": 3, "log_date": None},
        {"id": 4, "log_date": "not-a-date"},
        {"id": 5},
    ]
    selected_2024 = filter_by_window(
        records, "log_date", ReportingWindow(WindowKind.YEAR, 2024)
    )
    selected_2023 = filter_by_window(
        records, "log_date", ReportingWindow(WindowKind.YEAR, 2023)
    )
    assert [r["id"] for r in selected_2024] == [1]
    assert [r["id"] for r in selected_2023] == [2]


def test_filter_by_window_is_inclusive_of_bounds() -> None:
    records = [
        {"id": 1, "d": "2024-01-01"},
        {"id": 2, "d": "2024-06-15"},
        {"id": 3, "d": "2024-06-16"},
    ]
    selected = filter_by_window(
        records, "d", ReportingWindow(WindowKind.YTD, 2024), today=TODAY
    )
    assert [r["id"] for r in selected] == [1, 2]


def test_filter_by_month_matches_month_number() -> None:
    records = [
        {"id": 1, "d": "2024-06-01"},
        {"id": 2, "d": "2023-06-30"},
        {"id": 3, "d": "2024-07-01"},
    ]
    assert [r["id"] for r in filter_by_month(records, "d", 6)] == [1, 2]
