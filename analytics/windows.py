"""Reporting windows and the record date filter.

`month` and `quarter` always describe the *current* calendar period and
ignore the reference year; `ytd` and `year` are anchored on the reference
year.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import StrEnum
from typing import Any

from django.utils import timezone

from .types import Record


class WindowKind(StrEnum):
    MONTH = "month"
    QUARTER = "quarter"
    YTD = "ytd"
    YEAR = "year"


@dataclass(frozen=True)
class ReportingWindow:
    kind: WindowKind
    reference_year: int

    def bounds(self, today: date | None = None) -> tuple[date, date]:
        """Return the inclusive ``(start, end)`` range of the window."""

        today = today or timezone.localdate()
        if self.kind is WindowKind.MONTH:
            last_day = calendar.monthrange(today.year, today.month)[1]
            return (
                date(today.year, today.month, 1),
                date(today.year, today.month, last_day),
            )
        if self.kind is WindowKind.QUARTER:
            first_month = ((today.month - 1) // 3) * 3 + 1
            start = date(today.year, first_month, 1)
            if first_month == 10:
                end = date(today.year, 12, 31)
            else:
                end = date(today.year, first_month + 3, 1) - timedelta(days=1)
            return start, end

        start = date(self.reference_year, 1, 1)
        year_end = date(self.reference_year, 12, 31)
        if self.kind is WindowKind.YTD:
            return start, min(max(today, start), year_end)
        return start, year_end

    def has_started(self, today: date | None = None) -> bool:
        """False for a `ytd` window whose reference year lies in the future."""

        today = today or timezone.localdate()
        if self.kind is WindowKind.YTD:
            return today >= date(self.reference_year, 1, 1)
        return True


def parse_record_date(value: Any) -> date | None:
    """Coerce a record date value; ``None`` when missing or unparseable."""

    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    candidate = value.strip()
    if not candidate:
        return None
    try:
        return date.fromisoformat(candidate[:10])
    except ValueError:
        return None


def filter_by_window(
    records: Iterable[Record],
    date_field: str,
    window: ReportingWindow,
    *,
    today: date | None = None,
) -> list[Record]:
    today = today or timezone.localdate()
    if not window.has_started(today):
        return []
    start, end = window.bounds(today)
    selected: list[Record] = []
    for record in records:
        day = parse_record_date(record.get(date_field))
        if day is None:
            continue
        if start <= day <= end:
            selected.append(record)
    return selected


def filter_by_month(
    records: Iterable[Record], date_field: str, month: int
) -> list[Record]:
    selected: list[Record] = []
    for record in records:
        day = parse_record_date(record.get(date_field))
        if day is not None and day.month == month:
            selected.append(record)
    return selected
