"""Fold operational records into the cost/quality analytics snapshot.

Everything here is a pure function of its inputs. Missing or malformed
numbers count as zero when summing and stay ``None`` where a chart needs to
tell "no data" apart from a measured zero.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from typing import Any, Final

from django.conf import settings

from .types import AnalyticsSources, Record
from .windows import (
    ReportingWindow,
    filter_by_month,
    filter_by_window,
)

MONTH_NAMES: Final[tuple[str, ...]] = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)

DATE_FIELDS: Final[dict[str, str]] = {
    "labor_logs": "log_date",
    "inventory_transactions": "transaction_date",
    "yield_history": "harvest_date",
    "spray_applications": "application_date",
    "harvest_samples": "sample_date",
    "irrigation_events": "event_date",
}

CHEMICAL_CATEGORY: Final[str] = "chemical"
USE_TRANSACTION: Final[str] = "use"


class CostCategory(StrEnum):
    LABOR = "labor"
    MATERIALS = "materials"
    CHEMICALS = "chemicals"
    IRRIGATION = "irrigation"

    @property
    def label(self) -> str:
        return _COST_LABELS[self]


_COST_LABELS: Final[dict[CostCategory, str]] = {
    CostCategory.LABOR: "Labor",
    CostCategory.MATERIALS: "Materials",
    CostCategory.CHEMICALS: "Chemicals",
    CostCategory.IRRIGATION: "Irrigation",
}


@dataclass(frozen=True)
class QualityAverages:
    brix: float | None
    ph: float | None
    acidity: float | None


@dataclass(frozen=True)
class MonthlyBucket:
    month: int
    month_name: str
    labor_cost: float
    material_cost: float
    yield_tons: float
    water_gallons: float
    spray_count: int
    brix: float | None
    ph: float | None
    acidity: float | None


@dataclass(frozen=True)
class BlockRollup:
    block_id: Any
    name: str
    variety: str
    acres: float
    avg_brix: float | None
    avg_ph: float | None
    avg_acidity: float | None
    total_yield: float
    yield_per_acre: float
    quality_score: float


@dataclass(frozen=True)
class AnalyticsSnapshot:
    window: str
    reference_year: int
    period_start: date
    period_end: date
    labor_cost: float
    labor_hours: float
    material_costs: float
    chemical_costs: float
    water_usage_gallons: float
    water_cost: float
    total_costs: float
    spray_count: int
    total_yield: float
    estimated_revenue: float
    cost_per_ton: float
    profit_margin: float
    quality_score: float
    avg_brix: float | None
    avg_ph: float | None
    avg_acidity: float | None
    total_acres: float
    cost_per_acre: float
    yield_per_acre: float
    water_per_acre: float
    harvest_sample_count: int
    avg_sample_brix: float | None
    cost_breakdown: dict[CostCategory, float]
    monthly: tuple[MonthlyBucket, ...]
    blocks: tuple[BlockRollup, ...]
    incomplete_sources: tuple[str, ...] = field(default=())


def to_number(value: Any) -> float | None:
    """Return a finite float, or ``None`` for missing/malformed input."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def num(value: Any) -> float:
    number = to_number(value)
    return number if number is not None else 0.0


def safe_divide(numerator: float, denominator: float) -> float:
    if not denominator:
        return 0.0
    result = numerator / denominator
    return result if math.isfinite(result) else 0.0


def _first_number(record: Record, keys: Sequence[str]) -> float | None:
    for key in keys:
        number = to_number(record.get(key))
        if number is not None:
            return number
    return None


def positive_average(records: Iterable[Record], *keys: str) -> float | None:
    values = [
        number
        for number in (_first_number(r, keys) for r in records)
        if number is not None and number > 0
    ]
    if not values:
        return None
    return math.fsum(values) / len(values)


def quality_score(
    avg_brix: float | None, avg_ph: float | None, avg_acidity: float | None
) -> float:
    """Composite 0-100 grape quality score from brix, pH and acidity."""

    if not avg_brix or avg_brix <= 0:
        return 0.0
    ph = avg_ph or 0.0
    acidity = avg_acidity or 0.0

    brix_term = min(avg_brix / 25, 1) * 40
    if 3.0 <= ph <= 3.6:
        ph_term = 30.0
    else:
        ph_term = max(0.0, 30 - abs(ph - 3.3) * 10)
    if 5 <= acidity <= 8:
        acidity_term = 30.0
    else:
        acidity_term = max(0.0, 30 - abs(acidity - 6.5) * 5)
    return max(0.0, min(100.0, brix_term + ph_term + acidity_term))


def labor_cost(logs: Iterable[Record]) -> float:
    return math.fsum(
        (num(log.get("hours_worked")) * num(log.get("hourly_rate")))
        for log in logs
    )


def labor_hours(logs: Iterable[Record]) -> float:
    return math.fsum(num(log.get("hours_worked")) for log in logs)


def _item_value(tx: Record, key: str) -> Any:
    nested = tx.get("inventory_item") or tx.get("inventory_items")
    if isinstance(nested, Mapping) and nested.get(key) is not None:
        return nested.get(key)
    return tx.get(f"item_{key}")


def _unit_cost(tx: Record) -> float:
    own = to_number(tx.get("unit_cost"))
    if own is not None:
        return own
    return num(_item_value(tx, "unit_cost"))


def _usage_cost(tx: Record) -> float:
    return abs(num(tx.get("quantity"))) * _unit_cost(tx)


def _is_use(tx: Record) -> bool:
    return tx.get("transaction_type") == USE_TRANSACTION


def material_cost(transactions: Iterable[Record]) -> float:
    return math.fsum(_usage_cost(tx) for tx in transactions if _is_use(tx))


def chemical_cost(transactions: Iterable[Record]) -> float:
    return math.fsum(
        _usage_cost(tx)
        for tx in transactions
        if _is_use(tx) and _item_value(tx, "category") == CHEMICAL_CATEGORY
    )


def water_usage(events: Iterable[Record]) -> float:
    return math.fsum(num(event.get("total_water_gallons")) for event in events)


def total_yield(rows: Iterable[Record]) -> float:
    return math.fsum(num(row.get("tons_harvested")) for row in rows)


def estimated_revenue(rows: Iterable[Record], default_price: float) -> float:
    revenue = 0.0
    for row in rows:
        price = to_number(row.get("price_per_ton"))
        if price is None:
            price = default_price
        revenue += num(row.get("tons_harvested")) * price
    return revenue


def quality_averages(rows: Sequence[Record]) -> QualityAverages:
    return QualityAverages(
        brix=positive_average(rows, "brix"),
        ph=positive_average(rows, "ph"),
        acidity=positive_average(rows, "ta", "acidity"),
    )


def _monthly_buckets(filtered: Mapping[str, Sequence[Record]]) -> tuple[
    MonthlyBucket, ...
]:
    buckets: list[MonthlyBucket] = []
    for month in range(1, 13):
        by_source = {
            name: filter_by_month(records, DATE_FIELDS[name], month)
            for name, records in filtered.items()
        }
        quality = quality_averages(by_source["yield_history"])
        buckets.append(
            MonthlyBucket(
                month=month,
                month_name=MONTH_NAMES[month - 1],
                labor_cost=labor_cost(by_source["labor_logs"]),
                material_cost=material_cost(
                    by_source["inventory_transactions"]
                ),
                yield_tons=total_yield(by_source["yield_history"]),
                water_gallons=water_usage(by_source["irrigation_events"]),
                spray_count=len(by_source["spray_applications"]),
                brix=quality.brix,
                ph=quality.ph,
                acidity=quality.acidity,
            )
        )
    return tuple(buckets)


def _block_rollups(
    blocks: Sequence[Record], yield_rows: Sequence[Record]
) -> tuple[BlockRollup, ...]:
    rows_by_block: dict[Any, list[Record]] = {}
    for row in yield_rows:
        block_id = row.get("block_id", row.get("field_id"))
        rows_by_block.setdefault(block_id, []).append(row)

    rollups: list[BlockRollup] = []
    for block in blocks:
        block_id = block.get("id")
        rows = rows_by_block.get(block_id, [])
        quality = quality_averages(rows)
        tons = total_yield(rows)
        if not (
            (quality.brix or 0) > 0 or (quality.ph or 0) > 0 or tons > 0
        ):
            continue
        acres = num(block.get("acres"))
        rollups.append(
            BlockRollup(
                block_id=block_id,
                name=str(block.get("name") or ""),
                variety=str(block.get("variety") or ""),
                acres=acres,
                avg_brix=quality.brix,
                avg_ph=quality.ph,
                avg_acidity=quality.acidity,
                total_yield=tons,
                yield_per_acre=safe_divide(tons, acres),
                quality_score=quality_score(
                    quality.brix, quality.ph, quality.acidity
                ),
            )
        )
    return tuple(rollups)


def compute_analytics(
    sources: AnalyticsSources,
    window: ReportingWindow,
    reference_year: int | None = None,
    *,
    today: date | None = None,
    price_per_ton: float | None = None,
    water_cost_per_gallon: float | None = None,
) -> AnalyticsSnapshot:
    """Build the full analytics snapshot for one reporting window."""

    if reference_year is not None and reference_year != window.reference_year:
        window = ReportingWindow(kind=window.kind, reference_year=reference_year)
    if price_per_ton is None:
        price_per_ton = float(
            getattr(settings, "ANALYTICS_DEFAULT_PRICE_PER_TON", 0)
        )
    if water_cost_per_gallon is None:
        water_cost_per_gallon = float(
            getattr(settings, "ANALYTICS_WATER_COST_PER_GALLON", 0)
        )

    period_start, period_end = window.bounds(today)
    filtered: dict[str, list[Record]] = {
        name: filter_by_window(
            getattr(sources, name), date_field, window, today=today
        )
        for name, date_field in DATE_FIELDS.items()
    }

    labor = labor_cost(filtered["labor_logs"])
    gross_materials = material_cost(filtered["inventory_transactions"])
    chemicals = chemical_cost(filtered["inventory_transactions"])
    gallons = water_usage(filtered["irrigation_events"])
    water_cost = gallons * water_cost_per_gallon
    materials = gross_materials - water_cost - chemicals
    total_costs = labor + gross_materials

    tons = total_yield(filtered["yield_history"])
    revenue = estimated_revenue(filtered["yield_history"], price_per_ton)
    quality = quality_averages(filtered["yield_history"])
    acres = sum(num(block.get("acres")) for block in sources.blocks)

    return AnalyticsSnapshot(
        window=str(window.kind),
        reference_year=window.reference_year,
        period_start=period_start,
        period_end=period_end,
        labor_cost=labor,
        labor_hours=labor_hours(filtered["labor_logs"]),
        material_costs=gross_materials,
        chemical_costs=chemicals,
        water_usage_gallons=gallons,
        water_cost=water_cost,
        total_costs=total_costs,
        spray_count=len(filtered["spray_applications"]),
        total_yield=tons,
        estimated_revenue=revenue,
        cost_per_ton=safe_divide(total_costs, tons),
        profit_margin=safe_divide(revenue - total_costs, revenue) * 100,
        quality_score=quality_score(quality.brix, quality.ph, quality.acidity),
        avg_brix=quality.brix,
        avg_ph=quality.ph,
        avg_acidity=quality.acidity,
        total_acres=acres,
        cost_per_acre=safe_divide(total_costs, acres),
        yield_per_acre=safe_divide(tons, acres),
        water_per_acre=safe_divide(gallons, acres),
        harvest_sample_count=len(filtered["harvest_samples"]),
        avg_sample_brix=positive_average(filtered["harvest_samples"], "brix"),
        cost_breakdown={
            CostCategory.LABOR: labor,
            CostCategory.MATERIALS: materials,
            CostCategory.CHEMICALS: chemicals,
            CostCategory.IRRIGATION: water_cost,
        },
        monthly=_monthly_buckets(filtered),
        blocks=_block_rollups(sources.blocks, filtered["yield_history"]),
        incomplete_sources=tuple(sources.incomplete),
    )
