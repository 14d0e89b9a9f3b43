"""Reshape snapshots and NDVI results into chart/export friendly rows."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import asdict
from typing import Any

from .calculator import AnalyticsSnapshot


def _round(value: float | None, digits: int = 2) -> float | None:
    if value is None:
        return None
    return round(value, digits)


def monthly_series(snapshot: AnalyticsSnapshot) -> list[dict[str, Any]]:
    """Twelve month rows; quality gaps stay ``None``."""

    return [
        {
            "month": bucket.month,
            "month_name": bucket.month_name,
            "labor_cost": _round(bucket.labor_cost),
            "material_cost": _round(bucket.material_cost),
            "yield_tons": _round(bucket.yield_tons, 3),
            "water_gallons": _round(bucket.water_gallons),
            "spray_count": bucket.spray_count,
            "brix": _round(bucket.brix),
            "ph": _round(bucket.ph),
            "acidity": _round(bucket.acidity),
        }
        for bucket in snapshot.monthly
    ]


def block_rows(snapshot: AnalyticsSnapshot) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for rollup in snapshot.blocks:
        row = asdict(rollup)
        for key in ("avg_brix", "avg_ph", "avg_acidity", "yield_per_acre"):
            row[key] = _round(row[key])
        row["quality_score"] = _round(rollup.quality_score, 1)
        rows.append(row)
    return rows


def cost_breakdown_rows(snapshot: AnalyticsSnapshot) -> list[dict[str, Any]]:
    """Positive cost categories, largest first."""

    rows = [
        {
            "category": str(category),
            "label": category.label,
            "amount": round(amount, 2),
        }
        for category, amount in snapshot.cost_breakdown.items()
        if amount > 0
    ]
    rows.sort(key=lambda row: row["amount"], reverse=True)
    return rows


def snapshot_payload(snapshot: AnalyticsSnapshot) -> dict[str, Any]:
    return {
        "window": snapshot.window,
        "reference_year": snapshot.reference_year,
        "period_start": snapshot.period_start.isoformat(),
        "period_end": snapshot.period_end.isoformat(),
        "totals": {
            "labor_cost": _round(snapshot.labor_cost),
            "labor_hours": _round(snapshot.labor_hours),
            "material_costs": _round(snapshot.material_costs),
            "chemical_costs": _round(snapshot.chemical_costs),
            "water_usage_gallons": _round(snapshot.water_usage_gallons),
            "water_cost": _round(snapshot.water_cost),
            "total_costs": _round(snapshot.total_costs),
            "spray_count": snapshot.spray_count,
            "total_yield": _round(snapshot.total_yield, 3),
            "estimated_revenue": _round(snapshot.estimated_revenue),
        },
        "kpis": {
            "quality_score": _round(snapshot.quality_score, 1),
            "cost_per_ton": _round(snapshot.cost_per_ton),
            "profit_margin": _round(snapshot.profit_margin, 1),
            "cost_per_acre": _round(snapshot.cost_per_acre),
            "yield_per_acre": _round(snapshot.yield_per_acre, 3),
            "water_per_acre": _round(snapshot.water_per_acre),
            "total_acres": _round(snapshot.total_acres, 3),
        },
        "quality": {
            "avg_brix": _round(snapshot.avg_brix),
            "avg_ph": _round(snapshot.avg_ph),
            "avg_acidity": _round(snapshot.avg_acidity),
            "harvest_sample_count": snapshot.harvest_sample_count,
            "avg_sample_brix": _round(snapshot.avg_sample_brix),
        },
        "cost_breakdown": cost_breakdown_rows(snapshot),
        "monthly": monthly_series(snapshot),
        "blocks": block_rows(snapshot),
        "incomplete_sources": list(snapshot.incomplete_sources),
        "is_complete": not snapshot.incomplete_sources,
    }


def vegetation_series(
    result: Mapping[Any, Sequence[Mapping[str, Any]]],
    fields: Sequence[Mapping[str, Any]],
) -> list[dict[str, Any]]:
    """One chart series per field that took part in the NDVI run."""

    names = {field.get("id"): field.get("name") for field in fields}
    series: list[dict[str, Any]] = []
    for field_id, months in result.items():
        series.append(
            {
                "field_id": field_id,
                "field_name": names.get(field_id),
                "points": [dict(point) for point in months],
            }
        )
    return series

