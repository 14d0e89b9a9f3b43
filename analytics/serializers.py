from __future__ import annotations

from typing import Any, cast

from rest_framework import serializers

from .services import normalize_window
from .windows import WindowKind


class AnalyticsQuerySerializer(serializers.Serializer):
    window = serializers.ChoiceField(
        choices=[kind.value for kind in WindowKind],
        required=False,
        default=WindowKind.YTD.value,
    )
    year = serializers.IntegerField(
        required=False, min_value=1900, max_value=2100
    )

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        window = normalize_window(
            cast(str | None, attrs.get("window")),
            cast(int | None, attrs.get("year")),
        )
        return {"window": window}


class TotalsSerializer(serializers.Serializer):
    labor_cost = serializers.FloatField()
    labor_hours = serializers.FloatField()
    material_costs = serializers.FloatField()
    chemical_costs = serializers.FloatField()
    water_usage_gallons = serializers.FloatField()
    water_cost = serializers.FloatField()
    total_costs = serializers.FloatField()
    spray_count = serializers.IntegerField()
    total_yield = serializers.FloatField()
    estimated_revenue = serializers.FloatField()


class KpiSerializer(serializers.Serializer):
    quality_score = serializers.FloatField()
    cost_per_ton = serializers.FloatField()
    profit_margin = serializers.FloatField()
    cost_per_acre = serializers.FloatField()
    yield_per_acre = serializers.FloatField()
    water_per_acre = serializers.FloatField()
    total_acres = serializers.FloatField()


class QualitySerializer(serializers.Serializer):
    avg_brix = serializers.FloatField(allow_null=True)
    avg_ph = serializers.FloatField(allow_null=True)
    avg_acidity = serializers.FloatField(allow_null=True)
    harvest_sample_count = serializers.IntegerField()
    avg_sample_brix = serializers.FloatField(allow_null=True)


class CostBreakdownRowSerializer(serializers.Serializer):
    category = serializers.CharField()
    label = serializers.CharField()
    amount = serializers.FloatField()


class MonthlyRowSerializer(serializers.Serializer):
    month = serializers.IntegerField()
    month_name = serializers.CharField()
    labor_cost = serializers.FloatField()
    material_cost = serializers.FloatField()
    yield_tons = serializers.FloatField()
    water_gallons = serializers.FloatField()
    spray_count = serializers.IntegerField()
    brix = serializers.FloatField(allow_null=True)
    ph = serializers.FloatField(allow_null=True)
    acidity = serializers.FloatField(allow_null=True)


class BlockRowSerializer(serializers.Serializer):
    block_id = serializers.IntegerField()
    name = serializers.CharField()
    variety = serializers.CharField(allow_blank=True)
    acres = serializers.FloatField()
    avg_brix = serializers.FloatField(allow_null=True)
    avg_ph = serializers.FloatField(allow_null=True)
    avg_acidity = serializers.FloatField(allow_null=True)
    total_yield = serializers.FloatField()
    yield_per_acre = serializers.FloatField()
    quality_score = serializers.FloatField()


class AnalyticsSnapshotSerializer(serializers.Serializer):
    """Schema-only description of `presentation.snapshot_payload`."""

    window = serializers.ChoiceField(choices=[k.value for k in WindowKind])
    reference_year = serializers.IntegerField()
    period_start = serializers.DateField()
    period_end = serializers.DateField()
    totals = TotalsSerializer()
    kpis = KpiSerializer()
    quality = QualitySerializer()
    cost_breakdown = CostBreakdownRowSerializer(many=True)
    monthly = MonthlyRowSerializer(many=True)
    blocks = BlockRowSerializer(many=True)
    incomplete_sources = serializers.ListField(child=serializers.CharField())
    is_complete = serializers.BooleanField()
