from __future__ import annotations

from typing import Any

from django.utils import timezone
from rest_framework import serializers

from .models import VegetationIndexRun


class VegetationIndexQuerySerializer(serializers.Serializer):
    year = serializers.IntegerField(
        required=False, min_value=1900, max_value=2100
    )

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        return {"year": attrs.get("year") or timezone.localdate().year}


class VegetationIndexRunSerializer(serializers.ModelSerializer):
    class Meta:
        model = VegetationIndexRun
        fields = [
            "id",
            "year",
            "status",
            "completed",
            "total",
            "last_error",
            "created_at",
            "started_at",
            "finished_at",
        ]
        read_only_fields = fields


class MonthlyNdviSerializer(serializers.Serializer):
    month = serializers.IntegerField()
    month_name = serializers.CharField()
    mean_ndvi = serializers.FloatField(allow_null=True)
    min_ndvi = serializers.FloatField(allow_null=True, required=False)
    max_ndvi = serializers.FloatField(allow_null=True, required=False)
    std_dev_ndvi = serializers.FloatField(allow_null=True, required=False)
    date_range = serializers.DictField(
        child=serializers.DateField(), required=False
    )


class VegetationSeriesSerializer(serializers.Serializer):
    field_id = serializers.IntegerField()
    field_name = serializers.CharField(allow_null=True)
    points = MonthlyNdviSerializer(many=True)


class VegetationIndexResultSerializer(serializers.Serializer):
    """Schema-only description of a cached run result."""

    year = serializers.IntegerField()
    months = serializers.ListField(child=serializers.IntegerField())
    generated_at = serializers.DateTimeField()
    series = VegetationSeriesSerializer(many=True)
