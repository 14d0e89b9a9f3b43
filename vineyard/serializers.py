from __future__ import annotations

from typing import Any

from django.utils.text import slugify
from rest_framework import serializers

from .geometry import GeometryError, validate_polygon
from .models import VineyardBlock


class VineyardBlockSerializer(serializers.ModelSerializer):
    has_geometry = serializers.SerializerMethodField()

    class Meta:
        model = VineyardBlock
        fields = [
            "id",
            "name",
            "slug",
            "variety",
            "acres",
            "geom",
            "has_geometry",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "slug", "created_at", "updated_at"]

    def get_has_geometry(self, obj: VineyardBlock) -> bool:
        return obj.geom is not None

    def validate_geom(self, value: Any) -> Any:
        if value is None:
            return value
        try:
            validate_polygon(value)
        except GeometryError as exc:
            raise serializers.ValidationError(str(exc)) from exc
        return value

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        # Mirror the unique constraints early so the API returns neat errors.
        request = self.context.get("request")
        owner_id = getattr(getattr(request, "user", None), "id", None)
        if owner_id is None:
            return attrs

        name = attrs.get("name") or getattr(self.instance, "name", None)
        if not name:
            return attrs

        name_qs = VineyardBlock.objects.filter(owner_id=owner_id, name=name)
        if self.instance is not None:
            name_qs = name_qs.exclude(id=self.instance.id)
        if name_qs.exists():
            raise serializers.ValidationError(
                {"name": "Block name already exists."}
            )

        slug = getattr(self.instance, "slug", None) or (
            slugify(name)[:120] or "block"
        )
        slug_qs = VineyardBlock.objects.filter(owner_id=owner_id, slug=slug)
        if self.instance is not None:
            slug_qs = slug_qs.exclude(id=self.instance.id)
        if slug_qs.exists():
            raise serializers.ValidationError(
                {"name": "Block name conflicts with an existing slug."}
            )
        return attrs
