from __future__ import annotations

from decimal import Decimal
from typing import Any, Final

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils.text import slugify

from .geometry import GeometryError, validate_polygon

_ZERO: Final[Decimal] = Decimal("0")


class VineyardBlock(models.Model):
    """A mapped cultivation area (field / block)."""

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="vineyard_blocks",
    )

    name = models.CharField(max_length=120)
    slug = models.SlugField(max_length=140)
    variety = models.CharField(max_length=120, blank=True, default="")
    acres = models.DecimalField(
        max_digits=10,
        decimal_places=3,
        default=_ZERO,
        validators=[MinValueValidator(_ZERO)],
    )

    # GeoJSON Polygon, [lng, lat] positions (WGS84)
    geom = models.JSONField(null=True, blank=True)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["owner", "slug"],
                name="uniq_block_owner_slug",
            ),
            models.UniqueConstraint(
                fields=["owner", "name"],
                name="uniq_block_owner_name",
            ),
        ]
        indexes = [
            models.Index(
                fields=["owner", "name"], name="vineyard_block_owner_name"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.owner_id})"

    def clean(self) -> None:
        super().clean()
        if self.acres is not None and self.acres < 0:
            raise ValidationError("acres must be >= 0.")
        if self.geom is not None:
            try:
                validate_polygon(self.geom)
            except GeometryError as exc:
                raise ValidationError(str(exc)) from exc

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.slug:
            base = slugify(self.name)[:120] or "block"
            self.slug = base
        super().save(*args, **kwargs)


class OwnedRecord(models.Model):
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        abstract = True


class LaborLog(OwnedRecord):
    block = models.ForeignKey(
        VineyardBlock,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="labor_logs",
    )
    log_date = models.DateField(null=True, blank=True)
    task_type = models.CharField(max_length=80, blank=True, default="")
    hours_worked = models.DecimalField(
        max_digits=8, decimal_places=2, null=True, blank=True
    )
    hourly_rate = models.DecimalField(
        max_digits=8, decimal_places=2, null=True, blank=True
    )

    def __str__(self) -> str:
        return f"LaborLog {self.log_date} hours={self.hours_worked}"


class InventoryItem(OwnedRecord):
    class Category(models.TextChoices):
        CHEMICAL = "chemical", "Chemical"
        FERTILIZER = "fertilizer", "Fertilizer"
        IRRIGATION = "irrigation", "Irrigation"
        SUPPLIES = "supplies", "Supplies"
        OTHER = "other", "Other"

    name = models.CharField(max_length=120)
    category = models.CharField(
        max_length=32, choices=Category.choices, default=Category.OTHER
    )
    unit_cost = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )

    def __str__(self) -> str:
        return f"{self.name} ({self.category})"


class InventoryTransaction(OwnedRecord):
    class TransactionType(models.TextChoices):
        USE = "use", "Use"
        PURCHASE = "purchase", "Purchase"
        ADJUSTMENT = "adjustment", "Adjustment"

    item = models.ForeignKey(
        InventoryItem,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="transactions",
    )
    transaction_type = models.CharField(
        max_length=16, choices=TransactionType.choices
    )
    transaction_date = models.DateField(null=True, blank=True)
    quantity = models.DecimalField(
        max_digits=12, decimal_places=3, null=True, blank=True
    )
    unit_cost = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )

    def __str__(self) -> str:
        return (
            f"InventoryTransaction {self.transaction_type} "
            f"qty={self.quantity} item={self.item_id}"
        )


class SprayApplication(OwnedRecord):
    block = models.ForeignKey(
        VineyardBlock,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="spray_applications",
    )
    application_date = models.DateField(null=True, blank=True)
    product_name = models.CharField(max_length=160, blank=True, default="")

    def __str__(self) -> str:
        return f"Spray {self.product_name} {self.application_date}"


class IrrigationEvent(OwnedRecord):
    block = models.ForeignKey(
        VineyardBlock,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="irrigation_events",
    )
    event_date = models.DateField(null=True, blank=True)
    duration_hours = models.DecimalField(
        max_digits=8, decimal_places=2, null=True, blank=True
    )
    total_water_gallons = models.DecimalField(
        max_digits=14, decimal_places=2, null=True, blank=True
    )

    def __str__(self) -> str:
        return f"Irrigation {self.event_date} gal={self.total_water_gallons}"


class HarvestSample(OwnedRecord):
    block = models.ForeignKey(
        VineyardBlock,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="harvest_samples",
    )
    sample_date = models.DateField(null=True, blank=True)
    brix = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True
    )
    ph = models.DecimalField(
        max_digits=4, decimal_places=2, null=True, blank=True
    )
    ta = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True
    )

    def __str__(self) -> str:
        return f"HarvestSample {self.sample_date} block={self.block_id}"


class FieldYieldHistory(OwnedRecord):
    block = models.ForeignKey(
        VineyardBlock,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="yield_history",
    )
    harvest_year = models.PositiveIntegerField(null=True, blank=True)
    harvest_date = models.DateField(null=True, blank=True)
    tons_harvested = models.DecimalField(
        max_digits=10, decimal_places=3, null=True, blank=True
    )
    price_per_ton = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )
    brix = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True
    )
    ph = models.DecimalField(
        max_digits=4, decimal_places=2, null=True, blank=True
    )
    ta = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True
    )

    class Meta:
        indexes = [
            models.Index(
                fields=["owner", "harvest_year"],
                name="vineyard_yield_owner_year",
            ),
        ]

    def __str__(self) -> str:
        return (
            f"Yield {self.harvest_year} block={self.block_id} "
            f"tons={self.tons_harvested}"
        )
