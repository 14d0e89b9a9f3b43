from __future__ import annotations

from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


def _owner() -> models.ForeignKey:
    return models.ForeignKey(
        on_delete=django.db.models.deletion.CASCADE,
        related_name="+",
        to=settings.AUTH_USER_MODEL,
    )


def _block(related_name: str) -> models.ForeignKey:
    return models.ForeignKey(
        blank=True,
        null=True,
        on_delete=django.db.models.deletion.SET_NULL,
        related_name=related_name,
        to="vineyard.vineyardblock",
    )


def _id() -> models.BigAutoField:
    return models.BigAutoField(
        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
    )


def _decimal(max_digits: int, decimal_places: int) -> models.DecimalField:
    return models.DecimalField(
        blank=True,
        decimal_places=decimal_places,
        max_digits=max_digits,
        null=True,
    )


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="VineyardBlock",
            fields=[
                ("id", _id()),
                ("name", models.CharField(max_length=120)),
                ("slug", models.SlugField(max_length=140)),
                (
                    "variety",
                    models.CharField(blank=True, default="", max_length=120),
                ),
                (
                    "acres",
                    models.DecimalField(
                        decimal_places=3,
                        default=Decimal("0"),
                        max_digits=10,
                        validators=[
                            django.core.validators.MinValueValidator(
                                Decimal("0")
                            )
                        ],
                    ),
                ),
                ("geom", models.JSONField(blank=True, null=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="vineyard_blocks",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "indexes": [
                    models.Index(
                        fields=["owner", "name"],
                        name="vineyard_block_owner_name",
                    )
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("owner", "slug"),
                        name="uniq_block_owner_slug",
                    ),
                    models.UniqueConstraint(
                        fields=("owner", "name"),
                        name="uniq_block_owner_name",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="LaborLog",
            fields=[
                ("id", _id()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("log_date", models.DateField(blank=True, null=True)),
                (
                    "task_type",
                    models.CharField(blank=True, default="", max_length=80),
                ),
                ("hours_worked", _decimal(8, 2)),
                ("hourly_rate", _decimal(8, 2)),
                ("owner", _owner()),
                ("block", _block("labor_logs")),
            ],
            options={"abstract": False},
        ),
        migrations.CreateModel(
            name="InventoryItem",
            fields=[
                ("id", _id()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("name", models.CharField(max_length=120)),
                (
                    "category",
                    models.CharField(
                        choices=[
                            ("chemical", "Chemical"),
                            ("fertilizer", "Fertilizer"),
                            ("irrigation", "Irrigation"),
                            ("supplies", "Supplies"),
                            ("other", "Other"),
                        ],
                        default="other",
                        max_length=32,
                    ),
                ),
                ("unit_cost", _decimal(10, 2)),
                ("owner", _owner()),
            ],
            options={"abstract": False},
        ),
        migrations.CreateModel(
            name="InventoryTransaction",
            fields=[
                ("id", _id()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "transaction_type",
                    models.CharField(
                        choices=[
                            ("use", "Use"),
                            ("purchase", "Purchase"),
                            ("adjustment", "Adjustment"),
                        ],
                        max_length=16,
                    ),
                ),
                ("transaction_date", models.DateField(blank=True, null=True)),
                ("quantity", _decimal(12, 3)),
                ("unit_cost", _decimal(10, 2)),
                ("owner", _owner()),
                (
                    "item",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="transactions",
                        to="vineyard.inventoryitem",
                    ),
                ),
            ],
            options={"abstract": False},
        ),
        migrations.CreateModel(
            name="SprayApplication",
            fields=[
                ("id", _id()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("application_date", models.DateField(blank=True, null=True)),
                (
                    "product_name",
                    models.CharField(blank=True, default="", max_length=160),
                ),
                ("owner", _owner()),
                ("block", _block("spray_applications")),
            ],
            options={"abstract": False},
        ),
        migrations.CreateModel(
            name="IrrigationEvent",
            fields=[
                ("id", _id()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("event_date", models.DateField(blank=True, null=True)),
                ("duration_hours", _decimal(8, 2)),
                ("total_water_gallons", _decimal(14, 2)),
                ("owner", _owner()),
                ("block", _block("irrigation_events")),
            ],
            options={"abstract": False},
        ),
        migrations.CreateModel(
            name="HarvestSample",
            fields=[
                ("id", _id()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("sample_date", models.DateField(blank=True, null=True)),
                ("brix", _decimal(5, 2)),
                ("ph", _decimal(4, 2)),
                ("ta", _decimal(5, 2)),
                ("owner", _owner()),
                ("block", _block("harvest_samples")),
            ],
            options={"abstract": False},
        ),
        migrations.CreateModel(
            name="FieldYieldHistory",
            fields=[
                ("id", _id()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "harvest_year",
                    models.PositiveIntegerField(blank=True, null=True),
                ),
                ("harvest_date", models.DateField(blank=True, null=True)),
                ("tons_harvested", _decimal(10, 3)),
                ("price_per_ton", _decimal(10, 2)),
                ("brix", _decimal(5, 2)),
                ("ph", _decimal(4, 2)),
                ("ta", _decimal(5, 2)),
                ("owner", _owner()),
                ("block", _block("yield_history")),
            ],
            options={
                "indexes": [
                    models.Index(
                        fields=["owner", "harvest_year"],
                        name="vineyard_yield_owner_year",
                    )
                ],
            },
        ),
    ]
