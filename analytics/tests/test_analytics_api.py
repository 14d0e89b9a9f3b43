from __future__ import annotations

import secrets
from datetime import date
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from rest_framework import status
from rest_framework.test import APITestCase

from vineyard.models import (
    FieldYieldHistory,
    InventoryItem,
    InventoryTransaction,
    LaborLog,
    VineyardBlock,
)

ANALYTICS_URL = "/api/v1/analytics/"


class AnalyticsApiTests(APITestCase):
    def setUp(self) -> None:
        password = secrets.token_urlsafe(16)
        self.user = get_user_model().objects.create_user(
            username="grower",
            password=password,
            email="grower@example.com",
        )
        self.other = get_user_model().objects.create_user(
            username="neighbour",
            password=password,
            email="neighbour@example.com",
        )
        self.block = VineyardBlock.objects.create(
            owner=self.user,
            name="North Slope",
            variety="Pinot Noir",
            acres=Decimal("4.000"),
        )
        LaborLog.objects.create(
            owner=self.user,
            block=self.block,
            log_date=date(2024, 6, 10),
            task_type="pruning",
            hours_worked=Decimal("8"),
            hourly_rate=Decimal("25"),
        )
        item = InventoryItem.objects.create(
            owner=self.user,
            name="Sulfur",
            category=InventoryItem.Category.CHEMICAL,
            unit_cost=Decimal("10"),
        )
        InventoryTransaction.objects.create(
            owner=self.user,
            item=item,
            transaction_type=InventoryTransaction.TransactionType.USE,
            transaction_date=date(2024, 5, 1),
            quantity=Decimal("-5"),
        )
        FieldYieldHistory.objects.create(
            owner=self.user,
            block=self.block,
            harvest_year=2024,
            harvest_date=date(2024, 9, 15),
            tons_harvested=Decimal("10"),
            price_per_ton=Decimal("2000"),
            brix=Decimal("24"),
            ph=Decimal("3.3"),
            ta=Decimal("6.5"),
        )
        LaborLog.objects.create(
            owner=self.other,
            log_date=date(2024, 6, 11),
            hours_worked=Decimal("100"),
            hourly_rate=Decimal("100"),
        )

    def test_requires_authentication(self) -> None:
        resp = self.client.get(ANALYTICS_URL)
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_year_snapshot_for_owner(self) -> None:
        self.client.force_authenticate(user=self.user)
        resp = self.client.get(ANALYTICS_URL, {"window": "year", "year": 2024})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        body = resp.json()
        self.assertEqual(body["status"], 0)
        data = body["data"]
        self.assertEqual(data["window"], "year")
        self.assertEqual(data["totals"]["labor_cost"], 200.0)
        self.assertEqual(data["totals"]["material_costs"], 50.0)
        self.assertEqual(data["totals"]["chemical_costs"], 50.0)
        self.assertEqual(data["totals"]["total_costs"], 250.0)
        self.assertEqual(data["totals"]["estimated_revenue"], 20000.0)
        self.assertEqual(data["kpis"]["quality_score"], 98.4)
        self.assertEqual(data["kpis"]["total_acres"], 4.0)
        self.assertEqual(data["monthly"][5]["labor_cost"], 200.0)
        self.assertEqual(len(data["monthly"]), 12)
        self.assertEqual(
            [row["block_id"] for row in data["blocks"]], [self.block.id]
        )
        self.assertEqual(data["blocks"][0]["yield_per_acre"], 2.5)
        self.assertTrue(data["is_complete"])
        self.assertEqual(data["incomplete_sources"], [])

    def test_other_year_excludes_records(self) -> None:
        self.client.force_authenticate(user=self.user)
        resp = self.client.get(ANALYTICS_URL, {"window": "year", "year": 2023})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        data = resp.json()["data"]
        self.assertEqual(data["totals"]["total_costs"], 0.0)
        self.assertEqual(data["blocks"], [])
        self.assertEqual(data["cost_breakdown"], [])

    def test_invalid_window_rejected(self) -> None:
        self.client.force_authenticate(user=self.user)
        resp = self.client.get(ANALYTICS_URL, {"window": "decade"})
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.json()["status"], 1)

    def test_failed_source_returns_partial_snapshot(self) -> None:
        self.client.force_authenticate(user=self.user)
        with patch.object(
            LaborLog.objects,
            "filter",
            side_effect=DatabaseError("relation missing"),
        ):
            resp = self.client.get(
                ANALYTICS_URL, {"window": "year", "year": 2024}
            )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        body = resp.json()
        self.assertEqual(body["message"], "Analytics (partial)")
        data = body["data"]
        self.assertEqual(data["incomplete_sources"], ["labor_logs"])
        self.assertFalse(data["is_complete"])
        self.assertEqual(data["totals"]["labor_cost"], 0.0)
        self.assertEqual(data["totals"]["material_costs"], 50.0)

    def test_superseded_request_returns_conflict(self) -> None:
        async def superseded(*args: object, **kwargs: object) -> None:
            return None

        self.client.force_authenticate(user=self.user)
        with patch("analytics.views.build_report", new=superseded):
            resp = self.client.get(
                ANALYTICS_URL, {"window": "year", "year": 2024}
            )
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        body = resp.json()
        self.assertEqual(body["status"], 1)
        self.assertEqual(
            body["message"], "A newer analytics request replaced this one."
        )
