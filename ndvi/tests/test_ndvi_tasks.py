from __future__ import annotations

# ruff: noqa: S101
import secrets
from datetime import date
from typing import Any

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import caches

from analytics.types import ReaderResult
from ndvi.engines.base import NdviStats
from ndvi.models import VegetationIndexRun
from ndvi.services import VegetationIndexError, get_cached_vegetation_index
from ndvi.tasks import run_vegetation_index_task
from vineyard.models import VineyardBlock

POLYGON = {
    "type": "Polygon",
    "coordinates": [
        [[0.0, 0.0], [0.0, 0.01], [0.01, 0.01], [0.01, 0.0], [0.0, 0.0]]
    ],
}


@pytest.fixture
def owner() -> Any:
    caches["default"].clear()
    return get_user_model().objects.create_user(
        username="task-owner",
        email="task-owner@example.com",
        password=secrets.token_urlsafe(12),
    )


def _configure(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SENTINELHUB_CLIENT_ID", "cid")
    monkeypatch.setenv("SENTINELHUB_CLIENT_SECRET", secrets.token_urlsafe(12))


@pytest.mark.django_db
def test_task_runs_orchestration_and_caches_result(
    owner: Any, monkeypatch: pytest.MonkeyPatch
) -> None:
    north = VineyardBlock.objects.create(owner=owner, name="North", geom=POLYGON)
    VineyardBlock.objects.create(owner=owner, name="South", geom=POLYGON)
    VineyardBlock.objects.create(owner=owner, name="No map")
    run = VegetationIndexRun.objects.create(owner=owner, year=2023)
    _configure(monkeypatch)

    async def fake_fetch(
        field: Any, start: date, end: date, **_: Any
    ) -> NdviStats:
        if field["id"] == north.id and start.month == 5:
            raise RuntimeError("timeout")
        return NdviStats(
            mean=0.5, min=0.2, max=0.7, std_dev=0.1, start=start, end=end
        )

    monkeypatch.setattr("ndvi.services.fetch_ndvi_for_block", fake_fetch)

    assert run_vegetation_index_task(run.id) == "ok"

    run.refresh_from_db()
    assert run.status == VegetationIndexRun.RunStatus.SUCCESS
    assert run.total == 14
    assert run.completed == 14
    assert run.started_at is not None
    assert run.finished_at is not None

    cached = get_cached_vegetation_index(owner.id, 2023)
    assert cached is not None
    assert len(cached["series"]) == 2
    north_series = next(
        s for s in cached["series"] if s["field_id"] == north.id
    )
    assert north_series["points"][1] == {
        "month": 5,
        "month_name": "May",
        "mean_ndvi": None,
    }


@pytest.mark.django_db
def test_task_marks_run_failed(
    owner: Any, monkeypatch: pytest.MonkeyPatch
) -> None:
    run = VegetationIndexRun.objects.create(owner=owner, year=2023)
    _configure(monkeypatch)
    monkeypatch.setattr(
        "vineyard.readers.list_vineyard_blocks",
        lambda *_: ReaderResult(error="db gone"),
    )

    with pytest.raises(VegetationIndexError):
        run_vegetation_index_task(run.id)

    run.refresh_from_db()
    assert run.status == VegetationIndexRun.RunStatus.FAILED
    assert "db gone" in (run.last_error or "")


@pytest.mark.django_db
def test_task_without_credentials_finishes_without_result(
    owner: Any, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("SENTINELHUB_CLIENT_ID", raising=False)
    run = VegetationIndexRun.objects.create(owner=owner, year=2023)

    assert run_vegetation_index_task(run.id) == "not_configured"

    run.refresh_from_db()
    assert run.status == VegetationIndexRun.RunStatus.SUCCESS
    assert get_cached_vegetation_index(owner.id, 2023) is None


@pytest.mark.django_db
def test_task_skips_runs_that_already_started(owner: Any) -> None:
    run = VegetationIndexRun.objects.create(
        owner=owner, year=2023, status=VegetationIndexRun.RunStatus.RUNNING
    )
    assert run_vegetation_index_task(run.id) == "skipped"
