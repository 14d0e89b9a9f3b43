from __future__ import annotations

import logging
from typing import Any

from asgiref.sync import async_to_sync, sync_to_async
from celery import shared_task

from .metrics import ndvi_runs_total
from .models import VegetationIndexRun
from .services import run_vegetation_index, store_vegetation_index

logger = logging.getLogger(__name__)


@shared_task(bind=True)
def run_vegetation_index_task(self: Any, run_id: int) -> str:
    """Execute a queued NDVI run and cache its result.

    No retries: a failed run is marked ``failed`` and a new refresh starts
    a fresh run.
    """

    run = VegetationIndexRun.objects.get(id=run_id)
    if run.status != VegetationIndexRun.RunStatus.QUEUED:
        logger.info("ndvi.run.skipped run_id=%s status=%s", run.id, run.status)
        return "skipped"

    run.mark_running()
    record_progress = sync_to_async(run.mark_progress)

    async def on_progress(completed: int, total: int) -> None:
        await record_progress(completed, total)

    try:
        payload = async_to_sync(run_vegetation_index)(
            run.owner_id, run.year, on_progress=on_progress
        )
    except Exception as exc:
        logger.exception("ndvi.run.failed run_id=%s err=%s", run.id, exc)
        run.mark_finished(VegetationIndexRun.RunStatus.FAILED, error=str(exc))
        ndvi_runs_total.labels(status=VegetationIndexRun.RunStatus.FAILED).inc()
        raise

    if payload:
        store_vegetation_index(run.owner_id, run.year, payload)
    run.mark_finished(VegetationIndexRun.RunStatus.SUCCESS)
    ndvi_runs_total.labels(status=VegetationIndexRun.RunStatus.SUCCESS).inc()
    logger.info(
        "ndvi.run.finished run_id=%s completed=%s total=%s",
        run.id,
        run.completed,
        run.total,
    )
    return "ok" if payload else "not_configured"
