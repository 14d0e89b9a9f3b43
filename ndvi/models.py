from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone


class VegetationIndexRun(models.Model):
    """Tracks one orchestrated NDVI run executed by Celery."""

    class RunStatus(models.TextChoices):
        QUEUED = "queued", "Queued"
        RUNNING = "running", "Running"
        SUCCESS = "success", "Success"
        FAILED = "failed", "Failed"

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="vegetation_index_runs",
    )
    year = models.PositiveIntegerField()
    status = models.CharField(
        max_length=16,
        choices=RunStatus.choices,
        default=RunStatus.QUEUED,
    )
    completed = models.PositiveIntegerField(default=0)
    total = models.PositiveIntegerField(default=0)
    last_error = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    started_at = models.DateTimeField(null=True, blank=True)
    finished_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(
                fields=["owner", "year", "status"],
                name="ndvi_run_owner_year_status",
            ),
        ]

    def __str__(self) -> str:
        return (
            f"VegetationIndexRun {self.id} year={self.year} "
            f"owner={self.owner_id} status={self.status}"
        )

    @property
    def is_active(self) -> bool:
        return self.status in (self.RunStatus.QUEUED, self.RunStatus.RUNNING)

    def mark_running(self) -> None:
        self.status = self.RunStatus.RUNNING
        self.started_at = timezone.now()
        self.completed = 0
        self.total = 0
        self.save(update_fields=["status", "started_at", "completed", "total"])

    def mark_progress(self, completed: int, total: int) -> None:
        self.completed = completed
        self.total = total
        self.save(update_fields=["completed", "total"])

    def mark_finished(self, status: str, error: str | None = None) -> None:
        self.status = status
        self.finished_at = timezone.now()
        self.last_error = error
        fields = ["status", "finished_at", "last_error"]
        self.save(update_fields=fields)
