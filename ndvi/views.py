"""NDVI vegetation index endpoints.

Authentication: JWT or session (global defaults).
All successful responses use `config.api.responses.success_response`
with the standard envelope:

    {"status": 0, "message": "<str>", "data": <object|null>, "errors": null}
"""

from __future__ import annotations

import logging
from typing import Any, cast

from django.core.cache import caches
from django.shortcuts import get_object_or_404
from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiTypes,
    extend_schema,
    inline_serializer,
)
from rest_framework import serializers, status
from rest_framework.exceptions import Throttled, ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from config.api.openapi import (
    error_envelope_serializer,
    success_envelope_serializer,
)
from config.api.responses import success_response

from .models import VegetationIndexRun
from .serializers import (
    VegetationIndexQuerySerializer,
    VegetationIndexResultSerializer,
    VegetationIndexRunSerializer,
)
from .services import (
    REFRESH_COOLDOWN_SECONDS,
    enqueue_run,
    get_cached_vegetation_index,
    is_sentinel_hub_configured,
    latest_run,
)
from .tasks import run_vegetation_index_task

logger = logging.getLogger(__name__)

ndvi_error_response = error_envelope_serializer("NdviErrorResponse")

vegetation_index_success_response = success_envelope_serializer(
    "VegetationIndexSuccess",
    data=inline_serializer(
        name="VegetationIndexData",
        fields={
            "configured": serializers.BooleanField(),
            "year": serializers.IntegerField(),
            "result": VegetationIndexResultSerializer(allow_null=True),
            "latest_run": VegetationIndexRunSerializer(allow_null=True),
        },
    ),
)

refresh_success_response = success_envelope_serializer(
    "VegetationIndexRefreshSuccess",
    data=inline_serializer(
        name="VegetationIndexRefreshData",
        fields={"run_id": serializers.IntegerField()},
    ),
)

run_success_response = success_envelope_serializer(
    "VegetationIndexRunSuccess", data=VegetationIndexRunSerializer()
)

year_query_params = [
    OpenApiParameter(
        name="year",
        type=OpenApiTypes.INT,
        location=OpenApiParameter.QUERY,
        required=False,
        description="Growing-season year (default current)",
    ),
]


class VegetationIndexView(APIView):
    """Serve the cached result of the latest NDVI run for a year."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        parameters=year_query_params,
        responses={
            200: vegetation_index_success_response,
            400: ndvi_error_response,
        },
    )
    def get(self, request: Request) -> Response:
        """Return the cached series (or null) plus run and config state.

        Never queries Sentinel Hub; use the refresh endpoint to start a run.
        """

        serializer = VegetationIndexQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        year = cast(int, serializer.validated_data["year"])
        owner_id = cast(int, request.user.id)

        run = latest_run(owner_id, year)
        payload: dict[str, Any] = {
            "configured": is_sentinel_hub_configured(),
            "year": year,
            "result": get_cached_vegetation_index(owner_id, year),
            "latest_run": (
                VegetationIndexRunSerializer(run).data if run else None
            ),
        }
        return success_response(payload, message="Vegetation index")


class VegetationIndexRefreshView(APIView):
    """Manual NDVI run trigger with a per-user cooldown."""

    permission_classes = [IsAuthenticated]
    throttle_cooldown = REFRESH_COOLDOWN_SECONDS

    @extend_schema(
        request=VegetationIndexQuerySerializer,
        responses={
            202: refresh_success_response,
            400: ndvi_error_response,
            429: ndvi_error_response,
        },
    )
    def post(self, request: Request) -> Response:
        """Queue an orchestration run for the year if not recently triggered."""

        serializer = VegetationIndexQuerySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        year = cast(int, serializer.validated_data["year"])
        owner_id = cast(int, request.user.id)

        if not is_sentinel_hub_configured():
            raise ValidationError(
                {"detail": "Sentinel Hub credentials are not configured."}
            )

        throttle_cache = caches["default"]
        key = f"ndvi:refresh:throttle:{owner_id}:{year}"
        if throttle_cache.get(key):
            raise Throttled(
                wait=self.throttle_cooldown,
                detail="Refresh already triggered recently.",
            )
        throttle_cache.set(key, "1", self.throttle_cooldown)

        run, created = enqueue_run(owner_id, year)
        if created:
            run_vegetation_index_task.delay(run.id)
        else:
            logger.info("ndvi.refresh.reused run_id=%s", run.id)

        return success_response(
            {"run_id": run.id},
            message="Refresh queued",
            status_code=status.HTTP_202_ACCEPTED,
        )


class VegetationIndexRunStatusView(APIView):
    """Inspect an NDVI run for the authenticated user."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        responses={
            200: run_success_response,
            404: ndvi_error_response,
        }
    )
    def get(self, request: Request, run_id: int) -> Response:
        """Return status and progress of an NDVI run."""

        run = get_object_or_404(
            VegetationIndexRun,
            id=run_id,
            owner_id=cast(int, request.user.id),
        )
        return success_response(
            VegetationIndexRunSerializer(run).data, message="Run status"
        )
