"""Analytics API endpoint.

Authentication: JWT or session (global defaults).
Successful responses use `config.api.responses.success_response`:

    {"status": 0, "message": "<str>", "data": <snapshot>, "errors": null}
"""

from __future__ import annotations

from typing import cast

from asgiref.sync import async_to_sync
from drf_spectacular.utils import OpenApiParameter, OpenApiTypes, extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from config.api.openapi import (
    error_envelope_serializer,
    success_envelope_serializer,
)
from config.api.responses import success_response

from .serializers import AnalyticsQuerySerializer, AnalyticsSnapshotSerializer
from .services import ReportSuperseded, build_report
from .windows import ReportingWindow, WindowKind

analytics_error_response = error_envelope_serializer("AnalyticsErrorResponse")
analytics_success_response = success_envelope_serializer(
    "AnalyticsSuccess", data=AnalyticsSnapshotSerializer()
)

analytics_query_params = [
    OpenApiParameter(
        name="window",
        type=OpenApiTypes.STR,
        location=OpenApiParameter.QUERY,
        required=False,
        enum=[kind.value for kind in WindowKind],
        description="Reporting window (default ytd)",
    ),
    OpenApiParameter(
        name="year",
        type=OpenApiTypes.INT,
        location=OpenApiParameter.QUERY,
        required=False,
        description="Reference year for ytd/year windows (default current)",
    ),
]


class AnalyticsView(APIView):
    """Cost, yield and quality snapshot for the caller's vineyard."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        parameters=analytics_query_params,
        responses={
            200: analytics_success_response,
            400: analytics_error_response,
            409: analytics_error_response,
        },
    )
    def get(self, request: Request) -> Response:
        """Compute the snapshot for the requested window.

        Sources that fail to load come back empty and are listed under
        `incomplete_sources`; the request itself still succeeds.
        A request overtaken by a newer one from the same user gets 409.
        """

        serializer = AnalyticsQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        window = cast(ReportingWindow, serializer.validated_data["window"])

        payload = async_to_sync(build_report)(
            cast(int, request.user.id), window
        )
        if payload is None:
            raise ReportSuperseded()
        message = "Analytics" if payload["is_complete"] else "Analytics (partial)"
        return success_response(payload, message=message)
