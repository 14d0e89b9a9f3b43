"""Global DRF exception handler producing the project's error envelope.

    {"status": 1, "message": "<str>", "data": null, "errors": <object|null>}
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .responses import JSONValue

if TYPE_CHECKING:
    from rest_framework.response import Response

logger = logging.getLogger(__name__)


def _to_json_value(value: object) -> JSONValue:
    if value is None or isinstance(value, str | int | float | bool):
        return value
    if isinstance(value, Mapping):
        return {str(k): _to_json_value(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_to_json_value(v) for v in value]
    return str(value)


def _envelope(message: str, errors: JSONValue | None) -> dict[str, JSONValue]:
    return {"status": 1, "message": message, "data": None, "errors": errors}


def _view_name(context: Mapping[str, Any]) -> str:
    view = context.get("view")
    return view.__class__.__name__ if view is not None else "-"


def custom_exception_handler(
    exc: Exception,
    context: dict[str, Any],
) -> Response:
    # Lazy imports: safe even if settings aren't configured at import time.
    from rest_framework import status
    from rest_framework.exceptions import Throttled
    from rest_framework.response import Response
    from rest_framework.views import exception_handler as drf_exception_handler

    response = drf_exception_handler(exc, context)

    if response is None:
        logger.error(
            "api.unhandled view=%s err=%s",
            _view_name(context),
            exc,
            exc_info=exc,
        )
        return Response(
            _envelope("Internal server error", None),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    detail = _to_json_value(response.data)

    if isinstance(exc, Throttled):
        errors: dict[str, JSONValue] = (
            {**detail} if isinstance(detail, dict) else {"detail": detail}
        )
        if exc.wait is not None:
            errors["wait"] = exc.wait
        response.data = _envelope("Too Many Requests", errors)
        return response

    message = "Request failed"
    if isinstance(detail, dict):
        maybe = detail.get("detail")
        if isinstance(maybe, str):
            message = maybe
    elif isinstance(detail, str):
        message = detail

    if response.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.warning(
            "api.error view=%s status=%s message=%s",
            _view_name(context),
            response.status_code,
            message,
        )
    response.data = _envelope(message, detail)
    return response
