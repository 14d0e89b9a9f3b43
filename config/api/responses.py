"""Success and error envelopes shared by every API view."""

from __future__ import annotations

from typing import TypeAlias

from rest_framework import status
from rest_framework.response import Response

JSONScalar: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]


def success_response(
    data: JSONValue | None,
    message: str = "OK",
    *,
    status_code: int = status.HTTP_200_OK,
) -> Response:
    """Wrap ``data`` as ``{"status": 0, "message", "data", "errors": null}``."""

    return Response(
        {"status": 0, "message": message, "data": data, "errors": None},
        status=status_code,
    )


def error_response(
    message: str,
    *,
    errors: JSONValue | None = None,
    status_code: int = status.HTTP_400_BAD_REQUEST,
) -> Response:
    return Response(
        {"status": 1, "message": message, "data": None, "errors": errors},
        status=status_code,
    )
