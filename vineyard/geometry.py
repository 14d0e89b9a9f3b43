"""GeoJSON polygon helpers for vineyard block boundaries.

Blocks store their boundary as a GeoJSON ``Polygon`` (WGS84, ``[lng, lat]``
positions). Only the outer ring is used for NDVI queries.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Final

_MIN_DISTINCT_VERTICES: Final[int] = 3


class GeometryError(ValueError):
    """Raised when a block geometry is not a usable closed polygon ring."""


def _as_position(raw: Any) -> tuple[float, float]:
    if not isinstance(raw, Sequence) or isinstance(raw, str) or len(raw) < 2:
        raise GeometryError("Each vertex must be a [lng, lat] pair.")
    try:
        lng = float(raw[0])
        lat = float(raw[1])
    except (TypeError, ValueError) as exc:
        raise GeometryError("Vertex coordinates must be numeric.") from exc
    if not -180 <= lng <= 180 or not -90 <= lat <= 90:
        raise GeometryError("Vertex coordinates are out of WGS84 range.")
    return lng, lat


def outer_ring(geom: Any) -> list[tuple[float, float]]:
    """Return the validated outer ring of a GeoJSON polygon.

    The ring must be closed (first vertex equals last vertex) and hold at
    least three distinct vertices.
    """

    if not isinstance(geom, Mapping):
        raise GeometryError("Geometry must be a GeoJSON object.")
    if geom.get("type") != "Polygon":
        raise GeometryError("Geometry type must be Polygon.")
    rings = geom.get("coordinates")
    if not isinstance(rings, Sequence) or isinstance(rings, str) or not rings:
        raise GeometryError("Polygon must include coordinates.")
    raw_ring = rings[0]
    if not isinstance(raw_ring, Sequence) or isinstance(raw_ring, str):
        raise GeometryError("Polygon ring must be a list of vertices.")

    ring = [_as_position(vertex) for vertex in raw_ring]
    if len(ring) < _MIN_DISTINCT_VERTICES + 1 or ring[0] != ring[-1]:
        raise GeometryError("Polygon ring must be closed.")
    if len(set(ring[:-1])) < _MIN_DISTINCT_VERTICES:
        raise GeometryError(
            "Polygon ring must have at least 3 distinct vertices."
        )
    return ring


def validate_polygon(geom: Any) -> None:
    outer_ring(geom)


def has_valid_polygon(geom: Any) -> bool:
    if geom is None:
        return False
    try:
        outer_ring(geom)
    except GeometryError:
        return False
    return True

