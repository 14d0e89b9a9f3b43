"""Engine abstractions for NDVI providers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any, Protocol


class NdviUnavailable(Exception):
    """The provider answered but had no usable NDVI for the period."""


@dataclass(frozen=True)
class NdviStats:
    """NDVI statistics for one geometry over one date range."""

    mean: float
    min: float | None
    max: float | None
    std_dev: float | None
    start: date
    end: date


class NDVIEngine(Protocol):
    """Interface for engines returning NDVI statistics for a polygon."""

    engine_name: str

    async def fetch_for_geometry(
        self,
        geometry: Mapping[str, Any],
        *,
        start: date,
        end: date,
    ) -> NdviStats:
        """Return NDVI statistics or raise `NdviUnavailable`."""
