"""Sentinel Hub NDVI engine using the Statistics API."""

from __future__ import annotations

import asyncio
import json
import logging
import math
import os
import time
from collections.abc import Mapping
from datetime import date, datetime
from types import TracebackType
from typing import Any, Final

import httpx
from django.conf import settings
from django.core.cache import caches

from ndvi.metrics import (
    ndvi_cache_hit_total,
    ndvi_upstream_latency_seconds,
    ndvi_upstream_requests_total,
)

from .base import NDVIEngine, NdviStats, NdviUnavailable

logger = logging.getLogger(__name__)


DEFAULT_TIMEOUT: Final[float] = float(
    getattr(settings, "NDVI_REQUEST_TIMEOUT_SECONDS", 20)
)
DEFAULT_MAX_CLOUD: Final[int] = int(getattr(settings, "NDVI_MAX_CLOUD", 30))
WGS84_CRS: Final[str] = "http://www.opengis.net/def/crs/EPSG/0/4326"
RASTER_SIZE: Final[int] = 512

NDVI_EVALSCRIPT: Final[str] = """
//VERSION=3
function setup() {
  return {
    input: [{bands: ["B04", "B08", "SCL", "dataMask"]}],
    output: [
      { id: "ndvi", bands: 1, sampleType: "FLOAT32" },
      { id: "dataMask", bands: 1 }
    ]
  };
}

// no data, saturated, high-probability cloud, cirrus
const MASKED_SCL = [0, 1, 9, 10];

function evaluatePixel(sample) {
  const total = sample.B08 + sample.B04;
  if (MASKED_SCL.indexOf(sample.SCL) !== -1 || total === 0) {
    return { ndvi: [NaN], dataMask: [0] };
  }
  const ndvi = Math.max(-1, Math.min(1, (sample.B08 - sample.B04) / total));
  return { ndvi: [ndvi], dataMask: [sample.dataMask] };
}
"""


def _finite(value: Any) -> float | None:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _rounded(value: float | None) -> float | None:
    return round(value, 3) if value is not None else None


class SentinelHubEngine(NDVIEngine):
    """Fetch monthly NDVI statistics for block polygons from Sentinel Hub.

    One attempt per request: failures surface to the caller, which decides
    whether the month becomes a gap.
    """

    engine_name: Final[str] = "sentinelhub"

    def __init__(
        self,
        *,
        client_id: str | None = None,
        client_secret: str | None = None,
        cache_alias: str = "default",
        timeout_seconds: float | None = None,
        base_url: str | None = None,
        max_cloud: int | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.client_id = client_id or os.getenv("SENTINELHUB_CLIENT_ID")
        self.client_secret = client_secret or os.getenv(
            "SENTINELHUB_CLIENT_SECRET"
        )
        if not self.client_id or not self.client_secret:
            raise ValueError("Sentinel Hub client credentials are required")

        self.base_url = base_url or os.getenv(
            "SENTINELHUB_BASE_URL", "https://services.sentinel-hub.com"
        )
        self.token_url = f"{self.base_url}/oauth/token"
        self.statistics_url = f"{self.base_url}/api/v1/statistics"
        self.cache = caches[cache_alias]
        self.timeout_seconds = timeout_seconds or DEFAULT_TIMEOUT
        self.max_cloud = DEFAULT_MAX_CLOUD if max_cloud is None else max_cloud
        self._owns_client = client is None
        self._http = client or httpx.AsyncClient(timeout=self.timeout_seconds)
        self._token_lock = asyncio.Lock()

    async def __aenter__(self) -> SentinelHubEngine:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def fetch_for_geometry(
        self,
        geometry: Mapping[str, Any],
        *,
        start: date,
        end: date,
    ) -> NdviStats:
        payload = self._build_statistics_payload(
            geometry=geometry, start=start, end=end
        )
        token = await self._get_access_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        response = await self._request(
            "POST", self.statistics_url, json=payload, headers=headers
        )
        return self._parse_statistics_response(
            response.json(), start=start, end=end
        )

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        started = time.monotonic()
        try:
            response = await self._http.request(
                method,
                url,
                json=json,
                data=data,
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except httpx.RequestError:
            ndvi_upstream_requests_total.labels(
                engine=self.engine_name, outcome="network"
            ).inc()
            raise
        ndvi_upstream_latency_seconds.labels(engine=self.engine_name).observe(
            time.monotonic() - started
        )
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError:
            ndvi_upstream_requests_total.labels(
                engine=self.engine_name, outcome="error"
            ).inc()
            raise
        ndvi_upstream_requests_total.labels(
            engine=self.engine_name, outcome="success"
        ).inc()
        return response

    async def _get_access_token(self) -> str:
        key = f"ndvi:sentinelhub:token:{self.client_id}"
        # Concurrent month queries share one token request.
        async with self._token_lock:
            cached = await self.cache.aget(key)
            if cached:
                ndvi_cache_hit_total.labels(layer="sentinel_token").inc()
                return str(cached)

            data = {
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            }
            headers = {"Content-Type": "application/x-www-form-urlencoded"}
            response = await self._request(
                "POST", self.token_url, data=data, headers=headers
            )
            token_data = response.json()
            token = token_data.get("access_token")
            expires_in = int(token_data.get("expires_in", 3600))
            if not token:
                raise ValueError(
                    "Sentinel Hub token response missing access_token"
                )

            ttl = max(expires_in - 60, 60)
            await self.cache.aset(key, token, ttl)
            return str(token)

    def _build_statistics_payload(
        self,
        *,
        geometry: Mapping[str, Any],
        start: date,
        end: date,
    ) -> dict[str, Any]:
        days = (end - start).days + 1
        payload: dict[str, Any] = {
            "input": {
                "bounds": {
                    "geometry": {
                        "type": geometry.get("type"),
                        "coordinates": geometry.get("coordinates"),
                    },
                    "properties": {"crs": WGS84_CRS},
                },
                "data": [
                    {
                        "type": "sentinel-2-l2a",
                        "dataFilter": {"maxCloudCoverage": self.max_cloud},
                    }
                ],
            },
            "aggregation": {
                "timeRange": {
                    "from": datetime.combine(
                        start, datetime.min.time()
                    ).isoformat()
                    + "Z",
                    "to": datetime.combine(
                        end, datetime.max.time().replace(microsecond=0)
                    ).isoformat()
                    + "Z",
                },
                "aggregationInterval": {"of": f"P{days}D"},
                "width": RASTER_SIZE,
                "height": RASTER_SIZE,
                "evalscript": NDVI_EVALSCRIPT,
            },
            "calculations": {"default": {}},
        }
        logger.debug("sentinelhub.request payload=%s", json.dumps(payload))
        return payload

    def _parse_statistics_response(
        self, data: dict[str, Any], *, start: date, end: date
    ) -> NdviStats:
        for item in data.get("data", []):
            if item.get("error"):
                continue
            outputs = item.get("outputs", {})
            output = outputs.get("ndvi") or outputs.get("default") or {}
            bands = output.get("bands") or output.get("statistics") or {}
            band = bands.get("B0") or bands.get("ndvi") or {}
            stats = band.get("stats") or band
            if not isinstance(stats, Mapping):
                continue

            sample_count = _finite(stats.get("sampleCount"))
            no_data_count = _finite(stats.get("noDataCount")) or 0.0
            if sample_count is not None and sample_count <= no_data_count:
                continue
            mean = _finite(stats.get("mean"))
            if mean is None:
                continue
            return NdviStats(
                mean=round(mean, 3),
                min=_rounded(_finite(stats.get("min"))),
                max=_rounded(_finite(stats.get("max"))),
                std_dev=_rounded(_finite(stats.get("stDev"))),
                start=start,
                end=end,
            )
        raise NdviUnavailable(f"No valid NDVI between {start} and {end}")

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        return (
            "SentinelHubEngine("
            f"client_id={self.client_id}, base_url={self.base_url}, "
            f"timeout={self.timeout_seconds}"
            ")"
        )
