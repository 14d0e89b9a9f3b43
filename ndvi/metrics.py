from __future__ import annotations

from prometheus_client import Counter, Histogram

ndvi_runs_total = Counter(
    "ndvi_runs_total",
    "Vegetation index runs by final status",
    labelnames=["status"],
)

ndvi_orchestrator_requests_total = Counter(
    "ndvi_orchestrator_requests_total",
    "Field x month NDVI queries issued by the orchestrator",
    labelnames=["outcome"],
)

ndvi_upstream_requests_total = Counter(
    "ndvi_upstream_requests_total",
    "Count of upstream NDVI engine requests",
    labelnames=["engine", "outcome"],
)

ndvi_upstream_latency_seconds = Histogram(
    "ndvi_upstream_latency_seconds",
    "Latency of upstream NDVI engine requests",
    labelnames=["engine"],
    buckets=(0.1, 0.3, 0.5, 1, 2, 5, 10, 20, 30),
)

ndvi_cache_hit_total = Counter(
    "ndvi_cache_hit_total",
    "Cache hits by NDVI layer",
    labelnames=["layer"],
)
