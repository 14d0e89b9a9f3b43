from __future__ import annotations

from prometheus_client import Counter, Histogram

analytics_source_failures_total = Counter(
    "analytics_source_failures_total",
    "Source reader loads degraded to empty",
    labelnames=["source"],
)

analytics_reports_total = Counter(
    "analytics_reports_total",
    "Analytics snapshots computed",
    labelnames=["window", "outcome"],
)

analytics_report_latency_seconds = Histogram(
    "analytics_report_latency_seconds",
    "Time spent loading sources and computing a snapshot",
    labelnames=["window"],
    buckets=(0.05, 0.1, 0.3, 0.5, 1, 2, 5, 10),
)
