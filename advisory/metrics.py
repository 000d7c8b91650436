from __future__ import annotations

from prometheus_client import Counter, Histogram

advisory_recommendations_total = Counter(
    "advisory_recommendations_total",
    "Count of recommendation generations by outcome",
    labelnames=["outcome"],
)

advisory_upstream_latency_seconds = Histogram(
    "advisory_upstream_latency_seconds",
    "Latency of text-generation backend requests",
    buckets=(0.5, 1, 2, 5, 10, 20, 30, 60, 120),
)
