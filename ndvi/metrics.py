from __future__ import annotations

from prometheus_client import Counter, Histogram

ndvi_backend_requests_total = Counter(
    "ndvi_backend_requests_total",
    "Count of NDVI backend evaluations",
    labelnames=["operation", "outcome"],
)

ndvi_backend_latency_seconds = Histogram(
    "ndvi_backend_latency_seconds",
    "Latency of NDVI backend evaluations",
    labelnames=["operation"],
    buckets=(0.1, 0.3, 0.5, 1, 2, 5, 10, 20, 30),
)

ndvi_tile_proxy_requests_total = Counter(
    "ndvi_tile_proxy_requests_total",
    "Count of proxied NDVI tile fetches",
    labelnames=["outcome"],
)

ndvi_point_samples_total = Counter(
    "ndvi_point_samples_total",
    "Count of NDVI point samples by outcome",
    labelnames=["outcome"],
)
