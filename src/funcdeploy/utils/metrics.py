"""Prometheus metrics for deployments."""

from prometheus_client import Counter, Histogram

DEPLOYMENT_COUNT = Counter(
    "funcdeploy_deployments_total",
    "Deployment operations by outcome",
    ["operation", "outcome"],
)

CODE_UPLOAD_COUNT = Counter(
    "funcdeploy_code_uploads_total",
    "Code archive upload decisions",
    ["result"],
)

BUILD_WAIT_DURATION = Histogram(
    "funcdeploy_build_wait_seconds",
    "Time spent polling a function until a terminal status",
    buckets=(5, 15, 30, 60, 120, 300, 600, 1200),
)
