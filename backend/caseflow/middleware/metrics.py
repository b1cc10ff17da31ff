"""
Prometheus metrics middleware.

Collects HTTP request metrics (counter + histogram) and exposes application-level
counters for case transitions and access decisions.
"""

import time

from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

# ── HTTP metrics ─────────────────────────────────────────────────────────────

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# ── Workflow metrics ─────────────────────────────────────────────────────────

case_transitions_total = Counter(
    "case_transitions_total",
    "Committed case status transitions",
    ["from_status", "to_status"],
)

case_transition_conflicts_total = Counter(
    "case_transition_conflicts_total",
    "Status commits rejected because the case changed concurrently",
)

post_commit_failures_total = Counter(
    "post_commit_failures_total",
    "Audit or notification side effects that failed after a committed transition",
    ["kind"],
)

# ── Access metrics ───────────────────────────────────────────────────────────

access_decisions_total = Counter(
    "access_decisions_total",
    "Access decisions by resource type and outcome",
    ["resource_type", "outcome"],
)


def _normalize_path(path: str) -> str:
    """Collapse path parameters to reduce cardinality.

    e.g. /api/cases/0b6c…-uuid/status → /api/cases/{id}/status
    """
    parts = path.strip("/").split("/")
    normalized = []
    for i, part in enumerate(parts):
        if i > 1 and (part.isdigit() or len(part) > 20):
            normalized.append("{id}")
        else:
            normalized.append(part)
    return "/" + "/".join(normalized)


class PrometheusMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        # Skip metrics endpoint itself to avoid recursion
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        path = _normalize_path(request.url.path)

        start = time.time()
        response = await call_next(request)
        duration = time.time() - start

        http_requests_total.labels(
            method=method,
            path=path,
            status_code=response.status_code,
        ).inc()

        http_request_duration_seconds.labels(
            method=method,
            path=path,
        ).observe(duration)

        return response
