# storefront/obs/metrics.py
import os
import time

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
    multiprocess,
)
from starlette.middleware.base import BaseHTTPMiddleware

http_requests_total = Counter("http_requests_total", "HTTP requests", ["method", "path", "code"])
http_request_duration = Histogram(
    "http_request_duration_seconds", "HTTP request duration seconds", ["method", "path"]
)

orders_created_total = Counter("storefront_orders_created_total", "Orders created", ["store_id"])
shipments_created_total = Counter(
    "storefront_shipments_created_total", "Shipments created", ["carrier"]
)
carrier_errors_total = Counter(
    "storefront_carrier_errors_total", "Shipping provider failures", ["carrier", "op"]
)
emails_sent_total = Counter("storefront_emails_sent_total", "Emails handed to the transport", ["transport"])


class PrometheusMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        # route template keeps label cardinality bounded
        route = request.scope.get("route")
        path = getattr(route, "path", None) or "unmatched"
        http_requests_total.labels(request.method, path, str(response.status_code)).inc()
        http_request_duration.labels(request.method, path).observe(elapsed)
        return response


router = APIRouter()


@router.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    """
    Single-process: export the default REGISTRY.
    Multi-process (PROMETHEUS_MULTIPROC_DIR set): merge the shards into a fresh registry.
    """
    if os.environ.get("PROMETHEUS_MULTIPROC_DIR"):
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        payload = generate_latest(registry)
    else:
        payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)
