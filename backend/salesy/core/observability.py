r"""backend\salesy\core\observability.py"""

from __future__ import annotations

import json
import logging
import re
import threading
import time
import uuid
from collections import defaultdict, deque
from datetime import datetime, timezone
from typing import Callable

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from .config import get_settings

ACCESS_LOGGER = logging.getLogger("salesy.access")

_REQUEST_COUNTER = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "path", "status"]
)
_LATENCY_HISTOGRAM = Histogram(
    "http_request_latency_seconds", "Request latency", ["method", "path"]
)
FORECASTS_COUNTER = Counter(
    "salesy_forecasts_total", "Forecasts generated, by selected model", ["model"]
)

_SHOP_PATH = re.compile(r"/shops/(?P<shop_id>[^/]+)(?:/products/(?P<product_id>[^/]+))?")


def _template_ids(match: re.Match) -> str:
    if match.group("product_id"):
        return "/shops/{shop_id}/products/{product_id}"
    return "/shops/{shop_id}"


class TokenAndRateLimitMiddleware(BaseHTTPMiddleware):
    """Middleware enforcing auth, rate limiting, logging, and Prometheus metrics."""

    _lock: threading.Lock = threading.Lock()
    _buckets: dict[str, deque[float]] = defaultdict(deque)
    _per_minute: int = get_settings().rate_limit_per_min
    _token: str | None = get_settings().api_token
    _exempt_prefixes: tuple[str, ...] = (
        "/api/v1/health",
        "/metrics",
        "/docs",
        "/redoc",
        "/openapi.json",
    )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        method = request.method
        client_ip = request.client.host if request.client else "unknown"
        request_id = (
            request.headers.get("x-request-id")
            or request.headers.get("request-id")
            or str(uuid.uuid4())
        )

        # Routing has not run yet, so identifiers are read from the raw path.
        match = _SHOP_PATH.search(path)
        shop_id = match.group("shop_id") if match else None
        product_id = match.group("product_id") if match else None

        start_perf = time.perf_counter()
        start_wall = time.time()

        def _finalize(response: Response) -> Response:
            latency = time.perf_counter() - start_perf
            status_code = getattr(response, "status_code", 500)
            # Collapse per-tenant paths so label cardinality stays bounded.
            path_label = _SHOP_PATH.sub(_template_ids, path) if match else path

            _REQUEST_COUNTER.labels(method, path_label, str(status_code)).inc()
            _LATENCY_HISTOGRAM.labels(method, path_label).observe(latency)

            model_used = response.headers.get("x-model-used")
            if model_used and status_code < 400 and path.endswith("/forecast"):
                FORECASTS_COUNTER.labels(model_used).inc()

            log_payload = {
                "timestamp": datetime.fromtimestamp(
                    start_wall, tz=timezone.utc
                ).isoformat(),
                "path": path,
                "method": method,
                "status": status_code,
                "latency_ms": int(latency * 1000),
                "request_id": request_id,
                "client_ip": client_ip,
                "shop_id": shop_id,
                "product_id": product_id,
                "model_used": model_used,
            }
            ACCESS_LOGGER.info(json.dumps(log_payload))

            return response

        # Token authentication
        if self._token and not path.startswith(self._exempt_prefixes):
            auth_header = request.headers.get("authorization", "")
            if auth_header != f"Bearer {self._token}":
                error_response = PlainTextResponse("Unauthorized", status_code=401)
                return _finalize(error_response)

        # Rate limiting per client IP
        if self._per_minute > 0:
            now = time.time()
            with self._lock:
                window = self._buckets[client_ip]
                while window and now - window[0] > 60.0:
                    window.popleft()
                if len(window) >= self._per_minute:
                    error_response = PlainTextResponse("Too Many Requests", status_code=429)
                    return _finalize(error_response)
                window.append(now)

        try:
            response = await call_next(request)
        except Exception:
            # Still record metrics and the access log before re-raising.
            _finalize(PlainTextResponse("Internal Server Error", status_code=500))
            raise

        return _finalize(response)


def metrics_endpoint() -> Response:
    """Return Prometheus metrics payload."""

    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
