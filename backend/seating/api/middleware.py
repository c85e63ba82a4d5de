"""
Request middleware: request ids, access logging and HTTP metrics.
"""

import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
import structlog

from seating.core.logging import get_logger
from seating.core.metrics import record_http_request

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def route_template(request: Request) -> str:
    """
    `/api/v1/reservations/{reservation_id}` rather than `/api/v1/reservations/42`.

    Depending on the FastAPI release the matched route carries either the
    full template or only the part below the router prefix. The missing
    prefix is taken from the request path, which has one segment per
    template segment below it.
    """
    route = request.scope.get("route")
    template = getattr(route, "path_format", None) or getattr(route, "path", None)
    if not template:
        return "unmatched"
    segments = request.url.path.rstrip("/").split("/")
    depth = template.rstrip("/").count("/")
    prefix = "/".join(segments[: max(len(segments) - depth, 0)])
    return prefix + template


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that:
    1. Reuses the caller's X-Request-ID or assigns a short one
    2. Binds the id, method and path to structlog context vars
    3. Logs each request once, at warning level for 4xx/5xx responses
    4. Counts requests per route template for Prometheus
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        start_time = time.perf_counter()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        try:
            response = await call_next(request)
        except Exception as e:
            elapsed = time.perf_counter() - start_time
            record_http_request(request.method, route_template(request), 500, elapsed)
            logger.error("request_failed", error=str(e), duration_ms=round(elapsed * 1000, 2))
            raise

        elapsed = time.perf_counter() - start_time
        duration_ms = round(elapsed * 1000, 2)
        record_http_request(request.method, route_template(request), response.status_code, elapsed)

        log = logger.warning if response.status_code >= 400 else logger.info
        log("request_completed", status_code=response.status_code, duration_ms=duration_ms)

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms}ms"
        return response
