from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar
from typing import Dict, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

# Per-request correlation data picked up by _ContextFilter
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")
route_ctx: ContextVar[str] = ContextVar("route", default="-")

# Process-local counters served by GET /_metrics
_METRICS: Dict[str, float] = {
    "requests_total": 0.0,
    "responses_2xx_total": 0.0,
    "responses_4xx_total": 0.0,
    "responses_5xx_total": 0.0,
    "request_duration_ms_total": 0.0,
    "encrypt_total": 0.0,
    "decrypt_total": 0.0,
    "decrypt_failures_total": 0.0,
    "payscale_writes_total": 0.0,
    "personnel_grade_writes_total": 0.0,
}


def metrics_snapshot() -> Dict[str, float]:
    return dict(_METRICS)


# PUBLIC_INTERFACE
def increment_metric(name: str, inc: float = 1.0) -> None:
    """Add inc to the named counter, creating it at zero if needed."""
    _METRICS[name] = _METRICS.get(name, 0.0) + inc


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or "<unmatched>"


# PUBLIC_INTERFACE
async def bind_route_context(request: Request) -> None:
    """App-level dependency: expose the matched route template to log records inside handlers."""
    route_ctx.set(_route_template(request))


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request id, count responses by status class and log one line per request.

    Only route templates (e.g. /personnel-grades/{personnel_id}) are logged,
    never raw paths, so identifiers carried in URLs stay out of the logs.
    """

    def __init__(self, app, logger: Optional[logging.Logger] = None):
        super().__init__(app)
        self.logger = logger or logging.getLogger(__name__)

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request_id_ctx.set(rid)
        increment_metric("requests_total")

        try:
            response: Response = await call_next(request)
        except Exception:
            route_ctx.set(_route_template(request))
            increment_metric("responses_5xx_total")
            self.logger.exception("request_error", extra={"method": request.method})
            raise

        dur_ms = (time.perf_counter() - start) * 1000.0
        route_ctx.set(_route_template(request))
        increment_metric(f"responses_{response.status_code // 100}xx_total")
        increment_metric("request_duration_ms_total", dur_ms)
        response.headers["X-Request-ID"] = rid
        self.logger.info(
            "request",
            extra={"method": request.method, "status": response.status_code, "duration_ms": round(dur_ms, 2)},
        )
        return response


# PUBLIC_INTERFACE
def get_structured_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger whose records carry request_id and route."""
    logger = logging.getLogger(name or __name__)
    if not any(isinstance(f, _ContextFilter) for f in logger.filters):
        logger.addFilter(_ContextFilter())
    return logger


class _ContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx.get()
        record.route = route_ctx.get()
        return True
