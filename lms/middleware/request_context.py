"""Request context middleware: request ids and tenant tagging for logs.

Each request gets an id (the caller's ``X-Request-ID`` if supplied, else
a fresh UUID) stored in a ContextVar.  A filter on the root logger copies
it onto every LogRecord, together with the tenant database name once the
tenant dependency has resolved one.  ContextVars rather than
thread-locals: concurrent requests share the event loop thread.

The tenant is also left on ``request.state`` so the completion line
emitted here can carry it; the endpoint runs in a child task, so its
ContextVar writes are not visible to this middleware.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")
tenant_var: ContextVar[str] = ContextVar("tenant", default="-")


class _RequestContextFilter(logging.Filter):
    """Stamp request_id and tenant onto every record that passes through."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_var.get("-")  # type: ignore[attr-defined]
        if not hasattr(record, "tenant"):
            record.tenant = tenant_var.get("-")  # type: ignore[attr-defined]
        return True


def install_log_filter() -> None:
    """Attach the context filter to the root logger's handlers (idempotent).

    Handler-level rather than logger-level: records from child loggers
    propagate to root handlers but skip root's own filters.
    """
    root = logging.getLogger()
    for handler in root.handlers:
        if not any(isinstance(f, _RequestContextFilter) for f in handler.filters):
            handler.addFilter(_RequestContextFilter())


def bind_tenant(request: Request, db_name: str) -> None:
    """Record the resolved tenant for the rest of this request."""
    tenant_var.set(db_name)
    request.state.tenant = db_name


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request id, time the request, and log a completion line."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request_id_var.set(req_id)
        tenant_var.set("-")

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        tenant = getattr(request.state, "tenant", "-")
        logger.info(
            "%s %s → %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={
                "request_id": req_id,
                "tenant": tenant,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        response.headers["X-Request-ID"] = req_id
        return response
