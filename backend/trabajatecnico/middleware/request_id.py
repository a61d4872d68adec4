"""
TrabajaTecnico Backend — Request ID Middleware
===============================================

What:  Assigns a correlation ID to each request and returns it in the
       ``X-Request-ID`` response header.
How:   The ID lives in a ContextVar; ``RequestIDLogFilter`` copies it onto
       every log record, so service-layer lines (including the best-effort
       notification/mail failures) can be traced back to the request.
"""

import logging
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Client-supplied IDs longer than this are replaced
_MAX_CLIENT_ID_LENGTH = 64


class RequestIDLogFilter(logging.Filter):
    """Adds ``record.request_id`` ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("") or "-"
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Reuses a client-provided ``X-Request-ID`` when it is short enough,
    otherwise generates an 8-character one.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID", "")
        if not rid or len(rid) > _MAX_CLIENT_ID_LENGTH:
            rid = uuid.uuid4().hex[:8]

        request_id_var.set(rid)
        request.state.request_id = rid
        response = await call_next(request)

        response.headers["X-Request-ID"] = rid
        return response
