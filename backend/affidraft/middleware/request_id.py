"""
AffiDraft Backend: Request ID Middleware
=========================================

What:  Gives every request a correlation id and echoes it in `X-Request-ID`.
How:   Reuses a client-supplied `X-Request-ID` (the editor can tag its save
       calls) or generates a short one; stores it in a ContextVar so
       loggers and exception handlers can read it without plumbing.
Who:   Applied to every request; read by the access log and the global
       exception handlers in main.py.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
_MAX_CLIENT_ID_LENGTH = 64

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def _client_request_id(request: Request) -> str:
    """Client-supplied id if it is short and printable, else empty."""
    value = request.headers.get(REQUEST_ID_HEADER, "").strip()
    if not value or len(value) > _MAX_CLIENT_ID_LENGTH or not value.isprintable():
        return ""
    return value


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns and exposes the per-request correlation id."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = _client_request_id(request) or uuid.uuid4().hex[:8]
        # Left set after the response: the catch-all error handler runs
        # outside this middleware and still reports the id
        request_id_var.set(rid)
        request.state.request_id = rid
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
