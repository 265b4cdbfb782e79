"""
Murmur Backend — Request ID Middleware
=======================================

What:  Assigns a short correlation id to each request, exposes it in the
       `X-Request-ID` response header and stamps it on every log record.
Why:   Error bodies carry `request_id`; support can grep the server log for
       it and see the service-level events (follow, like, store timeout) of
       that exact request.
How:   ContextVar holds the id for the coroutine handling the request;
       RequestIDLogFilter copies it onto each LogRecord.
When:  Outermost custom middleware (runs before request logging).
"""

import logging
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ── Context Variable ──────────────────────────────────────────────────────
# Coroutine-local: concurrent requests on the same thread each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

MAX_CLIENT_ID_LENGTH = 64


class RequestIDLogFilter(logging.Filter):
    """Adds `record.request_id` so formats can use `%(request_id)s`."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_var.get("") or "-"
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Reuse the client's X-Request-ID when it is present and short
        2. Otherwise generate an 8-char id
        3. Store it in the ContextVar and on request.state
        4. Echo it in the response headers
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID", "")
        if not rid or len(rid) > MAX_CLIENT_ID_LENGTH:
            rid = uuid.uuid4().hex[:8]

        # Not reset afterwards: the catch-all 500 handler runs outside this
        # middleware and still reports the id
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
