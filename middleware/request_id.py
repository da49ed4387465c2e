"""
Request ID propagation.

Each request gets an id (the client's X-Request-ID if sent, otherwise a
fresh UUID). It is kept in a context variable so that log records emitted
while the request is being served can be tagged with it, and echoed back
in the response headers.
"""

import logging
import uuid
from contextvars import ContextVar
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

_request_id: ContextVar[str] = ContextVar("request_id", default="-")


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next):
        """
        Tags the request with an id and echoes it on the response.

        Args:
            request: Incoming request; a client-sent X-Request-ID is reused
            call_next: Next handler in the chain

        Returns:
            The downstream response with the X-Request-ID header set
        """
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        token = _request_id.set(request_id)
        try:
            response: Response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            _request_id.reset(token)


class RequestIDLogFilter(logging.Filter):
    """Stamps the current request id on every record passing through a handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = _request_id.get()
        return True


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "no-request-id")
