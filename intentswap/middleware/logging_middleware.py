"""Per-request logging with a correlation id."""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.stdlib.get_logger("intentswap.http")

REQUEST_ID_HEADER = "x-request-id"
QUIET_PATHS = {"/healthz", "/"}


def _request_id(request: Request) -> str:
    incoming = request.headers.get(REQUEST_ID_HEADER, "")
    # accept caller ids up to 64 printable chars
    if incoming and len(incoming) <= 64 and incoming.isprintable():
        return incoming
    return uuid.uuid4().hex[:12]


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Bind a request id for the lifetime of the request and log its outcome.

    Everything logged while handling the request (token resolution, quote
    fetches, executor stage changes) carries the same ``request_id``.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = _request_id(request)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        started = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            elapsed_ms = round((time.perf_counter() - started) * 1000, 1)
            path = request.url.path
            if status >= 500:
                log = logger.error
            elif status >= 400:
                log = logger.warning
            elif path in QUIET_PATHS:
                log = logger.debug
            else:
                log = logger.info
            log(
                "http_request",
                method=request.method,
                path=path,
                status=status,
                duration_ms=elapsed_ms,
            )
            structlog.contextvars.unbind_contextvars("request_id")
