"""Request ID middleware — correlate log lines with requests.

Learn: The ID comes from an incoming X-Request-ID header (so a proxy's
trace id carries through) or is generated. It is bound into structlog's
contextvars for every log entry of the request and echoed back.
"""

import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger()


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        response: Response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        logger.debug(
            "http.request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
        )
        return response
