# pdfmerge/middleware/logging_middleware.py
import time
import uuid
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
import structlog

logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"
QUIET_PATHS = ("/health", "/ready")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Binds a request id to the log context and logs each request."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())[:8]
        start_time = time.time()
        path = request.url.path
        log = logger.debug if path in QUIET_PATHS else logger.info

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        log(
            "request_started",
            method=request.method,
            path=path,
            client=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                method=request.method,
                path=path,
                error=str(e),
                duration_ms=round((time.time() - start_time) * 1000, 2),
            )
            raise

        response.headers[REQUEST_ID_HEADER] = request_id
        log(
            "request_completed",
            method=request.method,
            path=path,
            status_code=response.status_code,
            content_length=response.headers.get("content-length"),
            duration_ms=round((time.time() - start_time) * 1000, 2),
        )
        return response
