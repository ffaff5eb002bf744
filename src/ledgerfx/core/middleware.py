"""Request logging middleware."""

import logging
import time
from collections.abc import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

# Paths polled by orchestrators and docs tooling; logging them is noise
QUIET_PATHS = frozenset({"/health", "/health/db", "/docs", "/openapi.json", "/redoc"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each request with its status code and processing time.

    Responses carry an ``X-Process-Time`` header. Refresh and backfill calls
    can take several seconds while the provider is queried, so the timing
    shows up in logs at WARNING level whenever a request exceeds
    ``slow_request_seconds``.
    """

    def __init__(self, app: ASGIApp, slow_request_seconds: float = 5.0) -> None:
        super().__init__(app)
        self.slow_request_seconds = slow_request_seconds

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        client_host = request.client.host if request.client else "unknown"
        logger.info(f"→ {request.method} {request.url.path} from {client_host}")

        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        if response.status_code >= 400 or duration >= self.slow_request_seconds:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            f"← {request.method} {request.url.path} - {response.status_code} ({duration:.3f}s)",
        )

        response.headers["X-Process-Time"] = f"{duration:.3f}"
        return response
