"""Request-level exceptions and their HTTP handler.

Expected failure modes of the exchange-rate engine (provider outages,
ambiguous lookups, missing price points) never surface as exceptions; they are
reported through summary objects or a ``None`` result. This hierarchy only
covers problems with the request itself:

    AppException (500)
    ├── ValidationError (400)  e.g. start_date after end_date
    └── NotFoundError (404)    e.g. unknown currency code
"""

import logging
from typing import Any

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppException(Exception):
    """
    Base class for errors a route turns into an HTTP response.

    Attributes:
        status_code: HTTP status code for this error type
        detail: User-facing error message
        error_code: Machine-readable error code (optional)
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: str = "Internal server error"
    error_code: str | None = None

    def __init__(self, detail: str | None = None, *, error_code: str | None = None) -> None:
        self.detail = detail or self.__class__.detail
        self.error_code = error_code or self.__class__.error_code
        super().__init__(self.detail)


class ValidationError(AppException):
    """Invalid query parameters, such as an inverted date range."""

    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Validation error"
    error_code = "VALIDATION_ERROR"


class NotFoundError(AppException):
    """Unknown currency code or a lookup with no match."""

    status_code = status.HTTP_404_NOT_FOUND
    detail = "Resource not found"
    error_code = "NOT_FOUND"


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Convert an AppException into ``{"detail": ..., "error_code": ...}``.

    Server errors are logged with a traceback, client errors as warnings.
    """
    log_context = {
        "status_code": exc.status_code,
        "error_code": exc.error_code,
        "request_path": request.url.path,
    }
    if exc.status_code >= 500:
        logger.error(f"{exc.__class__.__name__}: {exc.detail}", exc_info=True, extra=log_context)
    else:
        logger.warning(f"{exc.__class__.__name__}: {exc.detail}", extra=log_context)

    body: dict[str, Any] = {"detail": exc.detail}
    if exc.error_code:
        body["error_code"] = exc.error_code
    return JSONResponse(status_code=exc.status_code, content=body)
