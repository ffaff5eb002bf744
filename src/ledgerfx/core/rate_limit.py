"""Rate limiting configuration using slowapi.

Refresh and backfill endpoints fan out to the external rate provider, so they
are throttled per client address with ``SYNC_RATE_LIMIT``.
"""

import re

from fastapi import Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from ledgerfx.core.config import settings

_TIME_UNIT_SECONDS = {
    "second": 1,
    "minute": 60,
    "hour": 3600,
    "day": 86400,
}


def _retry_after_seconds(detail: str) -> int:
    """Derive a Retry-After value from a slowapi limit description.

    slowapi formats the detail as "X per Y {time_unit}" (e.g. "10 per 1 minute").
    """
    match = re.search(r"(\d+)\s+per\s+(\d+)\s+(\w+)", detail)
    if not match:
        return 60

    amount = int(match.group(2))
    unit = match.group(3).rstrip("s")
    return amount * _TIME_UNIT_SECONDS.get(unit, 60)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Convert a slowapi RateLimitExceeded into a 429 JSON response.

    Args:
        request: The incoming request
        exc: The RateLimitExceeded exception

    Returns:
        JSONResponse with error detail and a Retry-After header
    """
    retry_after = _retry_after_seconds(str(exc.detail))

    response = JSONResponse(
        status_code=429,
        content={
            "detail": f"Rate limit exceeded: {exc.detail}",
            "retry_after": retry_after,
        },
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],  # Each endpoint sets its own limit
    enabled=settings.RATE_LIMIT_ENABLED,
    headers_enabled=False,  # Incompatible with FastAPI response models
)
