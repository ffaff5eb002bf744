"""Fixtures shared by route tests."""

import pytest

from ledgerfx.core.rate_limit import limiter


@pytest.fixture(autouse=True)
def reset_limiter():
    """Reset rate limiter storage so limits never leak between tests."""
    limiter.reset()
    yield
    limiter.reset()
