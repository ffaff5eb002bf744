"""FastAPI application entry point."""

import asyncio
import contextlib
import logging
import logging.config
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from ledgerfx.api.routes import currencies, health, net_worth
from ledgerfx.core.config import settings
from ledgerfx.core.exceptions import AppException, app_exception_handler
from ledgerfx.core.middleware import RequestLoggingMiddleware
from ledgerfx.core.rate_limit import limiter, rate_limit_exceeded_handler
from ledgerfx.db.base import Base
from ledgerfx.db.session import engine
from ledgerfx.models import (  # noqa: F401  (register tables on Base.metadata)
    account,
    currency,
    exchange_rate,
    holding,
    security,
    transaction,
    user,
)
from ledgerfx.services.rate_jobs import initialize_exchange_rates, start_periodic_refresh

# Configure logging
logging.config.dictConfig(settings.LOGGING_CONFIG)
logging.getLogger("ledgerfx").setLevel(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan events."""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} ({settings.ENVIRONMENT})")

    async with engine.begin() as conn:
        # Create tables (use Alembic in production)
        if settings.ENVIRONMENT == "development":
            await conn.run_sync(Base.metadata.create_all)

    # Seeding is awaited; the refresh check and backfill run detached
    await initialize_exchange_rates()
    periodic = start_periodic_refresh(settings.RATE_REFRESH_INTERVAL_HOURS)

    yield

    # Shutdown
    logger.info("Shutting down application")
    if periodic is not None:
        periodic.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await periodic
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_CREDENTIALS,
    allow_methods=settings.CORS_METHODS,
    allow_headers=settings.CORS_HEADERS,
)

# Note: Middleware is applied in reverse order, so this will be the outermost layer
app.add_middleware(RequestLoggingMiddleware)

# Register exception handlers
app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)  # type: ignore[arg-type]

# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(currencies.router, prefix="/api/v1/currencies", tags=["currencies"])
app.include_router(net_worth.router, prefix="/api/v1/net-worth", tags=["net-worth"])
