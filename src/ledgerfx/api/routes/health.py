"""Health check endpoints."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerfx.db.session import get_db
from ledgerfx.services.exchange_rate_service import get_last_update_time

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check():
    """Liveness probe."""
    return {"status": "healthy"}


@router.get("/health/db")
async def database_health(db: AsyncSession = Depends(get_db)):
    """Database probe; also reports when the Rate Store was last written."""
    try:
        last_update = await get_last_update_time(db)
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        return {"status": "unhealthy", "database": str(e)}

    return {
        "status": "healthy",
        "database": "connected",
        "rates_last_updated": last_update.isoformat() if last_update else None,
    }
