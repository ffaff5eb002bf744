"""Net worth endpoints."""

import logging
import uuid
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerfx.db.session import get_db
from ledgerfx.schemas.net_worth import MonthlyInvestmentResponse, MonthlyNetWorthResponse
from ledgerfx.services.net_worth_service import get_monthly_investments, get_monthly_net_worth

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/monthly", response_model=MonthlyNetWorthResponse)
async def monthly_net_worth(
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: int = Query(..., ge=1),
    start_date: date = Query(..., description="Any day in the first month"),
    end_date: date | None = Query(None, description="Any day in the last month (default: today)"),
) -> MonthlyNetWorthResponse:
    """Monthly assets, liabilities and net worth in the user's reporting currency.

    Example:
        GET /api/v1/net-worth/monthly?user_id=1&start_date=2025-01-01&end_date=2025-06-30
    """
    logger.info(f"Monthly net worth for user {user_id} ({start_date} to {end_date or 'today'})")
    return await get_monthly_net_worth(db, user_id, start_date, end_date)


@router.get("/investments/monthly", response_model=MonthlyInvestmentResponse)
async def monthly_investments(
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: int = Query(..., ge=1),
    start_date: date = Query(..., description="Any day in the first month"),
    end_date: date | None = Query(None, description="Any day in the last month (default: today)"),
    account_ids: list[uuid.UUID] | None = Query(None, description="Restrict to these accounts"),
) -> MonthlyInvestmentResponse:
    """Monthly value of investment accounts in the user's reporting currency.

    Example:
        GET /api/v1/net-worth/investments/monthly?user_id=1&start_date=2025-01-01
    """
    logger.info(f"Monthly investments for user {user_id} ({start_date} to {end_date or 'today'})")
    return await get_monthly_investments(db, user_id, start_date, end_date, account_ids)
