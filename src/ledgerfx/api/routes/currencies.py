"""Currency API routes: catalog, lookup and exchange rates."""

import logging
import uuid
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerfx.core.config import settings
from ledgerfx.core.exceptions import NotFoundError, ValidationError
from ledgerfx.core.rate_limit import limiter
from ledgerfx.db.session import get_db, read_only_transaction
from ledgerfx.models.currency import Currency
from ledgerfx.models.exchange_rate import ExchangeRate
from ledgerfx.repositories import CurrencyRepository
from ledgerfx.schemas.currency import (
    CurrencyLookupResponse,
    CurrencyResponse,
    CurrencyUsage,
    CurrencyUsageResponse,
)
from ledgerfx.schemas.exchange_rate import (
    ExchangeRateResponse,
    HistoricalRateBackfillSummary,
    LatestRateResponse,
    RateRefreshSummary,
    RateStatusResponse,
)
from ledgerfx.services import exchange_rate_service
from ledgerfx.services.currency_resolver import resolve_currency

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=list[CurrencyResponse])
async def list_currencies(
    db: Annotated[AsyncSession, Depends(get_db)],
    active_only: bool = Query(True, description="Only return active currencies"),
) -> list[Currency]:
    """List catalog currencies ordered by code.

    Example:
        GET /api/v1/currencies
        GET /api/v1/currencies?active_only=false
    """
    repo = CurrencyRepository(Currency, db)
    async with read_only_transaction(db):
        currencies = await repo.list_currencies(active_only=active_only)

    logger.info(f"Found {len(currencies)} currencies (active_only={active_only})")
    return currencies


@router.get("/lookup", response_model=CurrencyLookupResponse)
async def lookup_currency(
    q: Annotated[str, Query(min_length=1, max_length=50, description="Code or name")],
):
    """Resolve free text (e.g. "cad", "ringgit") to a canonical currency.

    Raises:
        NotFoundError: 404 if the query is too short, ambiguous or unknown

    Example:
        GET /api/v1/currencies/lookup?q=ringgit
    """
    logger.info(f"Currency lookup: '{q}'")
    result = await resolve_currency(q)
    if result is None:
        raise NotFoundError(f"No currency found for '{q}'")
    return CurrencyLookupResponse.model_validate(result)


@router.get("/usage", response_model=CurrencyUsageResponse)
async def get_currency_usage(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CurrencyUsageResponse:
    """Account and security counts per currency, plus the codes rates are kept for."""
    repo = CurrencyRepository(Currency, db)
    async with read_only_transaction(db):
        usage = await repo.get_usage()
        codes = await repo.get_codes_in_use()

    return CurrencyUsageResponse(
        usage={code: CurrencyUsage(**counts) for code, counts in sorted(usage.items())},
        codes_in_use=codes,
    )


@router.get("/exchange-rates", response_model=list[ExchangeRateResponse])
async def get_latest_exchange_rates(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[ExchangeRate]:
    """Most recent rate for every stored pair."""
    return await exchange_rate_service.get_latest_rates(db)


@router.get("/exchange-rates/history", response_model=list[ExchangeRateResponse])
async def get_exchange_rate_history(
    db: Annotated[AsyncSession, Depends(get_db)],
    start_date: date | None = Query(None, description="Inclusive start date"),
    end_date: date | None = Query(None, description="Inclusive end date"),
) -> list[ExchangeRate]:
    """Stored rates in a date range, oldest first.

    Raises:
        ValidationError: 400 if start_date is after end_date

    Example:
        GET /api/v1/currencies/exchange-rates/history?start_date=2025-01-01&end_date=2025-03-31
    """
    if start_date and end_date and start_date > end_date:
        raise ValidationError("start_date must be on or before end_date")

    rates = await exchange_rate_service.get_rate_history(db, start_date, end_date)
    logger.info(f"Returning {len(rates)} rates ({start_date} to {end_date})")
    return rates


@router.get("/exchange-rates/latest", response_model=LatestRateResponse)
async def get_latest_exchange_rate(
    db: Annotated[AsyncSession, Depends(get_db)],
    from_currency: Annotated[str, Query(alias="from", pattern="^[A-Za-z]{3}$")],
    to_currency: Annotated[str, Query(alias="to", pattern="^[A-Za-z]{3}$")],
) -> LatestRateResponse:
    """Latest known rate between two currencies (either stored direction).

    Example:
        GET /api/v1/currencies/exchange-rates/latest?from=EUR&to=CAD
    """
    rate = await exchange_rate_service.get_latest_rate(db, from_currency, to_currency)
    return LatestRateResponse(
        from_currency=from_currency.upper(),
        to_currency=to_currency.upper(),
        rate=rate,
    )


@router.get("/exchange-rates/status", response_model=RateStatusResponse)
async def get_exchange_rate_status(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> RateStatusResponse:
    """When the Rate Store was last written and whether today is covered."""
    return RateStatusResponse(
        last_updated=await exchange_rate_service.get_last_update_time(db),
        has_rates_today=await exchange_rate_service.has_rates_for(db, date.today()),
    )


@router.post("/exchange-rates/refresh", response_model=RateRefreshSummary)
@limiter.limit(settings.SYNC_RATE_LIMIT)
async def refresh_exchange_rates(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> RateRefreshSummary:
    """Fetch today's rate for every pair of currencies in use.

    Per-pair failures are reported in the summary, never as an error status.
    """
    logger.info("Manual exchange rate refresh requested")
    return await exchange_rate_service.refresh_all_rates(db)


@router.post("/exchange-rates/backfill", response_model=HistoricalRateBackfillSummary)
@limiter.limit(settings.SYNC_RATE_LIMIT)
async def backfill_exchange_rates(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: int = Query(..., ge=1, description="User whose currencies need history"),
    account_ids: list[uuid.UUID] | None = Query(None, description="Only these accounts"),
) -> HistoricalRateBackfillSummary:
    """Load historical daily rates covering a user's foreign-currency holdings.

    Example:
        POST /api/v1/currencies/exchange-rates/backfill?user_id=1
    """
    logger.info(f"Manual historical rate backfill requested for user {user_id}")
    return await exchange_rate_service.backfill_historical_rates(db, user_id, account_ids)


@router.get("/{code}", response_model=CurrencyResponse)
async def get_currency(
    code: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Currency:
    """Get a catalog currency by code.

    Raises:
        NotFoundError: 404 if the currency is not in the catalog

    Example:
        GET /api/v1/currencies/USD
    """
    code_upper = code.upper()
    repo = CurrencyRepository(Currency, db)
    async with read_only_transaction(db):
        currency = await repo.get(code_upper)

    if currency is None:
        logger.warning(f"Currency not found: {code_upper}")
        raise NotFoundError(f"Currency {code_upper} not found")
    return currency
