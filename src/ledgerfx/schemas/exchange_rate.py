"""Exchange rate schemas for responses and engine summaries."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class ExchangeRateResponse(BaseModel):
    """Schema for a stored exchange rate."""

    id: int
    from_currency: str = Field(..., pattern="^[A-Z]{3}$")
    to_currency: str = Field(..., pattern="^[A-Z]{3}$")
    rate_date: date
    rate: Decimal = Field(..., gt=0)
    source: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RateUpdateResult(BaseModel):
    """Outcome of refreshing one currency pair."""

    pair: str  # "FROM/TO"
    success: bool
    rate: float | None = None
    error: str | None = None


class RateRefreshSummary(BaseModel):
    """Schema for a refresh run across every pair in use."""

    total_pairs: int
    updated: int
    failed: int
    results: list[RateUpdateResult]
    last_updated: datetime


class HistoricalRateResult(BaseModel):
    """Outcome of backfilling one currency pair."""

    pair: str
    success: bool
    rates_loaded: int = 0
    error: str | None = None


class HistoricalRateBackfillSummary(BaseModel):
    """Schema for a per-user historical backfill run."""

    total_pairs: int
    successful: int
    failed: int
    total_rates_loaded: int
    results: list[HistoricalRateResult]


class LatestRateResponse(BaseModel):
    """Schema for a single latest-rate lookup."""

    from_currency: str
    to_currency: str
    rate: Decimal | None


class RateStatusResponse(BaseModel):
    """Schema for the Rate Store freshness check."""

    last_updated: datetime | None
    has_rates_today: bool
