"""Schemas package."""

from ledgerfx.schemas.currency import (
    CurrencyBase,
    CurrencyLookupResponse,
    CurrencyResponse,
    CurrencyUsage,
    CurrencyUsageResponse,
)
from ledgerfx.schemas.exchange_rate import (
    ExchangeRateResponse,
    HistoricalRateBackfillSummary,
    HistoricalRateResult,
    LatestRateResponse,
    RateRefreshSummary,
    RateStatusResponse,
    RateUpdateResult,
)
from ledgerfx.schemas.net_worth import (
    MonthlyInvestmentPoint,
    MonthlyInvestmentResponse,
    MonthlyNetWorthPoint,
    MonthlyNetWorthResponse,
)

__all__ = [
    # Currency schemas
    "CurrencyBase",
    "CurrencyResponse",
    "CurrencyLookupResponse",
    "CurrencyUsage",
    "CurrencyUsageResponse",
    # Exchange rate schemas
    "ExchangeRateResponse",
    "LatestRateResponse",
    "RateStatusResponse",
    "RateUpdateResult",
    "RateRefreshSummary",
    "HistoricalRateResult",
    "HistoricalRateBackfillSummary",
    # Net worth schemas
    "MonthlyNetWorthPoint",
    "MonthlyNetWorthResponse",
    "MonthlyInvestmentPoint",
    "MonthlyInvestmentResponse",
]
