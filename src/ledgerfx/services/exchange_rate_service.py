"""Exchange rate service: refresh and historical backfill of the Rate Store.

Exchange Rate Source:
- yfinance (Yahoo Finance), currency pair format "{FROM}{TO}=X"
- Spot rates: most recent daily close
- History: daily closes from the earliest date a user needed a currency

Storage:
- One row per (pair, day); a pair is always stored in alphabetical order
  (CAD/EUR, never EUR/CAD), so both directions can never coexist
- Writes are upserts, so re-running a refresh or backfill is safe

Failure handling:
- Every pair is processed independently. Provider errors, missing prices and
  write failures are recorded on that pair's result and never abort siblings.
- Provider calls run concurrently (bounded by ``FX_MAX_CONCURRENT_REQUESTS``);
  database writes are serialized on the caller's session, one transaction
  per pair.
"""

import asyncio
import itertools
import logging
import time
import uuid
from collections.abc import Awaitable, Callable, Iterable, Sequence
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from typing import TypeVar

import pandas as pd
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerfx.core.config import settings
from ledgerfx.core.constants import NO_HISTORICAL_DATA_MESSAGE, NO_RATE_DATA_MESSAGE
from ledgerfx.db.session import read_only_transaction, transactional
from ledgerfx.models.account import Account
from ledgerfx.models.currency import Currency
from ledgerfx.models.exchange_rate import ExchangeRate
from ledgerfx.models.security import Security
from ledgerfx.models.user import UserPreference
from ledgerfx.repositories import (
    AccountRepository,
    CurrencyRepository,
    ExchangeRateRepository,
    SecurityRepository,
    UserPreferenceRepository,
)
from ledgerfx.schemas.exchange_rate import (
    HistoricalRateBackfillSummary,
    HistoricalRateResult,
    RateRefreshSummary,
    RateUpdateResult,
)
from ledgerfx.services import yfinance_service

logger = logging.getLogger(__name__)

T = TypeVar("T")
Pair = tuple[str, str]


def canonical_pair(currency_a: str, currency_b: str) -> Pair:
    """Order a pair the way the Rate Store keeps it (alphabetically)."""
    a, b = currency_a.upper(), currency_b.upper()
    return (a, b) if a <= b else (b, a)


def build_currency_pairs(codes: Iterable[str]) -> list[Pair]:
    """Every unordered pair of distinct codes, each in canonical order.

    Example:
        >>> build_currency_pairs(["USD", "CAD", "EUR"])
        [('CAD', 'EUR'), ('CAD', 'USD'), ('EUR', 'USD')]
    """
    distinct = sorted({code.upper() for code in codes})
    return list(itertools.combinations(distinct, 2))


def merge_earliest_dates(*sources: dict[str, date]) -> dict[str, date]:
    """Merge per-currency need dates, keeping the earlier date on overlap."""
    merged: dict[str, date] = {}
    for source in sources:
        for code, need in source.items():
            if code not in merged or need < merged[code]:
                merged[code] = need
    return merged


def daily_rates_from_history(df: pd.DataFrame, cutoff: date) -> pd.Series:
    """Reduce a provider series to one positive, finite rate per calendar day.

    Args:
        df: yfinance history with a ``Close`` column and a timestamp index
        cutoff: Points dated strictly before this day are dropped

    Returns:
        Series indexed by ``datetime.date`` in ascending order. When a day
        appears more than once, the last point for that day wins.
    """
    if df is None or df.empty or "Close" not in df.columns:
        return pd.Series(dtype="float64")

    closes = pd.to_numeric(df["Close"], errors="coerce")
    closes = closes.replace([float("inf"), float("-inf")], float("nan")).dropna()
    closes = closes[closes > 0]
    if closes.empty:
        return pd.Series(dtype="float64")

    index = pd.DatetimeIndex(closes.index)
    if index.tz is not None:
        # Keep the exchange-local calendar day
        index = index.tz_localize(None)

    daily = pd.Series(closes.to_numpy(), index=index.date)
    daily = daily[daily.index >= cutoff]
    daily = daily[~daily.index.duplicated(keep="last")]
    return daily.sort_index(kind="stable")


async def _gather_bounded(
    items: Sequence[T],
    call: Callable[[T], Awaitable],
) -> list:
    """Run ``call`` for every item with bounded concurrency.

    Exceptions are returned in place of results so one failure never cancels
    its siblings.
    """
    semaphore = asyncio.Semaphore(settings.FX_MAX_CONCURRENT_REQUESTS)

    async def bounded(item: T):
        async with semaphore:
            return await call(item)

    return await asyncio.gather(*(bounded(item) for item in items), return_exceptions=True)


def _reraise_cancellation(outcome: object) -> None:
    if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
        raise outcome


async def refresh_all_rates(db: AsyncSession) -> RateRefreshSummary:
    """Fetch today's spot rate for every pair of currencies in use.

    Args:
        db: Database session

    Returns:
        RateRefreshSummary with one result per pair. ``total_pairs`` is always
        C(n, 2) for n currencies in use; fewer than two currencies yields an
        all-zero summary without calling the provider.

    Example:
        >>> summary = await refresh_all_rates(db)
        >>> print(f"{summary.updated}/{summary.total_pairs} pairs updated")
        3/3 pairs updated
    """
    started = time.perf_counter()
    logger.info("Starting exchange rate refresh")

    currency_repo = CurrencyRepository(Currency, db)
    async with read_only_transaction(db):
        codes = await currency_repo.get_codes_in_use()
    logger.info(f"Currencies in use: {', '.join(codes) or 'none'}")

    if len(codes) < 2:
        return RateRefreshSummary(
            total_pairs=0,
            updated=0,
            failed=0,
            results=[],
            last_updated=datetime.now(UTC),
        )

    pairs = build_currency_pairs(codes)
    outcomes = await _gather_bounded(
        pairs, lambda pair: yfinance_service.fetch_fx_spot_rate_async(*pair)
    )

    today = date.today()
    rate_repo = ExchangeRateRepository(ExchangeRate, db)
    results: list[RateUpdateResult] = []

    for (from_code, to_code), outcome in zip(pairs, outcomes, strict=True):
        _reraise_cancellation(outcome)
        label = f"{from_code}/{to_code}"

        if isinstance(outcome, Exception):
            logger.warning(f"Failed to fetch exchange rate for {label}: {outcome}")
            results.append(RateUpdateResult(pair=label, success=False, error=NO_RATE_DATA_MESSAGE))
            continue
        if outcome is None:
            results.append(RateUpdateResult(pair=label, success=False, error=NO_RATE_DATA_MESSAGE))
            continue

        try:
            async with transactional(db):
                await rate_repo.upsert_rate(from_code, to_code, today, Decimal(str(outcome)))
        except Exception as e:
            logger.error(f"Failed to store exchange rate for {label}: {e}")
            results.append(RateUpdateResult(pair=label, success=False, error=str(e)))
            continue

        results.append(RateUpdateResult(pair=label, success=True, rate=outcome))

    updated = sum(1 for result in results if result.success)
    failed = len(results) - updated
    logger.info(
        f"Exchange rate refresh completed in {time.perf_counter() - started:.2f}s: "
        f"{updated} updated, {failed} failed"
    )

    return RateRefreshSummary(
        total_pairs=len(pairs),
        updated=updated,
        failed=failed,
        results=results,
        last_updated=datetime.now(UTC),
    )


async def backfill_historical_rates(
    db: AsyncSession,
    user_id: int,
    account_ids: Sequence[uuid.UUID] | None = None,
) -> HistoricalRateBackfillSummary:
    """Load daily history for every foreign currency a user holds.

    For each foreign currency the earliest-need date is the earlier of the
    account-derived date (opening date or first transaction) and the
    security-derived date (first investment transaction). A pair whose stored
    history already reaches back to that date (within
    ``FX_BACKFILL_COVERAGE_SLACK_DAYS``) is reported as successful with
    nothing loaded. A few refresh days do not count as coverage.

    Args:
        db: Database session
        user_id: User whose holdings define the pairs
        account_ids: Optional filter restricting which accounts count

    Returns:
        HistoricalRateBackfillSummary with one result per pair
    """
    started = time.perf_counter()
    logger.info(f"Starting historical rate backfill for user {user_id}")

    pref_repo = UserPreferenceRepository(UserPreference, db)
    account_repo = AccountRepository(Account, db)
    security_repo = SecurityRepository(Security, db)
    rate_repo = ExchangeRateRepository(ExchangeRate, db)

    async with read_only_transaction(db):
        reporting = await pref_repo.get_reporting_currency(user_id)
        needs = merge_earliest_dates(
            await account_repo.get_earliest_currency_dates(user_id, account_ids),
            await security_repo.get_earliest_currency_dates(user_id, account_ids),
        )
    needs.pop(reporting, None)

    results: list[HistoricalRateResult] = []
    to_fetch: list[tuple[Pair, date]] = []

    slack = timedelta(days=settings.FX_BACKFILL_COVERAGE_SLACK_DAYS)
    async with read_only_transaction(db):
        for code, cutoff in sorted(needs.items()):
            pair = canonical_pair(code, reporting)
            earliest = await rate_repo.get_earliest_rate_date(*pair)
            if earliest is not None and earliest <= cutoff + slack:
                logger.info(f"{pair[0]}/{pair[1]} already covered from {earliest}, skipping")
                results.append(
                    HistoricalRateResult(pair=f"{pair[0]}/{pair[1]}", success=True, rates_loaded=0)
                )
            else:
                to_fetch.append((pair, cutoff))

    outcomes = await _gather_bounded(
        to_fetch,
        lambda job: yfinance_service.fetch_fx_history_async(job[0][0], job[0][1], job[1]),
    )

    for ((from_code, to_code), cutoff), outcome in zip(to_fetch, outcomes, strict=True):
        _reraise_cancellation(outcome)
        label = f"{from_code}/{to_code}"

        if isinstance(outcome, Exception):
            logger.warning(f"No history for {label} since {cutoff}: {outcome}")
            results.append(
                HistoricalRateResult(pair=label, success=False, error=NO_HISTORICAL_DATA_MESSAGE)
            )
            continue

        daily = daily_rates_from_history(outcome, cutoff)
        rows = [
            {
                "from_currency": from_code,
                "to_currency": to_code,
                "rate_date": rate_date,
                "rate": Decimal(str(float(value))),
            }
            for rate_date, value in daily.items()
        ]

        try:
            async with transactional(db):
                loaded = await rate_repo.bulk_upsert(rows)
        except Exception as e:
            logger.error(f"Failed to store history for {label}: {e}")
            results.append(HistoricalRateResult(pair=label, success=False, error=str(e)))
            continue

        logger.info(f"Backfilled {loaded} rates for {label} (from {cutoff})")
        results.append(HistoricalRateResult(pair=label, success=True, rates_loaded=loaded))

    successful = sum(1 for result in results if result.success)
    failed = len(results) - successful
    total_loaded = sum(result.rates_loaded for result in results)
    logger.info(
        f"Historical rate backfill for user {user_id} completed in "
        f"{time.perf_counter() - started:.2f}s: {successful} successful, {failed} failed, "
        f"{total_loaded} total rates"
    )

    return HistoricalRateBackfillSummary(
        total_pairs=len(results),
        successful=successful,
        failed=failed,
        total_rates_loaded=total_loaded,
        results=results,
    )


async def get_latest_rates(db: AsyncSession) -> list[ExchangeRate]:
    """Most recent stored rate for every pair."""
    repo = ExchangeRateRepository(ExchangeRate, db)
    async with read_only_transaction(db):
        return await repo.get_latest_per_pair()


async def get_rate_history(
    db: AsyncSession,
    start_date: date | None = None,
    end_date: date | None = None,
    currencies: set[str] | None = None,
) -> list[ExchangeRate]:
    """Stored rates in a date range, ordered by date."""
    repo = ExchangeRateRepository(ExchangeRate, db)
    async with read_only_transaction(db):
        return await repo.get_history(start_date, end_date, currencies)


async def get_latest_rate(db: AsyncSession, from_currency: str, to_currency: str) -> Decimal | None:
    """
    Latest known rate from one currency to another.

    Same-currency lookups return 1. When only the reverse direction is
    stored, its reciprocal is returned.

    Returns:
        Rate as Decimal, or None if the pair has never been stored
    """
    from_code, to_code = from_currency.upper(), to_currency.upper()
    if from_code == to_code:
        return Decimal("1")

    repo = ExchangeRateRepository(ExchangeRate, db)
    async with read_only_transaction(db):
        direct = await repo.get_latest_for_direction(from_code, to_code)
        if direct is not None:
            return Decimal(direct.rate)
        inverse = await repo.get_latest_for_direction(to_code, from_code)

    if inverse is None:
        logger.debug(f"Rate not found for {from_code}->{to_code}")
        return None
    return Decimal("1") / Decimal(inverse.rate)


async def get_last_update_time(db: AsyncSession) -> datetime | None:
    """When the Rate Store was last written."""
    repo = ExchangeRateRepository(ExchangeRate, db)
    async with read_only_transaction(db):
        return await repo.get_last_update_time()


async def has_rates_for(db: AsyncSession, rate_date: date) -> bool:
    """Whether any pair has a rate dated ``rate_date``."""
    repo = ExchangeRateRepository(ExchangeRate, db)
    async with read_only_transaction(db):
        return await repo.has_rate_on(rate_date)
