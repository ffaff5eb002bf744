"""Service layer for interacting with the yfinance API.

Yahoo Finance is the only external rate provider. Two capabilities are used:

- Free-text search (``yf.Search``), used by the currency resolver
- Daily close series for an FX pair symbol (``Ticker.history``), used by the
  refresh and backfill engines

yfinance is synchronous, so the ``*_async`` wrappers run each call in the
default executor and bound it with ``FX_PROVIDER_TIMEOUT_SECONDS``. A provider
that never answers therefore surfaces as an ``APIError`` instead of a stuck
request.
"""

import asyncio
import logging
import math
from collections.abc import Callable
from datetime import date
from typing import Any, TypeVar

import pandas as pd
import yfinance as yf  # type: ignore[import-untyped]

from ledgerfx.core.config import settings
from ledgerfx.core.constants import RateFetchConstants, ResolverConstants

logger = logging.getLogger(__name__)

T = TypeVar("T")


class YFinanceError(Exception):
    """Base exception for yfinance service errors."""

    pass


class InvalidSymbolError(YFinanceError):
    """Raised when a symbol has no data in Yahoo Finance."""

    pass


class APIError(YFinanceError):
    """Raised when Yahoo Finance returns an error or does not answer in time."""

    pass


def fx_symbol(from_currency: str, to_currency: str) -> str:
    """Yahoo Finance symbol for a currency pair (e.g. "CADUSD=X")."""
    return f"{from_currency.upper()}{to_currency.upper()}{ResolverConstants.FX_SYMBOL_SUFFIX}"


def fetch_fx_spot_rate(from_currency: str, to_currency: str) -> float | None:
    """
    Fetch the most recent close for a currency pair.

    Looks back a few days so weekends and market holidays still yield the
    last traded close.

    Args:
        from_currency: Base currency code (e.g., "CAD")
        to_currency: Quote currency code (e.g., "USD")

    Returns:
        Units of ``to_currency`` per one ``from_currency``, or None when the
        provider has no usable price

    Raises:
        APIError: If the request fails
    """
    symbol = fx_symbol(from_currency, to_currency)
    try:
        df = yf.Ticker(symbol).history(
            period=RateFetchConstants.SPOT_LOOKBACK_PERIOD,
            interval=RateFetchConstants.HISTORY_INTERVAL,
        )
    except Exception as e:
        logger.error(f"Error fetching spot rate for {symbol}: {e}")
        raise APIError(f"Failed to fetch spot rate: {str(e)}") from e

    if df is None or df.empty or "Close" not in df.columns:
        logger.warning(f"No data returned for {symbol}")
        return None

    closes = pd.to_numeric(df["Close"], errors="coerce")
    closes = closes[closes.map(lambda v: math.isfinite(v) and v > 0)]
    if closes.empty:
        logger.warning(f"No usable close price for {symbol}")
        return None

    return float(closes.iloc[-1])


def fetch_fx_history(from_currency: str, to_currency: str, start: date) -> pd.DataFrame:
    """
    Fetch daily closes for a currency pair from ``start`` to today.

    Args:
        from_currency: Base currency code
        to_currency: Quote currency code
        start: First day requested

    Returns:
        DataFrame indexed by (usually timezone-aware) timestamps with at
        least a ``Close`` column

    Raises:
        InvalidSymbolError: If the series is empty or has no close prices
        APIError: If the request fails
    """
    symbol = fx_symbol(from_currency, to_currency)
    try:
        df = yf.Ticker(symbol).history(
            start=start.isoformat(),
            interval=RateFetchConstants.HISTORY_INTERVAL,
        )
    except Exception as e:
        logger.error(f"Error fetching history for {symbol} (start={start}): {e}")
        raise APIError(f"Failed to fetch history: {str(e)}") from e

    if df is None or df.empty or "Close" not in df.columns:
        raise InvalidSymbolError(f"No data available for symbol '{symbol}' since {start}")

    return df


def search_quotes(query: str) -> list[dict[str, Any]]:
    """
    Free-text instrument search.

    Args:
        query: Search text (e.g., "ringgit", "MYR")

    Returns:
        Raw quote dicts as returned by Yahoo Finance (``symbol``,
        ``quoteType``, ``shortname``, ...)

    Raises:
        APIError: If the request fails or the payload is malformed
    """
    try:
        search = yf.Search(
            query,
            max_results=ResolverConstants.SEARCH_MAX_RESULTS,
            news_count=0,
        )
        quotes = search.quotes
    except Exception as e:
        logger.error(f"Error searching quotes for '{query}': {e}")
        raise APIError(f"Search failed: {str(e)}") from e

    if quotes is None:
        return []
    if not isinstance(quotes, list):
        raise APIError(f"Malformed search payload for '{query}'")
    return [quote for quote in quotes if isinstance(quote, dict)]


def verify_fx_pair(code: str) -> bool:
    """Check that ``{CODE}USD=X`` has recent data on Yahoo Finance.

    Never raises; any failure counts as "not verified".
    """
    quote = ResolverConstants.VERIFICATION_QUOTE_CURRENCY
    if code == quote:
        return True

    symbol = fx_symbol(code, quote)
    try:
        df = yf.Ticker(symbol).history(period=RateFetchConstants.VERIFICATION_PERIOD)
    except Exception as e:
        logger.debug(f"Verification of {symbol} failed: {e}")
        return False
    return df is not None and not df.empty


async def _run_with_timeout(func: Callable[..., T], *args: Any) -> T:
    """Run a blocking yfinance call in the executor, bounded by the provider timeout."""
    loop = asyncio.get_running_loop()
    try:
        return await asyncio.wait_for(
            loop.run_in_executor(None, func, *args),
            timeout=settings.FX_PROVIDER_TIMEOUT_SECONDS,
        )
    except TimeoutError as e:
        name = getattr(func, "__name__", "yfinance call")
        logger.warning(
            f"{name}{args} timed out after {settings.FX_PROVIDER_TIMEOUT_SECONDS}s"
        )
        raise APIError(f"Provider timed out after {settings.FX_PROVIDER_TIMEOUT_SECONDS}s") from e


async def fetch_fx_spot_rate_async(from_currency: str, to_currency: str) -> float | None:
    """Async wrapper for ``fetch_fx_spot_rate``."""
    return await _run_with_timeout(fetch_fx_spot_rate, from_currency, to_currency)


async def fetch_fx_history_async(
    from_currency: str, to_currency: str, start: date
) -> pd.DataFrame:
    """Async wrapper for ``fetch_fx_history``."""
    return await _run_with_timeout(fetch_fx_history, from_currency, to_currency, start)


async def search_quotes_async(query: str) -> list[dict[str, Any]]:
    """Async wrapper for ``search_quotes``."""
    return await _run_with_timeout(search_quotes, query)


async def verify_fx_pair_async(code: str) -> bool:
    """Async wrapper for ``verify_fx_pair``; a timeout counts as not verified."""
    try:
        return await _run_with_timeout(verify_fx_pair, code)
    except APIError:
        return False
