"""Free-text currency resolution.

Turns user input such as "cad", "Ringgit" or "baht" into a canonical
3-letter code. Resolution runs through three tiers, each returning a tagged
result so it can be tested on its own:

1. Exact code match against the static catalog
2. Exact name match, then unique substring match on catalog names
3. Yahoo Finance free-text search, filtered to FX instruments

Tiers 1 and 2 are in-memory and never fail. Tier 3 degrades every provider
failure to "no match".
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Any

from ledgerfx.core.constants import ResolverConstants
from ledgerfx.data.currency_catalog import CURRENCY_METADATA, CurrencyMetadata
from ledgerfx.services import yfinance_service
from ledgerfx.services.yfinance_service import YFinanceError

logger = logging.getLogger(__name__)

_PAIR_SYMBOL_LENGTH = 6


@dataclass(frozen=True)
class Resolved:
    """A tier settled on a code; ``source`` names the tier."""

    code: str
    source: str


@dataclass(frozen=True)
class Ambiguous:
    """Several catalog names matched; the tier refuses to guess."""

    candidates: tuple[str, ...]


@dataclass(frozen=True)
class NotFound:
    """The tier found nothing."""


ResolutionResult = Resolved | Ambiguous | NotFound


@dataclass(frozen=True)
class CurrencyLookupResult:
    """Canonical currency returned to callers."""

    code: str
    name: str
    symbol: str
    decimal_places: int
    source: str
    verified: bool | None = None


def match_code(
    query: str, catalog: Mapping[str, CurrencyMetadata] = CURRENCY_METADATA
) -> ResolutionResult:
    """Tier 1: the upper-cased query is a known code."""
    code = query.strip().upper()
    if code in catalog:
        return Resolved(code, "code")
    return NotFound()


def match_name(
    query: str, catalog: Mapping[str, CurrencyMetadata] = CURRENCY_METADATA
) -> ResolutionResult:
    """Tier 2: exact name match wins, otherwise a unique substring match."""
    needle = query.strip().lower()

    for code, meta in catalog.items():
        if meta.name.lower() == needle:
            return Resolved(code, "name")

    matches = tuple(code for code, meta in catalog.items() if needle in meta.name.lower())
    if len(matches) == 1:
        return Resolved(matches[0], "name")
    if matches:
        return Ambiguous(matches)
    return NotFound()


def _is_fx_quote(quote: Mapping[str, Any]) -> bool:
    symbol = str(quote.get("symbol") or "")
    return (
        quote.get("quoteType") == ResolverConstants.CURRENCY_QUOTE_TYPE
        or ResolverConstants.FX_SYMBOL_SUFFIX in symbol
    )


def code_from_search_quotes(query: str, quotes: Iterable[Mapping[str, Any]]) -> ResolutionResult:
    """Tier 3 decision over provider search results.

    Only the first FX quote is considered. A 6-letter pair such as "MYRUSD"
    yields the half equal to the query (base first), defaulting to the base.
    Any other symbol shape yields the upper-cased query as a best-effort code.
    """
    wanted = query.strip().upper()

    first = next((quote for quote in quotes if _is_fx_quote(quote)), None)
    if first is None:
        return NotFound()

    symbol = str(first.get("symbol") or "").upper()
    pair = symbol.replace(ResolverConstants.FX_SYMBOL_SUFFIX, "")
    if len(pair) != _PAIR_SYMBOL_LENGTH:
        return Resolved(wanted, "search")

    base, quote_code = pair[:3], pair[3:]
    if base == wanted:
        return Resolved(base, "search")
    if quote_code == wanted:
        return Resolved(quote_code, "search")
    return Resolved(base, "search")


async def match_search(query: str) -> ResolutionResult:
    """Tier 3: ask Yahoo Finance. Provider failures count as no match."""
    try:
        quotes = await yfinance_service.search_quotes_async(query.strip())
    except YFinanceError as e:
        logger.warning(f"Currency search for '{query}' failed: {e}")
        return NotFound()
    return code_from_search_quotes(query, quotes)


def build_lookup_result(
    code: str,
    source: str,
    catalog: Mapping[str, CurrencyMetadata] = CURRENCY_METADATA,
) -> CurrencyLookupResult:
    """Attach catalog metadata, or code-as-name defaults for unknown codes."""
    meta = catalog.get(code)
    if meta is None:
        return CurrencyLookupResult(
            code=code,
            name=code,
            symbol=code,
            decimal_places=ResolverConstants.DEFAULT_DECIMAL_PLACES,
            source=source,
        )
    return CurrencyLookupResult(
        code=code,
        name=meta.name,
        symbol=meta.symbol,
        decimal_places=meta.decimal_places,
        source=source,
    )


async def resolve_currency(
    query: str, *, verify: bool = True
) -> CurrencyLookupResult | None:
    """
    Resolve free text to a canonical currency.

    Args:
        query: Code or name fragment (e.g., "cad", "Ringgit")
        verify: Check that the code trades against USD on Yahoo Finance;
            the outcome is reported but never changes the result

    Returns:
        CurrencyLookupResult, or None when the query is too short, ambiguous
        or unknown

    Example:
        >>> result = await resolve_currency("ringgit")
        >>> print(result.code, result.name)
        MYR Malaysian Ringgit
    """
    if len(query.strip()) < ResolverConstants.MIN_QUERY_LENGTH:
        return None

    outcome = match_code(query)
    if not isinstance(outcome, Resolved):
        outcome = match_name(query)
        if isinstance(outcome, Ambiguous):
            logger.info(
                f"Currency query '{query}' matches {len(outcome.candidates)} names, "
                "falling back to search"
            )
    if not isinstance(outcome, Resolved):
        outcome = await match_search(query)
    if not isinstance(outcome, Resolved):
        logger.info(f"No currency found for '{query}'")
        return None

    result = build_lookup_result(outcome.code, outcome.source)

    if verify and outcome.code in CURRENCY_METADATA:
        verified = await yfinance_service.verify_fx_pair_async(outcome.code)
        if not verified:
            logger.warning(f"{outcome.code} resolved but has no recent USD quote")
        result = replace(result, verified=verified)

    logger.debug(f"Resolved '{query}' to {result.code} via {result.source}")
    return result
