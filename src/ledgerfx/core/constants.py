"""Application-wide constants for the exchange-rate engine.

Constants are grouped by the component that owns them. Values that operators
may want to tune per deployment live in ``ledgerfx.core.config`` instead.
"""


class ResolverConstants:
    """Constants for free-text currency resolution."""

    # Queries shorter than this are too ambiguous to be worth a remote call
    MIN_QUERY_LENGTH = 2

    # Provider search tuning
    SEARCH_MAX_RESULTS = 20
    CURRENCY_QUOTE_TYPE = "CURRENCY"
    FX_SYMBOL_SUFFIX = "=X"

    # Pair used to check that a resolved code actually trades on the provider
    VERIFICATION_QUOTE_CURRENCY = "USD"

    # Fallback minor units when the catalog knows nothing about a code
    DEFAULT_DECIMAL_PLACES = 2


class RateFetchConstants:
    """Constants for spot and historical rate fetching."""

    # Spot rates look back a few days so weekends/holidays still return a close
    SPOT_LOOKBACK_PERIOD = "5d"
    HISTORY_INTERVAL = "1d"
    VERIFICATION_PERIOD = "5d"


class ValuationConstants:
    """Constants for monthly valuation reconstruction."""

    # Ledger statuses excluded from balance replay
    EXCLUDED_TRANSACTION_STATUSES = ("VOID",)


# Error messages surfaced in per-pair results
NO_RATE_DATA_MESSAGE = "No rate data available"
NO_HISTORICAL_DATA_MESSAGE = "No historical data available"
