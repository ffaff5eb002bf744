"""Monthly net worth reconstruction in a single reporting currency.

Pure functions only: callers load accounts, transactions and rates, this
module turns them into a monthly series. Replay and currency conversion are
kept apart:

- ``reconstruct_account_balances`` walks one account backwards from its
  current value and yields native-currency month-end balances
- ``build_monthly_rate_tables`` picks the best-known rate per pair per month
- ``convert_amount`` applies a month's table to one balance
- ``reconstruct`` aggregates everything into assets, liabilities and net worth
- ``reconstruct_investments`` does the same for investment accounts only

All arithmetic uses Decimal.
"""

import bisect
import calendar
import logging
import uuid
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_FLOOR, Decimal

from ledgerfx.models.account import LIABILITY_TYPES, AccountSubType, AccountType
from ledgerfx.schemas.net_worth import MonthlyInvestmentPoint, MonthlyNetWorthPoint

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HALF = Decimal("0.5")

Pair = tuple[str, str]
RateTable = dict[Pair, Decimal]


@dataclass(frozen=True)
class AccountState:
    """What the reconstructor needs to know about one account."""

    id: uuid.UUID
    currency_code: str
    account_type: AccountType
    current_balance: Decimal
    opening_balance: Decimal = ZERO
    account_sub_type: AccountSubType | None = None
    date_acquired: date | None = None
    market_value: Decimal | None = None  # Priced holdings, brokerage-style accounts only


@dataclass(frozen=True)
class LedgerEntry:
    """A non-void transaction, signed in the account's currency."""

    account_id: uuid.UUID
    transaction_date: date
    amount: Decimal


@dataclass(frozen=True)
class RatePoint:
    """One stored daily rate: ``rate`` units of ``to_currency`` per ``from_currency``."""

    from_currency: str
    to_currency: str
    rate_date: date
    rate: Decimal


def month_start(day: date) -> date:
    return day.replace(day=1)


def month_end(month: date) -> date:
    return month.replace(day=calendar.monthrange(month.year, month.month)[1])


def month_range(start: date, end: date) -> list[date]:
    """First day of every month from ``start``'s month to ``end``'s month, inclusive."""
    months = []
    current = month_start(start)
    last = month_start(end)
    while current <= last:
        months.append(current)
        if current.month == 12:
            current = current.replace(year=current.year + 1, month=1)
        else:
            current = current.replace(month=current.month + 1)
    return months


def starting_value(account: AccountState) -> Decimal:
    """Value the backward walk starts from.

    Brokerage sub-accounts are worth their priced holdings (cash lives in the
    linked cash account). Standalone investment accounts hold both, so
    holdings and cash balance are added. Everything else uses the ledger
    balance.
    """
    if account.market_value is None:
        return account.current_balance
    if account.account_sub_type == AccountSubType.INVESTMENT_BROKERAGE:
        return account.market_value
    if account.account_type == AccountType.INVESTMENT and account.account_sub_type is None:
        return account.market_value + account.current_balance
    return account.current_balance


def reconstruct_account_balances(
    account: AccountState,
    transactions: Iterable[LedgerEntry],
    months: Sequence[date],
    *,
    as_of: date | None = None,
) -> dict[date, Decimal | None]:
    """
    Month-end balances for one account in its native currency.

    Starting from today's value, every transaction dated after a month's last
    day (and not in the future) is reversed to get that month's balance.
    ASSET accounts (property, vehicles) follow extra rules:

    - months before the acquisition month are excluded (None)
    - months before the first transaction use the opening balance
    - with no transactions, every month but the latest uses the opening
      balance when it differs from the current balance

    Args:
        account: Account to replay
        transactions: The account's non-void transactions
        months: Requested months (first day of each month), any order
        as_of: Today's date; transactions after it are ignored

    Returns:
        Mapping of month to balance, None where the account is excluded
    """
    ordered = sorted(set(months))
    if not ordered:
        return {}

    today = as_of or date.today()
    entries = sorted(
        (entry for entry in transactions if entry.transaction_date <= today),
        key=lambda entry: entry.transaction_date,
        reverse=True,
    )

    balances: dict[date, Decimal | None] = {}
    running = starting_value(account)
    position = 0
    for month in reversed(ordered):
        cutoff = month_end(month)
        while position < len(entries) and entries[position].transaction_date > cutoff:
            running -= entries[position].amount
            position += 1
        balances[month] = running

    if account.account_type != AccountType.ASSET:
        return balances

    latest = ordered[-1]
    first_tx_month = month_start(entries[-1].transaction_date) if entries else None
    acquired_month = month_start(account.date_acquired) if account.date_acquired else None
    use_opening_without_history = (
        first_tx_month is None and account.opening_balance != account.current_balance
    )

    for month in ordered:
        if acquired_month is not None and month < acquired_month:
            balances[month] = None
        elif first_tx_month is not None and month < first_tx_month:
            balances[month] = account.opening_balance
        elif use_opening_without_history and month != latest:
            balances[month] = account.opening_balance

    return balances


def build_monthly_rate_tables(
    rate_history: Iterable[RatePoint],
    months: Sequence[date],
    current_rates: Mapping[Pair, Decimal] | None = None,
) -> dict[date, RateTable]:
    """
    Best-known rate per stored pair for each month.

    A month uses the latest rate dated on or before its last day. Pairs with
    no rate that early fall back to their earliest known rate. Current rates
    fill pairs still missing from the most recent month.

    Returns:
        Mapping of month to {(from, to): rate}
    """
    series: dict[Pair, list[tuple[date, Decimal]]] = defaultdict(list)
    for point in rate_history:
        series[(point.from_currency, point.to_currency)].append((point.rate_date, point.rate))

    indexed = {}
    for pair, points in series.items():
        points.sort(key=lambda item: item[0])
        indexed[pair] = ([d for d, _ in points], [r for _, r in points])

    ordered = sorted(set(months))
    tables: dict[date, RateTable] = {}
    for month in ordered:
        cutoff = month_end(month)
        table: RateTable = {}
        for pair, (dates, rates) in indexed.items():
            position = bisect.bisect_right(dates, cutoff)
            table[pair] = rates[position - 1] if position else rates[0]
        tables[month] = table

    if ordered and current_rates:
        latest_table = tables[ordered[-1]]
        for pair, rate in current_rates.items():
            latest_table.setdefault(pair, rate)

    return tables


def convert_amount(
    amount: Decimal, from_currency: str, to_currency: str, table: Mapping[Pair, Decimal]
) -> Decimal:
    """
    Convert with a month's rate table.

    Same currency is identity; a stored direct rate multiplies; a stored
    reverse rate divides. With no rate at all the amount is returned
    unconverted rather than inventing a quote.
    """
    if from_currency == to_currency:
        return amount

    direct = table.get((from_currency, to_currency))
    if direct:
        return amount * direct

    inverse = table.get((to_currency, from_currency))
    if inverse:
        return amount / inverse

    logger.warning(f"No rate known for {from_currency}/{to_currency}, using unconverted amount")
    return amount


def is_investment(account: AccountState) -> bool:
    """Investment cash, brokerage, and standalone investment accounts."""
    if account.account_sub_type in (
        AccountSubType.INVESTMENT_CASH,
        AccountSubType.INVESTMENT_BROKERAGE,
    ):
        return True
    return account.account_type == AccountType.INVESTMENT and account.account_sub_type is None


def _round_whole(value: Decimal) -> Decimal:
    # Halves round toward positive infinity: 2.5 -> 3, -2.5 -> -2
    return (value + HALF).to_integral_value(rounding=ROUND_FLOOR)


def _converted_balances(
    accounts: Iterable[AccountState],
    transactions: Iterable[LedgerEntry],
    tables: Mapping[date, RateTable],
    reporting_currency: str,
    ordered: Sequence[date],
    as_of: date | None,
) -> Iterable[tuple[AccountState, date, Decimal]]:
    """Yield (account, month, converted balance) for every month an account is included."""
    entries_by_account: dict[uuid.UUID, list[LedgerEntry]] = defaultdict(list)
    for entry in transactions:
        entries_by_account[entry.account_id].append(entry)

    for account in accounts:
        balances = reconstruct_account_balances(
            account, entries_by_account.get(account.id, []), ordered, as_of=as_of
        )
        for month in ordered:
            balance = balances.get(month)
            if balance is None:
                continue
            yield account, month, convert_amount(
                Decimal(balance), account.currency_code, reporting_currency, tables[month]
            )


def _from_first_covered(ordered: Sequence[date], covered: set[date]) -> list[date]:
    """Drop leading months no account contributes to."""
    for position, month in enumerate(ordered):
        if month in covered:
            return list(ordered[position:])
    return []


def reconstruct(
    accounts: Iterable[AccountState],
    transactions: Iterable[LedgerEntry],
    rate_history: Iterable[RatePoint],
    reporting_currency: str,
    months: Sequence[date],
    current_rates: Mapping[Pair, Decimal] | None = None,
    *,
    as_of: date | None = None,
) -> list[MonthlyNetWorthPoint]:
    """
    Monthly assets, liabilities and net worth in the reporting currency.

    Liability accounts (credit card, loan, mortgage, line of credit) add
    their absolute converted value to liabilities; all other accounts add
    their signed converted value to assets. Points are oldest first and start
    at the first month any account contributes to; values are rounded to
    whole units with halves going up (-2.5 becomes -2).

    Example:
        >>> points = reconstruct(accounts, entries, rates, "CAD", month_range(start, end))
        >>> print(points[-1].net_worth)
        125340
    """
    ordered = sorted(set(months))
    if not ordered:
        return []

    tables = build_monthly_rate_tables(rate_history, ordered, current_rates)
    assets = dict.fromkeys(ordered, ZERO)
    liabilities = dict.fromkeys(ordered, ZERO)
    covered: set[date] = set()

    for account, month, converted in _converted_balances(
        accounts, transactions, tables, reporting_currency, ordered, as_of
    ):
        covered.add(month)
        if account.account_type in LIABILITY_TYPES:
            liabilities[month] += abs(converted)
        else:
            assets[month] += converted

    return [
        MonthlyNetWorthPoint(
            month=month,
            assets=_round_whole(assets[month]),
            liabilities=_round_whole(liabilities[month]),
            net_worth=_round_whole(assets[month] - liabilities[month]),
        )
        for month in _from_first_covered(ordered, covered)
    ]


def reconstruct_investments(
    accounts: Iterable[AccountState],
    transactions: Iterable[LedgerEntry],
    rate_history: Iterable[RatePoint],
    reporting_currency: str,
    months: Sequence[date],
    current_rates: Mapping[Pair, Decimal] | None = None,
    *,
    account_ids: Iterable[uuid.UUID] | None = None,
    as_of: date | None = None,
) -> list[MonthlyInvestmentPoint]:
    """
    Monthly value of investment accounts in the reporting currency.

    By default every investment account counts (see ``is_investment``).
    ``account_ids`` replaces that filter with an explicit selection. Brokerage
    accounts are worth their holdings, standalone investment accounts their
    holdings plus cash, as in ``starting_value``.
    """
    ordered = sorted(set(months))
    if not ordered:
        return []

    if account_ids is not None:
        wanted = set(account_ids)
        selected = [account for account in accounts if account.id in wanted]
    else:
        selected = [account for account in accounts if is_investment(account)]
    if not selected:
        return []

    tables = build_monthly_rate_tables(rate_history, ordered, current_rates)
    values = dict.fromkeys(ordered, ZERO)
    covered: set[date] = set()

    for _, month, converted in _converted_balances(
        selected, transactions, tables, reporting_currency, ordered, as_of
    ):
        covered.add(month)
        values[month] += converted

    return [
        MonthlyInvestmentPoint(month=month, value=_round_whole(values[month]))
        for month in _from_first_covered(ordered, covered)
    ]
