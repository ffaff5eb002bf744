"""Net worth service: loads a user's ledger and rates, then reconstructs months."""

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerfx.core.exceptions import ValidationError
from ledgerfx.db.session import read_only_transaction
from ledgerfx.models.account import Account
from ledgerfx.models.exchange_rate import ExchangeRate
from ledgerfx.models.holding import Holding
from ledgerfx.models.transaction import Transaction
from ledgerfx.models.user import UserPreference
from ledgerfx.repositories import (
    AccountRepository,
    ExchangeRateRepository,
    HoldingRepository,
    TransactionRepository,
    UserPreferenceRepository,
)
from ledgerfx.schemas.net_worth import MonthlyInvestmentResponse, MonthlyNetWorthResponse
from ledgerfx.services.valuation import (
    AccountState,
    LedgerEntry,
    Pair,
    RatePoint,
    month_end,
    month_range,
    reconstruct,
    reconstruct_investments,
)

logger = logging.getLogger(__name__)


@dataclass
class _LedgerSnapshot:
    reporting: str
    months: list[date]
    accounts: list[AccountState]
    entries: list[LedgerEntry]
    history: list[RatePoint]
    current_rates: dict[Pair, Decimal]
    today: date


def _to_state(account: Account, market_value: Decimal | None) -> AccountState:
    return AccountState(
        id=account.id,
        currency_code=account.currency_code,
        account_type=account.account_type,
        account_sub_type=account.account_sub_type,
        current_balance=Decimal(account.current_balance or 0),
        opening_balance=Decimal(account.opening_balance or 0),
        date_acquired=account.date_acquired,
        market_value=market_value,
    )


def _to_rate_point(row: ExchangeRate) -> RatePoint:
    return RatePoint(
        from_currency=row.from_currency,
        to_currency=row.to_currency,
        rate_date=row.rate_date,
        rate=Decimal(row.rate),
    )


async def _load_snapshot(
    db: AsyncSession, user_id: int, start_date: date, end_date: date | None
) -> _LedgerSnapshot:
    """Read everything the reconstructors need in one read-only transaction.

    Closed accounts are included so months when they were open still count.
    Only rates touching the reporting currency are loaded.

    Raises:
        ValidationError: If start_date is after end_date
    """
    today = date.today()
    end_date = end_date or today
    if start_date > end_date:
        raise ValidationError("start_date must be on or before end_date")

    months = month_range(start_date, end_date)

    pref_repo = UserPreferenceRepository(UserPreference, db)
    account_repo = AccountRepository(Account, db)
    holding_repo = HoldingRepository(Holding, db)
    tx_repo = TransactionRepository(Transaction, db)
    rate_repo = ExchangeRateRepository(ExchangeRate, db)

    async with read_only_transaction(db):
        reporting = await pref_repo.get_reporting_currency(user_id)
        accounts = await account_repo.get_by_user_id(user_id)
        market_values = await holding_repo.get_market_values(
            [account.id for account in accounts if account.is_brokerage]
        )
        transactions = await tx_repo.get_for_accounts([account.id for account in accounts])
        history = await rate_repo.get_history(
            end_date=month_end(months[-1]), currencies={reporting}
        )
        latest = await rate_repo.get_latest_per_pair()

    return _LedgerSnapshot(
        reporting=reporting,
        months=months,
        accounts=[_to_state(account, market_values.get(account.id)) for account in accounts],
        entries=[
            LedgerEntry(
                account_id=tx.account_id,
                transaction_date=tx.transaction_date,
                amount=Decimal(tx.amount),
            )
            for tx in transactions
        ],
        history=[_to_rate_point(row) for row in history],
        current_rates={
            (row.from_currency, row.to_currency): Decimal(row.rate)
            for row in latest
            if reporting in (row.from_currency, row.to_currency)
        },
        today=today,
    )


async def get_monthly_net_worth(
    db: AsyncSession,
    user_id: int,
    start_date: date,
    end_date: date | None = None,
) -> MonthlyNetWorthResponse:
    """
    Monthly net worth between two dates in the user's reporting currency.

    Args:
        db: Database session
        user_id: Owner of the accounts
        start_date: Any day in the first month
        end_date: Any day in the last month (default: today)

    Returns:
        MonthlyNetWorthResponse with one point per month from the first month
        any account contributes to

    Raises:
        ValidationError: If start_date is after end_date
    """
    snapshot = await _load_snapshot(db, user_id, start_date, end_date)

    points = reconstruct(
        snapshot.accounts,
        snapshot.entries,
        snapshot.history,
        snapshot.reporting,
        snapshot.months,
        snapshot.current_rates,
        as_of=snapshot.today,
    )
    logger.info(
        f"Reconstructed {len(points)} months of net worth for user {user_id} "
        f"({len(snapshot.accounts)} accounts, {len(snapshot.entries)} transactions, "
        f"{len(snapshot.history)} rates)"
    )
    return MonthlyNetWorthResponse(reporting_currency=snapshot.reporting, points=points)


async def get_monthly_investments(
    db: AsyncSession,
    user_id: int,
    start_date: date,
    end_date: date | None = None,
    account_ids: Sequence[uuid.UUID] | None = None,
) -> MonthlyInvestmentResponse:
    """
    Monthly value of a user's investment accounts in the reporting currency.

    Args:
        db: Database session
        user_id: Owner of the accounts
        start_date: Any day in the first month
        end_date: Any day in the last month (default: today)
        account_ids: Explicit selection of the user's accounts; by default
            all investment cash, brokerage and standalone investment accounts

    Returns:
        MonthlyInvestmentResponse, empty when nothing is selected

    Raises:
        ValidationError: If start_date is after end_date
    """
    snapshot = await _load_snapshot(db, user_id, start_date, end_date)

    points = reconstruct_investments(
        snapshot.accounts,
        snapshot.entries,
        snapshot.history,
        snapshot.reporting,
        snapshot.months,
        snapshot.current_rates,
        account_ids=account_ids or None,
        as_of=snapshot.today,
    )
    logger.info(f"Reconstructed {len(points)} months of investment value for user {user_id}")
    return MonthlyInvestmentResponse(reporting_currency=snapshot.reporting, points=points)
