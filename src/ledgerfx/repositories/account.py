"""Account repository: read-only queries used by backfill and valuation."""

import uuid
from collections.abc import Sequence
from datetime import date

from sqlalchemy import func, select

from ledgerfx.core.config import settings
from ledgerfx.core.constants import ValuationConstants
from ledgerfx.models.account import Account
from ledgerfx.models.transaction import Transaction
from ledgerfx.models.user import UserPreference
from ledgerfx.repositories.base import BaseRepository


class AccountRepository(BaseRepository[Account]):
    """Repository for Account with currency-need queries.

    Example:
        >>> repo = AccountRepository(Account, db)
        >>> needs = await repo.get_earliest_currency_dates(user.id)
        >>> print(needs)
        {'EUR': datetime.date(2025, 6, 15)}
    """

    async def get_by_user_id(
        self, user_id: int, *, include_closed: bool = True
    ) -> list[Account]:
        """Get a user's accounts ordered by name.

        Closed accounts are included by default so historical months still
        count balances the user held at the time.
        """
        stmt = select(Account).where(Account.user_id == user_id)
        if not include_closed:
            stmt = stmt.where(Account.is_closed.is_(False))
        result = await self.db.execute(stmt.order_by(Account.name))
        return list(result.scalars().all())

    async def get_earliest_currency_dates(
        self,
        user_id: int,
        account_ids: Sequence[uuid.UUID] | None = None,
    ) -> dict[str, date]:
        """Earliest date each account currency was needed.

        An account needs its currency from the earlier of its opening date and
        its first non-void transaction. Accounts with neither are skipped.

        Args:
            user_id: Owner of the accounts
            account_ids: Optional filter; only these accounts are considered

        Returns:
            Mapping of currency code to earliest-need date
        """
        first_tx = (
            select(
                Transaction.account_id,
                func.min(Transaction.transaction_date).label("first_date"),
            )
            .where(
                Transaction.status.is_(None)
                | Transaction.status.notin_(ValuationConstants.EXCLUDED_TRANSACTION_STATUSES)
            )
            .group_by(Transaction.account_id)
            .subquery()
        )

        stmt = (
            select(Account.currency_code, Account.opened_on, first_tx.c.first_date)
            .outerjoin(first_tx, first_tx.c.account_id == Account.id)
            .where(Account.user_id == user_id)
        )
        if account_ids is not None:
            stmt = stmt.where(Account.id.in_(list(account_ids)))

        result = await self.db.execute(stmt)

        earliest: dict[str, date] = {}
        for code, opened_on, first_date in result.all():
            candidates = [d for d in (opened_on, first_date) if d is not None]
            if not candidates:
                continue
            need = min(candidates)
            if code not in earliest or need < earliest[code]:
                earliest[code] = need
        return earliest

    async def get_user_ids_with_foreign_accounts(self) -> list[int]:
        """Users holding an open account outside their reporting currency."""
        reporting = func.coalesce(
            UserPreference.default_currency, settings.DEFAULT_REPORTING_CURRENCY
        )
        result = await self.db.execute(
            select(Account.user_id)
            .outerjoin(UserPreference, UserPreference.user_id == Account.user_id)
            .where(Account.is_closed.is_(False))
            .where(Account.currency_code != reporting)
            .distinct()
            .order_by(Account.user_id)
        )
        return list(result.scalars().all())
