"""Currency repository: catalog rows and currency usage queries."""

from sqlalchemy import func, select, union

from ledgerfx.data.currency_catalog import CURRENCY_METADATA
from ledgerfx.models.account import Account
from ledgerfx.models.currency import Currency
from ledgerfx.models.security import Security
from ledgerfx.models.transaction import Transaction
from ledgerfx.repositories.base import BaseRepository


class CurrencyRepository(BaseRepository[Currency]):
    """Repository for the currency catalog.

    Example:
        >>> repo = CurrencyRepository(Currency, db)
        >>> codes = await repo.get_codes_in_use()
        >>> print(codes)
        ['CAD', 'EUR', 'USD']
    """

    async def list_currencies(self, *, active_only: bool = True) -> list[Currency]:
        """List catalog currencies ordered by code."""
        stmt = select(Currency)
        if active_only:
            stmt = stmt.where(Currency.is_active.is_(True))
        result = await self.db.execute(stmt.order_by(Currency.code))
        return list(result.scalars().all())

    async def seed_system_currencies(self) -> int:
        """Insert every static catalog currency that is not stored yet.

        Returns:
            Number of currencies inserted (0 when already seeded)

        Note:
            Caller must commit the transaction.
        """
        result = await self.db.execute(select(Currency.code))
        existing = set(result.scalars().all())

        missing = [
            Currency(
                code=code,
                name=meta.name,
                symbol=meta.symbol,
                decimal_places=meta.decimal_places,
                is_active=True,
            )
            for code, meta in CURRENCY_METADATA.items()
            if code not in existing
        ]
        if missing:
            self.db.add_all(missing)
            await self.db.flush()
        return len(missing)

    async def get_codes_in_use(self, user_id: int | None = None) -> list[str]:
        """Distinct currency codes referenced by open accounts, active securities and transactions.

        Args:
            user_id: Restrict to one user's records (None for every user)

        Returns:
            Sorted list of currency codes
        """
        accounts = select(Account.currency_code.label("code")).where(
            Account.is_closed.is_(False)
        )
        securities = select(Security.currency_code.label("code")).where(
            Security.is_active.is_(True)
        )
        transactions = select(Transaction.currency_code.label("code")).join(
            Account, Transaction.account_id == Account.id
        )
        if user_id is not None:
            accounts = accounts.where(Account.user_id == user_id)
            securities = securities.where(Security.user_id == user_id)
            transactions = transactions.where(Account.user_id == user_id)

        result = await self.db.execute(union(accounts, securities, transactions))
        return sorted(code for code in result.scalars().all() if code)

    async def get_usage(self) -> dict[str, dict[str, int]]:
        """Count open accounts and active securities per currency code.

        Returns:
            Mapping like {"CAD": {"accounts": 2, "securities": 0}}
        """
        usage: dict[str, dict[str, int]] = {}

        account_rows = await self.db.execute(
            select(Account.currency_code, func.count(Account.id))
            .where(Account.is_closed.is_(False))
            .group_by(Account.currency_code)
        )
        for code, count in account_rows.all():
            usage.setdefault(code, {"accounts": 0, "securities": 0})["accounts"] = count

        security_rows = await self.db.execute(
            select(Security.currency_code, func.count(Security.id))
            .where(Security.is_active.is_(True))
            .group_by(Security.currency_code)
        )
        for code, count in security_rows.all():
            usage.setdefault(code, {"accounts": 0, "securities": 0})["securities"] = count

        return usage
