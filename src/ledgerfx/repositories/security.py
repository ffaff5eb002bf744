"""Security repository: currency-need queries for held securities."""

import uuid
from collections.abc import Sequence
from datetime import date

from sqlalchemy import func, select

from ledgerfx.models.holding import InvestmentTransaction
from ledgerfx.models.security import Security
from ledgerfx.repositories.base import BaseRepository


class SecurityRepository(BaseRepository[Security]):
    """Repository for Security model."""

    async def get_earliest_currency_dates(
        self,
        user_id: int,
        account_ids: Sequence[uuid.UUID] | None = None,
    ) -> dict[str, date]:
        """Earliest investment transaction date per security currency.

        Args:
            user_id: Owner of the securities
            account_ids: Optional filter on the investment transaction's account

        Returns:
            Mapping of currency code to earliest acquisition date
        """
        stmt = (
            select(
                Security.currency_code,
                func.min(InvestmentTransaction.transaction_date),
            )
            .join(InvestmentTransaction, InvestmentTransaction.security_id == Security.id)
            .where(Security.user_id == user_id)
            .group_by(Security.currency_code)
        )
        if account_ids is not None:
            stmt = stmt.where(InvestmentTransaction.account_id.in_(list(account_ids)))

        result = await self.db.execute(stmt)
        return {code: first for code, first in result.all() if first is not None}
