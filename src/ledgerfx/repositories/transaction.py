"""Transaction repository: ledger reads for balance replay."""

import uuid
from collections.abc import Sequence

from sqlalchemy import select

from ledgerfx.core.constants import ValuationConstants
from ledgerfx.models.transaction import Transaction
from ledgerfx.repositories.base import BaseRepository


class TransactionRepository(BaseRepository[Transaction]):
    """Repository for Transaction model."""

    async def get_for_accounts(self, account_ids: Sequence[uuid.UUID]) -> list[Transaction]:
        """Get non-void transactions for the given accounts, oldest first."""
        if not account_ids:
            return []

        result = await self.db.execute(
            select(Transaction)
            .where(Transaction.account_id.in_(list(account_ids)))
            .where(
                Transaction.status.is_(None)
                | Transaction.status.notin_(ValuationConstants.EXCLUDED_TRANSACTION_STATUSES)
            )
            .order_by(Transaction.transaction_date.asc())
        )
        return list(result.scalars().all())
