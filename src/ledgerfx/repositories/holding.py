"""Holding repository: current market value of brokerage positions."""

import uuid
from collections.abc import Sequence
from decimal import Decimal

from sqlalchemy import select

from ledgerfx.models.holding import Holding
from ledgerfx.models.security import Security
from ledgerfx.repositories.base import BaseRepository


class HoldingRepository(BaseRepository[Holding]):
    """Repository for Holding model."""

    async def get_market_values(
        self, account_ids: Sequence[uuid.UUID]
    ) -> dict[uuid.UUID, Decimal]:
        """Sum quantity * last price per account.

        Positions whose security has no known price are ignored; accounts with
        no priced positions are absent from the result.
        """
        if not account_ids:
            return {}

        result = await self.db.execute(
            select(Holding.account_id, Holding.quantity, Security.last_price)
            .join(Security, Holding.security_id == Security.id)
            .where(Holding.account_id.in_(list(account_ids)))
            .where(Security.last_price.is_not(None))
        )

        values: dict[uuid.UUID, Decimal] = {}
        for account_id, quantity, last_price in result.all():
            position = Decimal(str(quantity)) * Decimal(str(last_price))
            values[account_id] = values.get(account_id, Decimal("0")) + position
        return values
