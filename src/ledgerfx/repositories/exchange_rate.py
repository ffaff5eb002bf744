"""ExchangeRate repository: the Rate Store.

All writes go through ``INSERT ... ON CONFLICT DO UPDATE`` keyed on
(from_currency, to_currency, rate_date), so repeated refreshes or overlapping
backfills never create duplicate rows. The unique constraint is the only
concurrency guard.
"""

from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import and_, func, or_, select
from sqlalchemy.dialects import postgresql, sqlite

from ledgerfx.core.config import settings
from ledgerfx.models.exchange_rate import ExchangeRate
from ledgerfx.repositories.base import BaseRepository

_UPSERT_KEY = ["from_currency", "to_currency", "rate_date"]

# 7 bind parameters per row; asyncpg allows at most 32767 per statement
UPSERT_BATCH_SIZE = 1000


class ExchangeRateRepository(BaseRepository[ExchangeRate]):
    """Repository for ExchangeRate with upsert and time-series queries.

    Example:
        >>> repo = ExchangeRateRepository(ExchangeRate, db)
        >>> await repo.upsert_rate("CAD", "USD", date.today(), Decimal("0.73"))
        >>> await db.commit()
    """

    def _insert(self):
        """Dialect-specific INSERT supporting ON CONFLICT."""
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(ExchangeRate)
        if dialect == "sqlite":
            return sqlite.insert(ExchangeRate)
        raise NotImplementedError(f"Upsert is not supported for dialect '{dialect}'")

    async def bulk_upsert(self, rows: list[dict[str, Any]]) -> int:
        """Insert or update many rates.

        Rows are written in batches of ``UPSERT_BATCH_SIZE`` so a long history
        stays under the driver's bind-parameter limit (32767 for asyncpg). All
        batches share the caller's transaction.

        Args:
            rows: Dicts with from_currency, to_currency, rate_date, rate and
                optionally source

        Returns:
            Number of rows sent to the store

        Note:
            Caller must commit the transaction.
        """
        if not rows:
            return 0

        now = datetime.now(UTC)
        values = [
            {
                "from_currency": row["from_currency"],
                "to_currency": row["to_currency"],
                "rate_date": row["rate_date"],
                "rate": row["rate"],
                "source": row.get("source", settings.FX_RATE_SOURCE),
                "created_at": now,
                "updated_at": now,
            }
            for row in rows
        ]

        for start in range(0, len(values), UPSERT_BATCH_SIZE):
            stmt = self._insert().values(values[start : start + UPSERT_BATCH_SIZE])
            stmt = stmt.on_conflict_do_update(
                index_elements=_UPSERT_KEY,
                set_={
                    "rate": stmt.excluded.rate,
                    "source": stmt.excluded.source,
                    "updated_at": stmt.excluded.updated_at,
                },
            )
            await self.db.execute(stmt)
        await self.db.flush()
        return len(values)

    async def upsert_rate(
        self,
        from_currency: str,
        to_currency: str,
        rate_date: date,
        rate: Decimal,
        source: str | None = None,
    ) -> None:
        """Insert the rate for (pair, date), or update rate and source if present.

        Note:
            Caller must commit the transaction.
        """
        await self.bulk_upsert(
            [
                {
                    "from_currency": from_currency,
                    "to_currency": to_currency,
                    "rate_date": rate_date,
                    "rate": rate,
                    "source": source or settings.FX_RATE_SOURCE,
                }
            ]
        )

    async def get_rate(
        self, from_currency: str, to_currency: str, rate_date: date
    ) -> ExchangeRate | None:
        """Get the stored row for an exact (pair, date)."""
        result = await self.db.execute(
            select(ExchangeRate).where(
                (ExchangeRate.from_currency == from_currency)
                & (ExchangeRate.to_currency == to_currency)
                & (ExchangeRate.rate_date == rate_date)
            )
        )
        return result.scalar_one_or_none()

    async def get_earliest_rate_date(self, currency_a: str, currency_b: str) -> date | None:
        """Get the oldest stored rate date for a pair in either direction."""
        result = await self.db.execute(
            select(func.min(ExchangeRate.rate_date)).where(
                or_(
                    and_(
                        ExchangeRate.from_currency == currency_a,
                        ExchangeRate.to_currency == currency_b,
                    ),
                    and_(
                        ExchangeRate.from_currency == currency_b,
                        ExchangeRate.to_currency == currency_a,
                    ),
                )
            )
        )
        return result.scalar_one()

    async def has_rate_on(self, rate_date: date) -> bool:
        """Check whether any pair has a rate dated ``rate_date``."""
        result = await self.db.execute(
            select(ExchangeRate.id).where(ExchangeRate.rate_date == rate_date).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def get_latest_per_pair(self) -> list[ExchangeRate]:
        """Get the most recent rate for every stored pair, ordered by pair."""
        latest = (
            select(
                ExchangeRate.from_currency,
                ExchangeRate.to_currency,
                func.max(ExchangeRate.rate_date).label("max_date"),
            )
            .group_by(ExchangeRate.from_currency, ExchangeRate.to_currency)
            .subquery()
        )
        result = await self.db.execute(
            select(ExchangeRate)
            .join(
                latest,
                (ExchangeRate.from_currency == latest.c.from_currency)
                & (ExchangeRate.to_currency == latest.c.to_currency)
                & (ExchangeRate.rate_date == latest.c.max_date),
            )
            .order_by(ExchangeRate.from_currency, ExchangeRate.to_currency)
        )
        return list(result.scalars().all())

    async def get_history(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
        currencies: set[str] | None = None,
    ) -> list[ExchangeRate]:
        """Get rates in a date range, ordered by date then pair.

        Args:
            start_date: Inclusive lower bound (None for unbounded)
            end_date: Inclusive upper bound (None for unbounded)
            currencies: When given, only pairs touching one of these codes

        Returns:
            List of rate rows ordered by rate_date ascending
        """
        stmt = select(ExchangeRate)
        if start_date is not None:
            stmt = stmt.where(ExchangeRate.rate_date >= start_date)
        if end_date is not None:
            stmt = stmt.where(ExchangeRate.rate_date <= end_date)
        if currencies:
            stmt = stmt.where(
                ExchangeRate.from_currency.in_(currencies)
                | ExchangeRate.to_currency.in_(currencies)
            )
        stmt = stmt.order_by(
            ExchangeRate.rate_date.asc(),
            ExchangeRate.from_currency.asc(),
            ExchangeRate.to_currency.asc(),
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_latest_for_direction(
        self, from_currency: str, to_currency: str
    ) -> ExchangeRate | None:
        """Get the newest row stored exactly as from_currency -> to_currency."""
        result = await self.db.execute(
            select(ExchangeRate)
            .where(
                (ExchangeRate.from_currency == from_currency)
                & (ExchangeRate.to_currency == to_currency)
            )
            .order_by(ExchangeRate.rate_date.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_last_update_time(self) -> datetime | None:
        """Get the most recent write time across the whole store."""
        result = await self.db.execute(select(func.max(ExchangeRate.updated_at)))
        return result.scalar_one_or_none()
