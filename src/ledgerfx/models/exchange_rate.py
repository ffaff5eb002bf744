"""Exchange rate model: the persisted store of daily rates."""

from datetime import date
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledgerfx.db.base import Base, TimestampMixin


class ExchangeRate(Base, TimestampMixin):
    """Daily exchange rate between two currencies.

    A pair is stored in one direction only: writers always put the
    alphabetically smaller code in ``from_currency``. Rows are never deleted;
    re-fetching the same (pair, date) updates ``rate`` and ``source`` in place.

    Attributes:
        id: Surrogate key
        from_currency: Source currency code (e.g., "CAD")
        to_currency: Target currency code (e.g., "USD")
        rate_date: Calendar day the rate applies to
        rate: Units of ``to_currency`` per one ``from_currency`` (1 CAD = 0.73 USD)
        source: Provenance tag (e.g., "yahoo_finance")
    """

    __tablename__ = "exchange_rates"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    from_currency: Mapped[str] = mapped_column(
        String(3), ForeignKey("currencies.code", ondelete="CASCADE")
    )
    to_currency: Mapped[str] = mapped_column(
        String(3), ForeignKey("currencies.code", ondelete="CASCADE")
    )
    rate_date: Mapped[date] = mapped_column(Date, index=True)
    rate: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    source: Mapped[str] = mapped_column(String(50), default="yahoo_finance")

    __table_args__ = (
        UniqueConstraint(
            "from_currency",
            "to_currency",
            "rate_date",
            name="uq_exchange_rates_pair_date",
        ),
        CheckConstraint("rate > 0", name="positive_rate"),
        Index("ix_exchange_rates_pair", "from_currency", "to_currency"),
    )

    @property
    def pair(self) -> str:
        """Pair label in "FROM/TO" form."""
        return f"{self.from_currency}/{self.to_currency}"
