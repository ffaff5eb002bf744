"""Ledger transaction model (read-only for the exchange-rate engine)."""

import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledgerfx.db.base import Base, TimestampMixin


class Transaction(Base, TimestampMixin):
    """Cash movement on an account; ``amount`` is signed in the account's currency."""

    __tablename__ = "transactions"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), index=True
    )
    transaction_date: Mapped[date] = mapped_column(Date, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(20, 4))
    currency_code: Mapped[str] = mapped_column(
        String(3), ForeignKey("currencies.code", ondelete="RESTRICT")
    )
    status: Mapped[str | None] = mapped_column(String(20), nullable=True)

    account: Mapped["Account"] = relationship("Account", back_populates="transactions")
