"""Holding and investment transaction models."""

import enum
import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Enum, ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledgerfx.db.base import Base, TimestampMixin


class Holding(Base, TimestampMixin):
    """Current position in a security within a brokerage account."""

    __tablename__ = "holdings"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), index=True
    )
    security_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("securities.id", ondelete="RESTRICT"), index=True
    )
    quantity: Mapped[Decimal] = mapped_column(Numeric(20, 8))  # Supports fractional shares

    account: Mapped["Account"] = relationship("Account", back_populates="holdings")
    security: Mapped["Security"] = relationship("Security")

    __table_args__ = (
        UniqueConstraint("account_id", "security_id", name="uq_holdings_account_security"),
    )


class InvestmentAction(str, enum.Enum):
    """Actions recorded against a security."""

    BUY = "BUY"
    SELL = "SELL"
    REINVEST = "REINVEST"
    TRANSFER_IN = "TRANSFER_IN"
    TRANSFER_OUT = "TRANSFER_OUT"
    DIVIDEND = "DIVIDEND"
    SPLIT = "SPLIT"


class InvestmentTransaction(Base, TimestampMixin):
    """Security-level activity; its earliest date marks when a security currency was needed."""

    __tablename__ = "investment_transactions"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), index=True
    )
    security_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("securities.id", ondelete="SET NULL"), nullable=True, index=True
    )
    transaction_date: Mapped[date] = mapped_column(Date, index=True)
    action: Mapped[InvestmentAction] = mapped_column(Enum(InvestmentAction))
    quantity: Mapped[Decimal | None] = mapped_column(Numeric(20, 8), nullable=True)
    price: Mapped[Decimal | None] = mapped_column(Numeric(20, 6), nullable=True)
