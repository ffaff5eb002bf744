"""Account model for tracking financial accounts (assets and liabilities)."""

import enum
import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, Date, Enum, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledgerfx.db.base import Base, TimestampMixin


class AccountType(str, enum.Enum):
    """Account types - assets and liabilities."""

    # Asset accounts
    CHEQUING = "CHEQUING"
    SAVINGS = "SAVINGS"
    CASH = "CASH"
    INVESTMENT = "INVESTMENT"
    ASSET = "ASSET"  # One-off value-tracked assets (vehicles, property)
    OTHER = "OTHER"

    # Liability accounts
    CREDIT_CARD = "CREDIT_CARD"
    LOAN = "LOAN"
    MORTGAGE = "MORTGAGE"
    LINE_OF_CREDIT = "LINE_OF_CREDIT"


class AccountSubType(str, enum.Enum):
    """Sub-types splitting an investment account into its cash and brokerage halves."""

    INVESTMENT_CASH = "INVESTMENT_CASH"
    INVESTMENT_BROKERAGE = "INVESTMENT_BROKERAGE"


LIABILITY_TYPES = frozenset(
    {
        AccountType.CREDIT_CARD,
        AccountType.LOAN,
        AccountType.MORTGAGE,
        AccountType.LINE_OF_CREDIT,
    }
)


class Account(Base, TimestampMixin):
    """Financial account (chequing, investment, credit card, property, etc.)."""

    __tablename__ = "accounts"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    currency_code: Mapped[str] = mapped_column(
        String(3), ForeignKey("currencies.code", ondelete="RESTRICT"), index=True
    )
    name: Mapped[str] = mapped_column(String(255))
    account_type: Mapped[AccountType] = mapped_column(Enum(AccountType))
    account_sub_type: Mapped[AccountSubType | None] = mapped_column(
        Enum(AccountSubType), nullable=True
    )
    current_balance: Mapped[Decimal] = mapped_column(Numeric(20, 4), default=Decimal("0"))
    opening_balance: Mapped[Decimal] = mapped_column(Numeric(20, 4), default=Decimal("0"))
    opened_on: Mapped[date | None] = mapped_column(Date, nullable=True)
    date_acquired: Mapped[date | None] = mapped_column(Date, nullable=True)  # ASSET only
    is_closed: Mapped[bool] = mapped_column(Boolean, default=False)

    transactions: Mapped[list["Transaction"]] = relationship(
        "Transaction", back_populates="account", cascade="all, delete-orphan"
    )
    holdings: Mapped[list["Holding"]] = relationship(
        "Holding", back_populates="account", cascade="all, delete-orphan"
    )

    @property
    def is_brokerage(self) -> bool:
        """Accounts that hold securities and are valued at market."""
        return self.account_sub_type == AccountSubType.INVESTMENT_BROKERAGE or (
            self.account_type == AccountType.INVESTMENT and self.account_sub_type is None
        )
