"""Security model for stocks, ETFs and funds held in investment accounts."""

import uuid
from decimal import Decimal

from sqlalchemy import Boolean, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from ledgerfx.db.base import Base, TimestampMixin


class Security(Base, TimestampMixin):
    """Security quoted in ``currency_code``; ``last_price`` is the latest known close."""

    __tablename__ = "securities"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    symbol: Mapped[str] = mapped_column(String(20), index=True)
    name: Mapped[str] = mapped_column(String(255))
    currency_code: Mapped[str] = mapped_column(
        String(3), ForeignKey("currencies.code", ondelete="RESTRICT")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    last_price: Mapped[Decimal | None] = mapped_column(Numeric(20, 6), nullable=True)
