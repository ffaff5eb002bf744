"""Currency model for the currency catalog (USD, EUR, CAD, etc.)."""

from sqlalchemy import Boolean, ForeignKey, SmallInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from ledgerfx.db.base import Base, TimestampMixin


class Currency(Base, TimestampMixin):
    """Currency catalog entry.

    System currencies are seeded from the static metadata table and have no
    owner; user-defined currencies record the user who created them. Rows are
    immutable apart from ``is_active``.

    Attributes:
        code: ISO 4217 currency code (e.g., "USD", "EUR", "CAD") - primary key
        name: Full name of the currency (e.g., "US Dollar")
        symbol: Currency symbol (e.g., "$", "€", "£")
        decimal_places: Number of minor-unit digits (0-4)
        is_active: Whether the currency is offered for new accounts
        created_by_user_id: Owner of a user-defined currency, None for system ones
    """

    __tablename__ = "currencies"

    code: Mapped[str] = mapped_column(String(3), primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    symbol: Mapped[str] = mapped_column(String(10))
    decimal_places: Mapped[int] = mapped_column(SmallInteger, default=2)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_by_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    @property
    def is_system(self) -> bool:
        """System currencies come from the static catalog and have no owner."""
        return self.created_by_user_id is None
