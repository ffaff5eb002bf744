"""User and user preference models."""

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledgerfx.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """User model.

    Only the fields the exchange-rate engine reads are mapped here; account
    management lives in the surrounding application.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    preference: Mapped["UserPreference | None"] = relationship(
        "UserPreference", back_populates="user", uselist=False
    )


class UserPreference(Base, TimestampMixin):
    """Per-user settings; ``default_currency`` is the reporting currency."""

    __tablename__ = "user_preferences"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    default_currency: Mapped[str] = mapped_column(
        String(3), ForeignKey("currencies.code", ondelete="RESTRICT")
    )

    user: Mapped["User"] = relationship("User", back_populates="preference")
