"""Base repository shared by the engine's model repositories."""

from typing import Any, Generic, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerfx.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Thin wrapper binding a model class to a session.

    Repositories never commit: writers run inside ``transactional`` (one block
    per currency pair) and readers inside ``read_only_transaction``.

    Example:
        >>> repo = CurrencyRepository(Currency, db)
        >>> cad = await repo.get("CAD")
    """

    def __init__(self, model: type[ModelType], db: AsyncSession):
        self.model = model
        self.db = db

    async def get(self, id: Any) -> ModelType | None:
        """Get a record by primary key (currency code, rate id or UUID)."""
        return await self.db.get(self.model, id)
