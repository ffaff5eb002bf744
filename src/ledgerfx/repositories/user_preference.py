"""UserPreference repository."""

from ledgerfx.core.config import settings
from ledgerfx.models.user import UserPreference
from ledgerfx.repositories.base import BaseRepository


class UserPreferenceRepository(BaseRepository[UserPreference]):
    """Repository for UserPreference model (primary key is ``user_id``)."""

    async def get_reporting_currency(self, user_id: int) -> str:
        """The user's default currency, or the system default when unset."""
        preference = await self.get(user_id)
        if preference is None or not preference.default_currency:
            return settings.DEFAULT_REPORTING_CURRENCY
        return preference.default_currency
