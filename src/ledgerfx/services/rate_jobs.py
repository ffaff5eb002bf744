"""Startup and periodic exchange-rate jobs.

Nothing here may delay or crash the process:

- catalog seeding is awaited during startup (local database work only)
- the "refresh if nothing is dated today" check and the per-user backfill
  run in a detached task with its own session
- the periodic refresh loop is an asyncio task owned by the app lifespan

Every job wraps its whole body, logs failures with ``exc_info`` and carries on.
"""

import asyncio
import logging
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ledgerfx.core.config import settings
from ledgerfx.db.session import AsyncSessionLocal, read_only_transaction, transactional
from ledgerfx.models.account import Account
from ledgerfx.models.currency import Currency
from ledgerfx.repositories import AccountRepository, CurrencyRepository
from ledgerfx.schemas.exchange_rate import RateRefreshSummary
from ledgerfx.services.exchange_rate_service import (
    backfill_historical_rates,
    has_rates_for,
    refresh_all_rates,
)

logger = logging.getLogger(__name__)

# Strong references keep detached tasks alive until they finish
_background_tasks: set[asyncio.Task] = set()


async def seed_currency_catalog(db: AsyncSession) -> int:
    """Insert missing system currencies. Returns how many were added."""
    async with transactional(db):
        inserted = await CurrencyRepository(Currency, db).seed_system_currencies()
    if inserted:
        logger.info(f"Seeded {inserted} system currencies")
    return inserted


async def refresh_if_stale(db: AsyncSession) -> RateRefreshSummary | None:
    """Run a full refresh unless some rate is already dated today.

    Returns:
        The refresh summary, or None when skipped or failed
    """
    try:
        if await has_rates_for(db, date.today()):
            logger.info("Exchange rates already refreshed today, skipping startup refresh")
            return None
        return await refresh_all_rates(db)
    except Exception as e:
        logger.error(f"Startup exchange rate refresh failed: {e}", exc_info=True)
        return None


async def backfill_all_users(
    session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
) -> int:
    """Backfill history for every user holding a foreign-currency account.

    Returns:
        Number of users processed
    """
    processed = 0
    try:
        async with session_factory() as db:
            async with read_only_transaction(db):
                user_ids = await AccountRepository(
                    Account, db
                ).get_user_ids_with_foreign_accounts()
            logger.info(f"Historical rate backfill queued for {len(user_ids)} users")

            for user_id in user_ids:
                try:
                    summary = await backfill_historical_rates(db, user_id)
                    logger.info(
                        f"User {user_id}: {summary.successful}/{summary.total_pairs} pairs, "
                        f"{summary.total_rates_loaded} rates loaded"
                    )
                except Exception as e:
                    logger.error(f"Historical rate backfill failed for user {user_id}: {e}")
                processed += 1
    except Exception as e:
        logger.error(f"Historical rate backfill pass failed: {e}", exc_info=True)
    return processed


async def run_startup_rate_jobs(
    session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
) -> None:
    """Startup refresh check followed by the per-user backfill pass."""
    if settings.RATE_REFRESH_ON_STARTUP:
        try:
            async with session_factory() as db:
                await refresh_if_stale(db)
        except Exception as e:
            logger.error(f"Startup rate refresh check failed: {e}", exc_info=True)
    await backfill_all_users(session_factory)


def _track(task: asyncio.Task) -> asyncio.Task:
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


def schedule_startup_rate_jobs(
    session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
) -> asyncio.Task:
    """Start the startup jobs in the background without waiting for them."""
    task = asyncio.create_task(
        run_startup_rate_jobs(session_factory), name="startup-rate-jobs"
    )
    return _track(task)


async def initialize_exchange_rates(
    session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
) -> asyncio.Task:
    """Seed the catalog, then detach the refresh check and backfill.

    Returns:
        The detached task (callers may ignore it)
    """
    if settings.SEED_CURRENCIES_ON_STARTUP:
        try:
            async with session_factory() as db:
                await seed_currency_catalog(db)
        except Exception as e:
            logger.error(f"Currency catalog seeding failed: {e}", exc_info=True)

    return schedule_startup_rate_jobs(session_factory)


async def run_periodic_refresh(
    interval_hours: float,
    session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
) -> None:
    """Refresh every pair in use every ``interval_hours`` until cancelled."""
    interval_seconds = interval_hours * 3600
    logger.info(f"Periodic exchange rate refresh every {interval_hours}h")

    while True:
        await asyncio.sleep(interval_seconds)
        try:
            async with session_factory() as db:
                await refresh_all_rates(db)
        except Exception as e:
            logger.error(f"Scheduled exchange rate refresh failed: {e}", exc_info=True)


def start_periodic_refresh(
    interval_hours: float,
    session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
) -> asyncio.Task | None:
    """Launch the periodic loop; a non-positive interval disables it."""
    if interval_hours <= 0:
        logger.info("Periodic exchange rate refresh disabled")
        return None
    task = asyncio.create_task(
        run_periodic_refresh(interval_hours, session_factory), name="periodic-rate-refresh"
    )
    return _track(task)
