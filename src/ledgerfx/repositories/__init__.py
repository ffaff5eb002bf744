"""Repository layer for database operations.

This package centralizes all database access for the exchange-rate engine.
Repositories never commit; services own transaction boundaries.

Repositories:
    - BaseRepository: Primary-key reads for any model
    - CurrencyRepository: Catalog seeding and currency usage
    - ExchangeRateRepository: Rate Store upserts and time-series reads
    - AccountRepository: Account currency needs and per-user account reads
    - SecurityRepository: Security currency needs
    - HoldingRepository: Brokerage market values
    - TransactionRepository: Ledger reads for balance replay
    - UserPreferenceRepository: Reporting currency lookup

Usage:
    >>> from ledgerfx.repositories import ExchangeRateRepository
    >>> from ledgerfx.models.exchange_rate import ExchangeRate
    >>>
    >>> rate_repo = ExchangeRateRepository(ExchangeRate, db)
    >>> rates = await rate_repo.get_latest_per_pair()
"""

from ledgerfx.repositories.account import AccountRepository
from ledgerfx.repositories.base import BaseRepository
from ledgerfx.repositories.currency import CurrencyRepository
from ledgerfx.repositories.exchange_rate import ExchangeRateRepository
from ledgerfx.repositories.holding import HoldingRepository
from ledgerfx.repositories.security import SecurityRepository
from ledgerfx.repositories.transaction import TransactionRepository
from ledgerfx.repositories.user_preference import UserPreferenceRepository

__all__ = [
    "BaseRepository",
    "CurrencyRepository",
    "ExchangeRateRepository",
    "AccountRepository",
    "SecurityRepository",
    "HoldingRepository",
    "TransactionRepository",
    "UserPreferenceRepository",
]
