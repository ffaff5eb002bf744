"""Pytest fixtures for testing."""

import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import date
from decimal import Decimal

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ledgerfx.db.base import Base
from ledgerfx.db.session import get_db
from ledgerfx.models.account import Account, AccountSubType, AccountType
from ledgerfx.models.currency import Currency
from ledgerfx.models.user import User, UserPreference
from ledgerfx.repositories import CurrencyRepository
from main import app

# Test database URL (SQLite in-memory for fast tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,  # One shared connection keeps the in-memory database alive
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine (for background jobs)."""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def test_db(session_factory) -> AsyncGenerator[AsyncSession]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(test_db: AsyncSession) -> AsyncGenerator[AsyncClient]:
    """Create a test client with database override."""

    async def override_get_db() -> AsyncGenerator[AsyncSession]:
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def seeded_currencies(test_db: AsyncSession) -> int:
    """Seed the system currency catalog."""
    inserted = await CurrencyRepository(Currency, test_db).seed_system_currencies()
    await test_db.commit()
    return inserted


@pytest_asyncio.fixture(scope="function")
async def test_user(test_db: AsyncSession, seeded_currencies: int) -> User:
    """Create a test user with a CAD reporting currency."""
    user = User(email="test@example.com", username="testuser", is_active=True)
    test_db.add(user)
    await test_db.flush()
    test_db.add(UserPreference(user_id=user.id, default_currency="CAD"))
    await test_db.commit()
    await test_db.refresh(user)
    return user


AccountFactory = Callable[..., Awaitable[Account]]


@pytest_asyncio.fixture(scope="function")
async def make_account(test_db: AsyncSession) -> AccountFactory:
    """Factory creating committed accounts with sensible defaults."""

    async def _make(
        user: User,
        currency_code: str,
        *,
        name: str | None = None,
        account_type: AccountType = AccountType.CHEQUING,
        account_sub_type: AccountSubType | None = None,
        current_balance: Decimal = Decimal("0"),
        opening_balance: Decimal = Decimal("0"),
        opened_on: date | None = None,
        date_acquired: date | None = None,
        is_closed: bool = False,
    ) -> Account:
        account = Account(
            id=uuid.uuid4(),
            user_id=user.id,
            currency_code=currency_code,
            name=name or f"{currency_code} {account_type.value.lower()}",
            account_type=account_type,
            account_sub_type=account_sub_type,
            current_balance=current_balance,
            opening_balance=opening_balance,
            opened_on=opened_on,
            date_acquired=date_acquired,
            is_closed=is_closed,
        )
        test_db.add(account)
        await test_db.commit()
        await test_db.refresh(account)
        return account

    return _make
