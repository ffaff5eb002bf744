"""Tests for currency and exchange rate API endpoints."""

from datetime import date, timedelta
from decimal import Decimal

import pandas as pd
import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerfx.core.constants import NO_RATE_DATA_MESSAGE
from ledgerfx.models.currency import Currency
from ledgerfx.models.exchange_rate import ExchangeRate
from ledgerfx.models.user import User
from ledgerfx.repositories import CurrencyRepository, ExchangeRateRepository
from ledgerfx.services.yfinance_service import APIError

SPOT = "ledgerfx.services.yfinance_service.fetch_fx_spot_rate_async"
HISTORY = "ledgerfx.services.yfinance_service.fetch_fx_history_async"
SEARCH = "ledgerfx.services.yfinance_service.search_quotes_async"
VERIFY = "ledgerfx.services.yfinance_service.verify_fx_pair_async"

pytestmark = pytest.mark.integration


@pytest.fixture
async def stored_rates(test_db: AsyncSession, seeded_currencies: int) -> None:
    """Two CAD/USD days and one EUR/USD day."""
    await ExchangeRateRepository(ExchangeRate, test_db).bulk_upsert(
        [
            {"from_currency": "CAD", "to_currency": "USD", "rate_date": date(2025, 6, 1), "rate": Decimal("0.72")},
            {"from_currency": "CAD", "to_currency": "USD", "rate_date": date(2025, 6, 5), "rate": Decimal("0.8")},
            {"from_currency": "EUR", "to_currency": "USD", "rate_date": date(2025, 6, 3), "rate": Decimal("1.1")},
        ]
    )
    await test_db.commit()


async def test_list_currencies(client: AsyncClient, seeded_currencies: int) -> None:
    """Test listing the seeded catalog."""
    response = await client.get("/api/v1/currencies/")
    assert response.status_code == 200

    data = response.json()
    assert len(data) == seeded_currencies
    assert [c["code"] for c in data] == sorted(c["code"] for c in data)
    assert {"code", "name", "symbol", "decimal_places", "is_active", "is_system"} <= set(data[0])


async def test_list_currencies_active_only(
    client: AsyncClient, test_db: AsyncSession, seeded_currencies: int
) -> None:
    """Test that inactive currencies only appear when asked for."""
    currency = await CurrencyRepository(Currency, test_db).get("OMR")
    currency.is_active = False
    await test_db.commit()

    active = await client.get("/api/v1/currencies/")
    everything = await client.get("/api/v1/currencies/?active_only=false")

    assert "OMR" not in [c["code"] for c in active.json()]
    assert "OMR" in [c["code"] for c in everything.json()]


async def test_get_currency(client: AsyncClient, seeded_currencies: int) -> None:
    """Test fetching one currency, case-insensitively."""
    response = await client.get("/api/v1/currencies/jpy")
    assert response.status_code == 200
    assert response.json()["code"] == "JPY"
    assert response.json()["decimal_places"] == 0


async def test_get_currency_not_found(client: AsyncClient, seeded_currencies: int) -> None:
    response = await client.get("/api/v1/currencies/ZZZ")
    assert response.status_code == 404
    assert response.json()["error_code"] == "NOT_FOUND"


async def test_lookup_currency(client: AsyncClient, mocker) -> None:
    """Test resolving a name fragment."""
    mocker.patch(VERIFY, return_value=True)

    response = await client.get("/api/v1/currencies/lookup", params={"q": "ringgit"})

    assert response.status_code == 200
    data = response.json()
    assert data["code"] == "MYR"
    assert data["name"] == "Malaysian Ringgit"
    assert data["source"] == "name"
    assert data["verified"] is True


async def test_lookup_currency_not_found(client: AsyncClient, mocker) -> None:
    """Test that an ambiguous query with no search hit is a 404."""
    mocker.patch(SEARCH, return_value=[])

    response = await client.get("/api/v1/currencies/lookup", params={"q": "Dollar"})

    assert response.status_code == 404


async def test_lookup_requires_query(client: AsyncClient) -> None:
    response = await client.get("/api/v1/currencies/lookup")
    assert response.status_code == 422


async def test_currency_usage(
    client: AsyncClient, test_user: User, make_account
) -> None:
    await make_account(test_user, "CAD")
    await make_account(test_user, "USD")

    response = await client.get("/api/v1/currencies/usage")

    assert response.status_code == 200
    data = response.json()
    assert data["codes_in_use"] == ["CAD", "USD"]
    assert data["usage"]["USD"] == {"accounts": 1, "securities": 0}


async def test_latest_exchange_rates(client: AsyncClient, stored_rates: None) -> None:
    """Test that each pair reports only its newest day."""
    response = await client.get("/api/v1/currencies/exchange-rates")

    assert response.status_code == 200
    data = response.json()
    assert [(r["from_currency"], r["to_currency"], r["rate_date"]) for r in data] == [
        ("CAD", "USD", "2025-06-05"),
        ("EUR", "USD", "2025-06-03"),
    ]


async def test_exchange_rate_history(client: AsyncClient, stored_rates: None) -> None:
    response = await client.get(
        "/api/v1/currencies/exchange-rates/history",
        params={"start_date": "2025-06-02", "end_date": "2025-06-30"},
    )

    assert response.status_code == 200
    assert [r["rate_date"] for r in response.json()] == ["2025-06-03", "2025-06-05"]


async def test_exchange_rate_history_inverted_range(client: AsyncClient) -> None:
    response = await client.get(
        "/api/v1/currencies/exchange-rates/history",
        params={"start_date": "2025-06-30", "end_date": "2025-06-01"},
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "VALIDATION_ERROR"


async def test_latest_rate_either_direction(client: AsyncClient, stored_rates: None) -> None:
    """Test that the reverse of a stored pair is its reciprocal."""
    direct = await client.get(
        "/api/v1/currencies/exchange-rates/latest", params={"from": "cad", "to": "usd"}
    )
    inverse = await client.get(
        "/api/v1/currencies/exchange-rates/latest", params={"from": "USD", "to": "CAD"}
    )
    missing = await client.get(
        "/api/v1/currencies/exchange-rates/latest", params={"from": "GBP", "to": "CAD"}
    )

    assert direct.json()["from_currency"] == "CAD"
    assert Decimal(direct.json()["rate"]) == Decimal("0.8")
    assert Decimal(inverse.json()["rate"]) == Decimal("1.25")
    assert missing.json()["rate"] is None


async def test_exchange_rate_status(
    client: AsyncClient, test_db: AsyncSession, seeded_currencies: int
) -> None:
    empty = await client.get("/api/v1/currencies/exchange-rates/status")
    assert empty.json() == {"last_updated": None, "has_rates_today": False}

    await ExchangeRateRepository(ExchangeRate, test_db).upsert_rate(
        "CAD", "USD", date.today(), Decimal("0.73")
    )
    await test_db.commit()

    status = await client.get("/api/v1/currencies/exchange-rates/status")
    assert status.json()["has_rates_today"] is True
    assert status.json()["last_updated"] is not None


async def test_refresh_exchange_rates(
    client: AsyncClient, test_user: User, make_account, mocker
) -> None:
    """Test a refresh where the provider has no price for one pair."""
    for code in ("USD", "CAD", "EUR"):
        await make_account(test_user, code)
    mocker.patch(SPOT, side_effect=lambda a, b: None if a == "EUR" else 0.7)

    response = await client.post("/api/v1/currencies/exchange-rates/refresh")

    assert response.status_code == 200
    data = response.json()
    assert data["total_pairs"] == 3
    assert data["updated"] == 2
    assert data["failed"] == 1
    failed = [r for r in data["results"] if not r["success"]]
    assert failed == [
        {"pair": "EUR/USD", "success": False, "rate": None, "error": NO_RATE_DATA_MESSAGE}
    ]


async def test_refresh_during_outage_still_returns_200(
    client: AsyncClient, test_user: User, make_account, mocker
) -> None:
    await make_account(test_user, "USD")
    await make_account(test_user, "CAD")
    mocker.patch(SPOT, side_effect=APIError("Service unavailable"))

    response = await client.post("/api/v1/currencies/exchange-rates/refresh")

    assert response.status_code == 200
    assert response.json()["failed"] == 1


async def test_backfill_exchange_rates(
    client: AsyncClient, test_user: User, make_account, mocker
) -> None:
    """Test the manual backfill for a CAD user holding a EUR account."""
    user_id = test_user.id
    opened = date.today() - timedelta(days=9)
    await make_account(test_user, "EUR", opened_on=opened)
    index = pd.date_range(start=opened.isoformat(), periods=10, freq="D")
    mocker.patch(HISTORY, return_value=pd.DataFrame({"Close": [0.68] * 10}, index=index))

    response = await client.post(
        "/api/v1/currencies/exchange-rates/backfill", params={"user_id": user_id}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["total_pairs"] == 1
    assert data["total_rates_loaded"] == 10
    assert data["results"][0]["pair"] == "CAD/EUR"


async def test_refresh_is_rate_limited(
    client: AsyncClient, seeded_currencies: int
) -> None:
    """Test that refresh is throttled at the sync limit (10/minute)."""
    for _ in range(10):
        response = await client.post("/api/v1/currencies/exchange-rates/refresh")
        assert response.status_code == 200

    response = await client.post("/api/v1/currencies/exchange-rates/refresh")

    assert response.status_code == 429
    assert "rate limit" in response.json()["detail"].lower()
    assert response.headers["Retry-After"] == "60"
