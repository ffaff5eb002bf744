"""Tests for the monthly net worth service."""

from datetime import date
from decimal import Decimal

import pytest

from ledgerfx.core.exceptions import ValidationError
from ledgerfx.models.account import AccountSubType, AccountType
from ledgerfx.models.exchange_rate import ExchangeRate
from ledgerfx.models.holding import Holding
from ledgerfx.models.security import Security
from ledgerfx.models.transaction import Transaction
from ledgerfx.repositories import ExchangeRateRepository
from ledgerfx.services.net_worth_service import get_monthly_investments, get_monthly_net_worth


@pytest.mark.integration
async def test_monthly_net_worth_in_reporting_currency(test_db, test_user, make_account):
    """Test replay plus USD conversion for a CAD-reporting user."""
    user_id = test_user.id
    chequing = await make_account(test_user, "CAD", current_balance=Decimal("1000"))
    await make_account(
        test_user, "USD", account_type=AccountType.SAVINGS, current_balance=Decimal("400")
    )
    await make_account(
        test_user, "CAD", account_type=AccountType.CREDIT_CARD, current_balance=Decimal("-200")
    )
    test_db.add(
        Transaction(
            account_id=chequing.id,
            transaction_date=date(2025, 6, 10),
            amount=Decimal("250"),
            currency_code="CAD",
        )
    )
    await ExchangeRateRepository(ExchangeRate, test_db).upsert_rate(
        "CAD", "USD", date(2025, 5, 1), Decimal("0.8")
    )
    await test_db.commit()

    response = await get_monthly_net_worth(
        test_db, user_id, date(2025, 5, 1), date(2025, 6, 30)
    )

    assert response.reporting_currency == "CAD"
    assert [p.month for p in response.points] == [date(2025, 5, 1), date(2025, 6, 1)]
    may, june = response.points
    assert may.assets == Decimal("1250")
    assert june.assets == Decimal("1500")
    assert june.liabilities == Decimal("200")
    assert june.net_worth == Decimal("1300")


@pytest.mark.integration
async def test_void_transactions_are_not_replayed(test_db, test_user, make_account):
    user_id = test_user.id
    chequing = await make_account(test_user, "CAD", current_balance=Decimal("1000"))
    test_db.add(
        Transaction(
            account_id=chequing.id,
            transaction_date=date(2025, 6, 10),
            amount=Decimal("250"),
            currency_code="CAD",
            status="VOID",
        )
    )
    await test_db.commit()

    response = await get_monthly_net_worth(test_db, user_id, date(2025, 5, 1), date(2025, 5, 31))

    assert response.points[0].assets == Decimal("1000")


@pytest.mark.integration
async def test_inverted_range_is_rejected(test_db, test_user):
    with pytest.raises(ValidationError):
        await get_monthly_net_worth(test_db, test_user.id, date(2025, 6, 1), date(2025, 5, 1))


@pytest.mark.integration
async def test_leading_months_before_any_account_are_dropped(test_db, test_user, make_account):
    user_id = test_user.id
    await make_account(
        test_user,
        "CAD",
        account_type=AccountType.ASSET,
        current_balance=Decimal("30000"),
        opening_balance=Decimal("30000"),
        date_acquired=date(2025, 4, 15),
    )

    response = await get_monthly_net_worth(test_db, user_id, date(2025, 1, 1), date(2025, 5, 31))

    assert [p.month for p in response.points] == [date(2025, 4, 1), date(2025, 5, 1)]


@pytest.mark.integration
async def test_monthly_investments_value_holdings_and_cash(test_db, test_user, make_account):
    """Test brokerage holdings in USD plus an investment cash account, chequing excluded."""
    user_id = test_user.id
    brokerage = await make_account(
        test_user,
        "USD",
        account_type=AccountType.INVESTMENT,
        account_sub_type=AccountSubType.INVESTMENT_BROKERAGE,
    )
    cash = await make_account(
        test_user,
        "CAD",
        account_type=AccountType.INVESTMENT,
        account_sub_type=AccountSubType.INVESTMENT_CASH,
        current_balance=Decimal("300"),
    )
    await make_account(test_user, "CAD", current_balance=Decimal("1000"))
    security = Security(
        user_id=user_id,
        symbol="VTI",
        name="Total Market",
        currency_code="USD",
        last_price=Decimal("50"),
    )
    test_db.add(security)
    await test_db.flush()
    test_db.add(Holding(account_id=brokerage.id, security_id=security.id, quantity=Decimal("10")))
    test_db.add(
        Transaction(
            account_id=cash.id,
            transaction_date=date(2025, 6, 10),
            amount=Decimal("100"),
            currency_code="CAD",
        )
    )
    await ExchangeRateRepository(ExchangeRate, test_db).upsert_rate(
        "CAD", "USD", date(2025, 5, 1), Decimal("0.8")
    )
    await test_db.commit()

    response = await get_monthly_investments(
        test_db, user_id, date(2025, 5, 1), date(2025, 6, 30)
    )

    assert response.reporting_currency == "CAD"
    assert [(p.month, p.value) for p in response.points] == [
        (date(2025, 5, 1), Decimal("825")),
        (date(2025, 6, 1), Decimal("925")),
    ]

    only_cash = await get_monthly_investments(
        test_db, user_id, date(2025, 6, 1), date(2025, 6, 30), account_ids=[cash.id]
    )
    assert [p.value for p in only_cash.points] == [Decimal("300")]


@pytest.mark.integration
async def test_monthly_investments_without_investment_accounts(test_db, test_user, make_account):
    await make_account(test_user, "CAD", current_balance=Decimal("1000"))

    response = await get_monthly_investments(
        test_db, test_user.id, date(2025, 5, 1), date(2025, 6, 30)
    )

    assert response.points == []


@pytest.mark.integration
async def test_monthly_investments_inverted_range_is_rejected(test_db, test_user):
    with pytest.raises(ValidationError):
        await get_monthly_investments(test_db, test_user.id, date(2025, 6, 1), date(2025, 5, 1))
