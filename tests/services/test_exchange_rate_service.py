"""Tests for exchange rate refresh, backfill and readers."""

import uuid
from datetime import date
from decimal import Decimal

import pandas as pd
import pytest

from ledgerfx.core.constants import NO_HISTORICAL_DATA_MESSAGE, NO_RATE_DATA_MESSAGE
from ledgerfx.models.exchange_rate import ExchangeRate
from ledgerfx.models.holding import InvestmentAction, InvestmentTransaction
from ledgerfx.models.security import Security
from ledgerfx.repositories import ExchangeRateRepository
from ledgerfx.services.exchange_rate_service import (
    backfill_historical_rates,
    build_currency_pairs,
    canonical_pair,
    daily_rates_from_history,
    get_latest_rate,
    merge_earliest_dates,
    refresh_all_rates,
)
from ledgerfx.services.yfinance_service import APIError, InvalidSymbolError

SPOT = "ledgerfx.services.yfinance_service.fetch_fx_spot_rate_async"
HISTORY = "ledgerfx.services.yfinance_service.fetch_fx_history_async"

SPOT_RATES = {
    ("CAD", "EUR"): 0.67,
    ("CAD", "USD"): 0.73,
    ("EUR", "USD"): 1.09,
}


def _daily_history(start: str, days: int, tz: str = "America/New_York") -> pd.DataFrame:
    index = pd.date_range(start=start, periods=days, freq="D", tz=tz)
    return pd.DataFrame({"Close": [0.68 + i * 0.001 for i in range(days)]}, index=index)


@pytest.mark.unit
class TestPairHelpers:
    def test_three_currencies_make_three_canonical_pairs(self):
        assert build_currency_pairs(["USD", "CAD", "EUR"]) == [
            ("CAD", "EUR"),
            ("CAD", "USD"),
            ("EUR", "USD"),
        ]

    def test_duplicates_and_case_collapse(self):
        assert build_currency_pairs(["usd", "USD", "cad"]) == [("CAD", "USD")]
        assert build_currency_pairs(["CAD"]) == []

    def test_canonical_pair_is_order_independent(self):
        assert canonical_pair("USD", "cad") == canonical_pair("CAD", "USD") == ("CAD", "USD")

    def test_merge_keeps_earlier_date(self):
        merged = merge_earliest_dates(
            {"EUR": date(2025, 6, 15), "GBP": date(2025, 1, 1)},
            {"EUR": date(2025, 3, 1), "USD": date(2024, 12, 1)},
        )
        assert merged == {
            "EUR": date(2025, 3, 1),
            "GBP": date(2025, 1, 1),
            "USD": date(2024, 12, 1),
        }


@pytest.mark.unit
class TestDailyRatesFromHistory:
    def test_drops_unusable_values(self):
        index = pd.date_range("2025-06-01", periods=5, freq="D")
        df = pd.DataFrame(
            {"Close": [0.7, float("nan"), float("inf"), -1.0, 0.72]}, index=index
        )

        daily = daily_rates_from_history(df, date(2025, 6, 1))

        assert list(daily.index) == [date(2025, 6, 1), date(2025, 6, 5)]
        assert list(daily.values) == [0.7, 0.72]

    def test_last_point_of_a_day_wins(self):
        index = pd.DatetimeIndex(
            ["2025-06-02 09:00", "2025-06-02 16:00", "2025-06-03 16:00"]
        ).tz_localize("America/New_York")
        df = pd.DataFrame({"Close": [0.70, 0.71, 0.72]}, index=index)

        daily = daily_rates_from_history(df, date(2025, 6, 1))

        assert daily[date(2025, 6, 2)] == 0.71
        assert len(daily) == 2

    def test_points_before_cutoff_are_dropped(self):
        daily = daily_rates_from_history(_daily_history("2025-06-01", 30), date(2025, 6, 15))

        assert len(daily) == 16
        assert daily.index[0] == date(2025, 6, 15)

    def test_empty_frame(self):
        assert daily_rates_from_history(pd.DataFrame(), date(2025, 6, 1)).empty


@pytest.mark.integration
class TestRefreshAllRates:
    async def test_refreshes_every_pair(self, test_db, test_user, make_account, mocker):
        """Test that USD, CAD and EUR accounts yield three stored pairs."""
        for code in ("USD", "CAD", "EUR"):
            await make_account(test_user, code)
        spot = mocker.patch(SPOT, side_effect=lambda a, b: SPOT_RATES[(a, b)])

        summary = await refresh_all_rates(test_db)

        assert summary.total_pairs == 3
        assert summary.updated == 3
        assert summary.failed == 0
        assert [r.pair for r in summary.results] == ["CAD/EUR", "CAD/USD", "EUR/USD"]
        assert spot.await_count == 3

        stored = await ExchangeRateRepository(ExchangeRate, test_db).get_rate(
            "CAD", "USD", date.today()
        )
        assert stored.rate == Decimal("0.73")

    async def test_provider_outage_fails_every_pair(
        self, test_db, test_user, make_account, mocker
    ):
        for code in ("USD", "CAD", "EUR"):
            await make_account(test_user, code)
        mocker.patch(SPOT, side_effect=APIError("Service unavailable"))

        summary = await refresh_all_rates(test_db)

        assert summary.total_pairs == 3
        assert summary.updated == 0
        assert summary.failed == 3
        assert {r.error for r in summary.results} == {NO_RATE_DATA_MESSAGE}

    async def test_missing_price_fails_only_that_pair(
        self, test_db, test_user, make_account, mocker
    ):
        for code in ("USD", "CAD", "EUR"):
            await make_account(test_user, code)
        mocker.patch(
            SPOT, side_effect=lambda a, b: None if (a, b) == ("CAD", "EUR") else SPOT_RATES[(a, b)]
        )

        summary = await refresh_all_rates(test_db)

        assert summary.updated == 2
        failed = [r for r in summary.results if not r.success]
        assert [(r.pair, r.error) for r in failed] == [("CAD/EUR", NO_RATE_DATA_MESSAGE)]

    async def test_single_currency_makes_no_provider_call(
        self, test_db, test_user, make_account, mocker
    ):
        await make_account(test_user, "CAD")
        spot = mocker.patch(SPOT)

        summary = await refresh_all_rates(test_db)

        assert summary.total_pairs == 0
        assert summary.results == []
        spot.assert_not_awaited()

    async def test_write_failure_is_isolated(self, test_db, test_user, make_account, mocker):
        for code in ("USD", "CAD", "EUR"):
            await make_account(test_user, code)
        mocker.patch(SPOT, side_effect=lambda a, b: SPOT_RATES[(a, b)])
        original = ExchangeRateRepository.upsert_rate

        async def flaky_upsert(self, from_currency, to_currency, *args, **kwargs):
            if (from_currency, to_currency) == ("CAD", "EUR"):
                raise RuntimeError("disk full")
            return await original(self, from_currency, to_currency, *args, **kwargs)

        mocker.patch.object(ExchangeRateRepository, "upsert_rate", flaky_upsert)

        summary = await refresh_all_rates(test_db)

        assert summary.updated == 2
        assert summary.failed == 1
        assert summary.results[0].error == "disk full"
        repo = ExchangeRateRepository(ExchangeRate, test_db)
        assert await repo.get_rate("EUR", "USD", date.today()) is not None
        assert await repo.get_rate("CAD", "EUR", date.today()) is None

    async def test_refresh_twice_keeps_one_row_per_day(
        self, test_db, test_user, make_account, mocker
    ):
        await make_account(test_user, "CAD")
        await make_account(test_user, "USD")
        mocker.patch(SPOT, return_value=0.72)
        await refresh_all_rates(test_db)
        mocker.patch(SPOT, return_value=0.74)

        await refresh_all_rates(test_db)

        repo = ExchangeRateRepository(ExchangeRate, test_db)
        assert len(await repo.get_history(currencies={"CAD"})) == 1
        test_db.expire_all()
        stored = await repo.get_rate("CAD", "USD", date.today())
        assert stored.rate == Decimal("0.74")


@pytest.mark.integration
class TestBackfillHistoricalRates:
    async def test_backfills_from_account_opening(self, test_db, test_user, make_account, mocker):
        """Test a CAD user with a EUR account opened mid-June."""
        user_id = test_user.id
        await make_account(test_user, "CAD")
        await make_account(test_user, "EUR", opened_on=date(2025, 6, 15))
        history = mocker.patch(HISTORY, return_value=_daily_history("2025-06-01", 30))

        summary = await backfill_historical_rates(test_db, user_id)

        history.assert_awaited_once_with("CAD", "EUR", date(2025, 6, 15))
        assert summary.total_pairs == 1
        assert summary.successful == 1
        assert summary.total_rates_loaded == 16
        assert summary.results[0].pair == "CAD/EUR"

        stored = await ExchangeRateRepository(ExchangeRate, test_db).get_history(
            currencies={"EUR"}
        )
        assert len(stored) == 16
        assert stored[0].rate_date == date(2025, 6, 15)

    async def test_second_run_skips_covered_pairs(self, test_db, test_user, make_account, mocker):
        user_id = test_user.id
        await make_account(test_user, "EUR", opened_on=date(2025, 6, 15))
        history = mocker.patch(HISTORY, return_value=_daily_history("2025-06-01", 30))
        await backfill_historical_rates(test_db, user_id)

        summary = await backfill_historical_rates(test_db, user_id)

        assert history.await_count == 1
        assert summary.successful == 1
        assert summary.total_rates_loaded == 0

    async def test_provider_error_is_reported(self, test_db, test_user, make_account, mocker):
        user_id = test_user.id
        await make_account(test_user, "EUR", opened_on=date(2025, 6, 15))
        mocker.patch(HISTORY, side_effect=InvalidSymbolError("no data"))

        summary = await backfill_historical_rates(test_db, user_id)

        assert summary.failed == 1
        assert summary.results[0].error == NO_HISTORICAL_DATA_MESSAGE
        assert summary.total_rates_loaded == 0

    async def test_security_dates_extend_the_need(
        self, test_db, test_user, make_account, mocker
    ):
        user_id = test_user.id
        await make_account(test_user, "EUR", opened_on=date(2025, 6, 15))
        brokerage = await make_account(test_user, "CAD")
        security = Security(user_id=user_id, symbol="SAP", name="SAP SE", currency_code="EUR")
        test_db.add(security)
        await test_db.flush()
        test_db.add(
            InvestmentTransaction(
                id=uuid.uuid4(),
                account_id=brokerage.id,
                security_id=security.id,
                transaction_date=date(2025, 3, 3),
                action=InvestmentAction.BUY,
            )
        )
        await test_db.commit()
        history = mocker.patch(HISTORY, return_value=_daily_history("2025-03-01", 10))

        await backfill_historical_rates(test_db, user_id)

        history.assert_awaited_once_with("CAD", "EUR", date(2025, 3, 3))

    async def test_account_filter_limits_pairs(self, test_db, test_user, make_account, mocker):
        user_id = test_user.id
        eur = await make_account(test_user, "EUR", opened_on=date(2025, 6, 1))
        await make_account(test_user, "GBP", opened_on=date(2025, 6, 1))
        history = mocker.patch(HISTORY, return_value=_daily_history("2025-06-01", 5))

        summary = await backfill_historical_rates(test_db, user_id, account_ids=[eur.id])

        assert [r.pair for r in summary.results] == ["CAD/EUR"]
        history.assert_awaited_once()

    async def test_reporting_currency_only_needs_nothing(
        self, test_db, test_user, make_account, mocker
    ):
        user_id = test_user.id
        await make_account(test_user, "CAD", opened_on=date(2025, 1, 1))
        history = mocker.patch(HISTORY)

        summary = await backfill_historical_rates(test_db, user_id)

        assert summary.total_pairs == 0
        history.assert_not_awaited()

    async def test_a_few_refresh_days_do_not_count_as_coverage(
        self, test_db, test_user, make_account, mocker
    ):
        """Test that recent spot rows never stop a backfill reaching back years."""
        user_id = test_user.id
        repo = ExchangeRateRepository(ExchangeRate, test_db)
        await repo.upsert_rate("CAD", "EUR", date(2025, 6, 2), Decimal("0.66"))
        await repo.upsert_rate("CAD", "EUR", date(2025, 6, 3), Decimal("0.67"))
        await test_db.commit()
        await make_account(test_user, "EUR", opened_on=date(2020, 1, 2))
        history = mocker.patch(HISTORY, return_value=_daily_history("2020-01-02", 10))

        summary = await backfill_historical_rates(test_db, user_id)

        history.assert_awaited_once_with("CAD", "EUR", date(2020, 1, 2))
        assert summary.successful == 1
        assert summary.total_rates_loaded == 10
        assert await repo.get_earliest_rate_date("CAD", "EUR") == date(2020, 1, 2)

    async def test_history_starting_after_a_weekend_cutoff_is_covered(
        self, test_db, test_user, make_account, mocker
    ):
        """Test that stored history from the Monday covers an account opened on Saturday."""
        user_id = test_user.id
        repo = ExchangeRateRepository(ExchangeRate, test_db)
        await repo.upsert_rate("CAD", "EUR", date(2020, 1, 6), Decimal("0.68"))
        await test_db.commit()
        await make_account(test_user, "EUR", opened_on=date(2020, 1, 4))
        history = mocker.patch(HISTORY)

        summary = await backfill_historical_rates(test_db, user_id)

        history.assert_not_awaited()
        assert summary.successful == 1
        assert summary.total_rates_loaded == 0

    async def test_history_longer_than_one_insert_is_stored(
        self, test_db, test_user, make_account, mocker
    ):
        """Test a EUR account opened in 2010 with more than 5000 daily points."""
        user_id = test_user.id
        await make_account(test_user, "EUR", opened_on=date(2010, 1, 1))
        mocker.patch(HISTORY, return_value=_daily_history("2010-01-01", 5300))

        summary = await backfill_historical_rates(test_db, user_id)

        assert summary.successful == 1
        assert summary.total_rates_loaded == 5300
        stored = await ExchangeRateRepository(ExchangeRate, test_db).get_history(
            currencies={"EUR"}
        )
        assert len(stored) == 5300

    async def test_storage_failure_is_isolated_per_pair(
        self, test_db, test_user, make_account, mocker
    ):
        user_id = test_user.id
        await make_account(test_user, "EUR", opened_on=date(2025, 6, 1))
        await make_account(test_user, "GBP", opened_on=date(2025, 6, 1))
        mocker.patch(HISTORY, return_value=_daily_history("2025-06-01", 5))
        original = ExchangeRateRepository.bulk_upsert

        async def flaky_bulk_upsert(self, rows):
            if rows and rows[0]["to_currency"] == "EUR":
                raise RuntimeError("disk full")
            return await original(self, rows)

        mocker.patch.object(ExchangeRateRepository, "bulk_upsert", flaky_bulk_upsert)

        summary = await backfill_historical_rates(test_db, user_id)

        by_pair = {result.pair: result for result in summary.results}
        assert by_pair["CAD/EUR"].success is False
        assert by_pair["CAD/EUR"].error == "disk full"
        assert by_pair["CAD/GBP"].success is True
        assert by_pair["CAD/GBP"].rates_loaded == 5
        assert summary.failed == 1
        assert summary.total_rates_loaded == 5
        repo = ExchangeRateRepository(ExchangeRate, test_db)
        assert await repo.get_earliest_rate_date("CAD", "EUR") is None

    async def test_points_before_cutoff_load_nothing(
        self, test_db, test_user, make_account, mocker
    ):
        user_id = test_user.id
        await make_account(test_user, "EUR", opened_on=date(2025, 6, 15))
        mocker.patch(HISTORY, return_value=_daily_history("2025-05-01", 10))

        summary = await backfill_historical_rates(test_db, user_id)

        assert summary.successful == 1
        assert summary.results[0].rates_loaded == 0
        assert summary.total_rates_loaded == 0
        assert await ExchangeRateRepository(ExchangeRate, test_db).get_history() == []


@pytest.mark.integration
class TestGetLatestRate:
    async def test_direct_inverse_and_identity(self, test_db, seeded_currencies):
        repo = ExchangeRateRepository(ExchangeRate, test_db)
        await repo.upsert_rate("CAD", "USD", date(2025, 6, 2), Decimal("0.8"))
        await test_db.commit()

        assert await get_latest_rate(test_db, "CAD", "USD") == Decimal("0.8")
        assert await get_latest_rate(test_db, "USD", "CAD") == Decimal("1.25")
        assert await get_latest_rate(test_db, "cad", "CAD") == Decimal("1")
        assert await get_latest_rate(test_db, "CAD", "EUR") is None
