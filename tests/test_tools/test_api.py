"""
Tests for the Financial Datasets API client

The HTTP layer is replaced by an AsyncMock on _request, so these tests cover
request parameters, cache read-through, paging and result ordering.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pandas as pd
import pytest

from hedge_fund.tools.api import FinancialDataAPIError, FinancialDatasetsAPI, _day


# ============================================================================
# HELPERS
# ============================================================================


def _make_api(config, cache, responses):
    """Client whose _request returns `responses` in order (or raises them)."""
    api = FinancialDatasetsAPI(config, cache=cache)
    api._request = AsyncMock(side_effect=responses)
    return api


def _price(time, close):
    return {"open": close, "close": close, "high": close + 1, "low": close - 1, "volume": 1000, "time": time}


def _metrics(report_period, market_cap=None, period="ttm"):
    return {
        "ticker": "AAPL",
        "report_period": report_period,
        "period": period,
        "currency": "USD",
        "market_cap": market_cap,
    }


def _trade(filing_date, transaction_date=None):
    return {"ticker": "AAPL", "filing_date": filing_date, "transaction_date": transaction_date}


def _news(date, title="headline"):
    return {
        "ticker": "AAPL", "title": title, "author": "a", "source": "s",
        "date": date, "url": f"http://example.com/{date}",
    }


class TestHelpers:

    def test_day_strips_time(self):
        assert _day("2024-01-15T10:30:00Z") == "2024-01-15"
        assert _day("2024-01-15") == "2024-01-15"
        assert _day(None) == ""

    def test_api_error_message(self):
        error = FinancialDataAPIError(429, "http://x/prices/", "rate limited")
        assert error.status == 429
        assert "429" in str(error)
        assert "rate limited" in str(error)

    def test_api_key_header(self, config, cache):
        api = FinancialDatasetsAPI(config, cache=cache)
        assert api._headers()["X-API-KEY"] == "fd-test-key"


# ============================================================================
# PRICES
# ============================================================================


class TestGetPrices:

    def test_fetches_and_caches(self, config, cache):
        api = _make_api(config, cache, [{"prices": [
            _price("2024-01-03T05:00:00Z", 101.0),
            _price("2024-01-02T05:00:00Z", 100.0),
        ]}])

        prices = asyncio.run(api.get_prices("AAPL", "2024-01-01", "2024-01-31"))

        assert [p.close for p in prices] == [100.0, 101.0]
        method, path = api._request.call_args.args[:2]
        params = api._request.call_args.kwargs["params"]
        assert (method, path) == ("GET", "/prices/")
        assert params["ticker"] == "AAPL"
        assert params["start_date"] == "2024-01-01"
        assert params["end_date"] == "2024-01-31"
        assert len(cache.get_prices("AAPL")) == 2

    def test_served_from_cache_within_window(self, config, cache):
        cache.set_prices("AAPL", [
            _price("2024-01-02T05:00:00Z", 100.0),
            _price("2024-02-15T05:00:00Z", 120.0),
        ])
        api = _make_api(config, cache, [])

        prices = asyncio.run(api.get_prices("AAPL", "2024-01-01", "2024-01-31"))

        assert [p.close for p in prices] == [100.0]
        api._request.assert_not_called()

    def test_api_error_propagates(self, config, cache):
        api = _make_api(config, cache, [FinancialDataAPIError(500, "http://x/prices/", "boom")])

        with pytest.raises(FinancialDataAPIError):
            asyncio.run(api.get_prices("AAPL", "2024-01-01", "2024-01-31"))

    def test_price_data_frame(self, config, cache):
        api = _make_api(config, cache, [{"prices": [
            _price("2024-01-03T05:00:00Z", 101.0),
            _price("2024-01-02T05:00:00Z", 100.0),
        ]}])

        df = asyncio.run(api.get_price_data("AAPL", "2024-01-01", "2024-01-31"))

        assert list(df.columns) == ["open", "close", "high", "low", "volume"]
        assert df.index.name == "Date"
        assert df.index[0] == pd.Timestamp("2024-01-02")
        assert df["close"].iloc[-1] == 101.0
        assert df["volume"].dtype == "int64"

    def test_empty_price_data_frame(self, config, cache):
        api = _make_api(config, cache, [{"prices": []}])

        df = asyncio.run(api.get_price_data("AAPL", "2024-01-01", "2024-01-31"))

        assert df.empty


# ============================================================================
# FUNDAMENTALS
# ============================================================================


class TestFundamentals:

    def test_financial_metrics_request_and_limit(self, config, cache):
        api = _make_api(config, cache, [{"financial_metrics": [
            _metrics("2024-03-31"), _metrics("2023-12-31"), _metrics("2023-09-30"),
        ]}])

        metrics = asyncio.run(api.get_financial_metrics("AAPL", "2024-04-01", limit=2))

        assert [m.report_period for m in metrics] == ["2024-03-31", "2023-12-31"]
        params = api._request.call_args.kwargs["params"]
        assert params == {"ticker": "AAPL", "report_period_lte": "2024-04-01", "limit": 2, "period": "ttm"}

    def test_financial_metrics_cache_filters_by_period_and_date(self, config, cache):
        cache.set_financial_metrics("AAPL", [
            _metrics("2023-12-31"),
            _metrics("2024-03-31"),
            _metrics("2024-06-30"),
        ])
        api = _make_api(config, cache, [])

        metrics = asyncio.run(api.get_financial_metrics("AAPL", "2024-04-01"))

        assert [m.report_period for m in metrics] == ["2024-03-31", "2023-12-31"]
        api._request.assert_not_called()

    def test_cached_metrics_for_other_period_not_reused(self, config, cache):
        cache.set_financial_metrics("AAPL", [_metrics("2023-12-31", period="annual")])
        api = _make_api(config, cache, [{"financial_metrics": [_metrics("2024-03-31")]}])

        metrics = asyncio.run(api.get_financial_metrics("AAPL", "2024-04-01"))

        assert [m.report_period for m in metrics] == ["2024-03-31"]
        api._request.assert_called_once()

    def test_line_items_posts_search(self, config, cache):
        api = _make_api(config, cache, [{"search_results": [{
            "ticker": "AAPL", "report_period": "2024-03-31", "period": "ttm",
            "currency": "USD", "net_income": 10.0,
        }]}])

        items = asyncio.run(api.search_line_items("AAPL", ["net_income"], "2024-04-01"))

        assert items[0].get("net_income") == 10.0
        method, path = api._request.call_args.args[:2]
        body = api._request.call_args.kwargs["json_body"]
        assert (method, path) == ("POST", "/financials/search/line-items")
        assert body["tickers"] == ["AAPL"]
        assert body["line_items"] == ["net_income"]

    def test_line_items_cache_reused_only_when_complete(self, config, cache):
        cache.set_line_items("AAPL", [{
            "ticker": "AAPL", "report_period": "2024-03-31", "period": "ttm",
            "currency": "USD", "net_income": 10.0,
        }])
        fresh = {"search_results": [{
            "ticker": "AAPL", "report_period": "2024-03-31", "period": "ttm",
            "currency": "USD", "net_income": 10.0, "revenue": 50.0,
        }]}
        api = _make_api(config, cache, [fresh])

        hit = asyncio.run(api.search_line_items("AAPL", ["net_income"], "2024-04-01"))
        miss = asyncio.run(api.search_line_items("AAPL", ["net_income", "revenue"], "2024-04-01"))

        assert hit[0].get("net_income") == 10.0
        assert miss[0].get("revenue") == 50.0
        api._request.assert_called_once()


# ============================================================================
# PAGED ENDPOINTS
# ============================================================================


class TestPaging:

    def test_insider_trades_single_short_page(self, config, cache):
        api = _make_api(config, cache, [{"insider_trades": [
            _trade("2024-01-05"), _trade("2024-01-20"),
        ]}])

        trades = asyncio.run(api.get_insider_trades("AAPL", "2024-01-31", "2024-01-01", limit=10))

        assert [t.filing_date for t in trades] == ["2024-01-20", "2024-01-05"]
        params = api._request.call_args.kwargs["params"]
        assert params["filing_date_lte"] == "2024-01-31"
        assert params["filing_date_gte"] == "2024-01-01"
        assert len(cache.get_insider_trades("AAPL")) == 2

    def test_insider_trades_pages_backwards(self, config, cache):
        api = _make_api(config, cache, [
            {"insider_trades": [_trade("2024-01-30"), _trade("2024-01-20")]},
            {"insider_trades": [_trade("2024-01-10")]},
        ])

        trades = asyncio.run(api.get_insider_trades("AAPL", "2024-01-31", "2024-01-01", limit=2))

        assert len(trades) == 3
        second_params = api._request.call_args_list[1].kwargs["params"]
        assert second_params["filing_date_lte"] == "2024-01-20"

    def test_no_start_date_means_single_page(self, config, cache):
        api = _make_api(config, cache, [{"insider_trades": [_trade("2024-01-30"), _trade("2024-01-20")]}])

        asyncio.run(api.get_insider_trades("AAPL", "2024-01-31", limit=2))

        api._request.assert_called_once()

    def test_paging_stops_when_page_end_repeats(self, config, cache):
        same_day = {"insider_trades": [_trade("2024-01-20"), _trade("2024-01-20")]}
        api = _make_api(config, cache, [same_day, same_day, same_day])

        asyncio.run(api.get_insider_trades("AAPL", "2024-01-31", "2024-01-01", limit=2))

        assert api._request.call_count == 2

    def test_page_error_keeps_records_so_far(self, config, cache):
        api = _make_api(config, cache, [
            {"insider_trades": [_trade("2024-01-30"), _trade("2024-01-20")]},
            FinancialDataAPIError(500, "http://x/insider-trades/", "boom"),
        ])

        trades = asyncio.run(api.get_insider_trades("AAPL", "2024-01-31", "2024-01-01", limit=2))

        assert len(trades) == 2

    def test_trades_sorted_by_transaction_date(self, config, cache):
        api = _make_api(config, cache, [{"insider_trades": [
            _trade("2024-01-25", transaction_date="2024-01-02"),
            _trade("2024-01-10", transaction_date="2024-01-08"),
        ]}])

        trades = asyncio.run(api.get_insider_trades("AAPL", "2024-01-31", "2024-01-01", limit=10))

        assert [t.transaction_date for t in trades] == ["2024-01-08", "2024-01-02"]

    def test_company_news_params_and_cache(self, config, cache):
        api = _make_api(config, cache, [{"news": [_news("2024-01-05"), _news("2024-01-12")]}])

        news = asyncio.run(api.get_company_news("AAPL", "2024-01-31", "2024-01-01", limit=10))
        again = asyncio.run(api.get_company_news("AAPL", "2024-01-31", "2024-01-01", limit=10))

        assert [n.date for n in news] == ["2024-01-12", "2024-01-05"]
        assert [n.date for n in again] == ["2024-01-12", "2024-01-05"]
        params = api._request.call_args.kwargs["params"]
        assert params["end_date"] == "2024-01-31"
        assert params["start_date"] == "2024-01-01"
        api._request.assert_called_once()


# ============================================================================
# MARKET CAP
# ============================================================================


class TestMarketCap:

    def test_today_uses_company_facts(self, config, cache):
        api = _make_api(config, cache, [{"company_facts": {"ticker": "AAPL", "name": "Apple", "market_cap": 3e12}}])

        with patch("hedge_fund.tools.api.today_str", return_value="2024-05-01"):
            market_cap = asyncio.run(api.get_market_cap("AAPL", "2024-05-01"))

        assert market_cap == 3e12
        assert api._request.call_args.args[1] == "/company/facts/"

    def test_historical_uses_latest_metrics(self, config, cache):
        cache.set_financial_metrics("AAPL", [
            _metrics("2023-12-31", market_cap=2.5e12),
            _metrics("2024-03-31", market_cap=2.8e12),
        ])
        api = _make_api(config, cache, [])

        with patch("hedge_fund.tools.api.today_str", return_value="2024-05-01"):
            market_cap = asyncio.run(api.get_market_cap("AAPL", "2024-04-01"))

        assert market_cap == 2.8e12

    def test_no_metrics_returns_none(self, config, cache):
        api = _make_api(config, cache, [{"financial_metrics": []}])

        with patch("hedge_fund.tools.api.today_str", return_value="2024-05-01"):
            assert asyncio.run(api.get_market_cap("AAPL", "2024-04-01")) is None
