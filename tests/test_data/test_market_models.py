"""
Tests for the market data record types
"""

from hedge_fund.data.models import CompanyNews, FinancialMetrics, InsiderTrade, LineItem, Price


class TestRecords:

    def test_price_from_dict_ignores_unknown_keys(self):
        price = Price.from_dict({
            "open": 1.0, "close": 2.0, "high": 3.0, "low": 0.5,
            "volume": 100, "time": "2024-01-02T05:00:00Z", "vwap": 1.7,
        })

        assert price.close == 2.0
        assert "vwap" not in price.to_dict()

    def test_financial_metrics_optional_fields_default_none(self):
        metrics = FinancialMetrics.from_dict({
            "ticker": "AAPL", "report_period": "2024-03-31", "period": "ttm",
            "currency": "USD", "return_on_equity": 0.25,
        })

        assert metrics.return_on_equity == 0.25
        assert metrics.debt_to_equity is None

    def test_insider_trade_and_news(self):
        trade = InsiderTrade.from_dict({"ticker": "AAPL", "filing_date": "2024-01-05", "name": "Tim"})
        news = CompanyNews.from_dict({
            "ticker": "AAPL", "title": "t", "author": "a", "source": "s",
            "date": "2024-01-05", "url": "http://example.com",
        })

        assert trade.filing_date == "2024-01-05"
        assert news.sentiment is None


class TestLineItem:

    def test_requested_items_land_in_extra(self):
        payload = {
            "ticker": "AAPL", "report_period": "2024-03-31", "period": "ttm",
            "currency": "USD", "net_income": 100.0, "capital_expenditure": -20.0,
        }
        item = LineItem.from_dict(payload)

        assert item.extra == {"net_income": 100.0, "capital_expenditure": -20.0}
        assert item.get("net_income") == 100.0
        assert item.get("revenue") is None
        assert item.get("revenue", 0) == 0
        assert item.to_dict() == payload
