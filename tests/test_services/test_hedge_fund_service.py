"""
Tests for HedgeFundService: request validation, defaults and catalogues
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from hedge_fund.services.hedge_fund_service import (
    DEFAULT_INITIAL_CASH,
    HedgeFundService,
    InvalidRequestError,
    build_portfolio,
)


def _make_service():
    agent_service = MagicMock()
    agent_service.run_hedge_fund = AsyncMock(return_value={"decisions": {}, "analyst_signals": {}})
    return HedgeFundService(agent_service), agent_service


def _call(service, **kwargs):
    return asyncio.run(service.hedge_fund(**kwargs))


class TestBuildPortfolio:

    def test_positions_and_gains_per_ticker(self):
        portfolio = build_portfolio(["AAPL", "MSFT"], 5000.0, 0.5)

        assert portfolio["cash"] == 5000.0
        assert portfolio["margin_requirement"] == 0.5
        assert portfolio["margin_used"] == 0.0
        assert set(portfolio["positions"]) == {"AAPL", "MSFT"}
        assert portfolio["positions"]["MSFT"]["short_cost_basis"] == 0.0
        assert portfolio["realized_gains"] == {
            "AAPL": {"long": 0.0, "short": 0.0},
            "MSFT": {"long": 0.0, "short": 0.0},
        }


class TestCatalogues:

    def test_models(self):
        service, _ = _make_service()

        models = service.get_available_models()

        assert len(models["models"]) == 13
        assert len(models["ollama_models"]) == 8
        assert {"display_name", "model_name", "provider"} == set(models["models"][0])

    def test_analysts(self):
        service, _ = _make_service()
        assert service.get_available_analysts() == [
            {"display_name": "Warren Buffett", "key": "warren_buffett"},
        ]


class TestHedgeFundDefaults:

    def test_defaults_filled_in(self):
        service, agent_service = _make_service()

        with patch("hedge_fund.utils.helpers.today_str", return_value="2024-04-01"):
            result = _call(service, tickers=["aapl"])

        assert result == {"decisions": {}, "analyst_signals": {}}
        kwargs = agent_service.run_hedge_fund.call_args.kwargs
        assert kwargs["tickers"] == ["AAPL"]
        assert kwargs["start_date"] == "2024-01-02"
        assert kwargs["end_date"] == "2024-04-01"
        assert kwargs["portfolio"]["cash"] == DEFAULT_INITIAL_CASH
        assert kwargs["portfolio"]["margin_requirement"] == 0.0
        assert kwargs["show_reasoning"] is False
        assert kwargs["selected_analysts"] is None

    def test_comma_separated_tickers_deduped(self):
        service, agent_service = _make_service()

        _call(service, tickers="aapl, msft,AAPL", start_date="2024-01-01", end_date="2024-02-01")

        assert agent_service.run_hedge_fund.call_args.kwargs["tickers"] == ["AAPL", "MSFT"]

    def test_options_passed_through(self):
        service, agent_service = _make_service()

        _call(
            service, tickers=["AAPL"], start_date="2024-01-01", end_date="2024-02-01",
            initial_cash=5000, margin_requirement=0.5, show_reasoning=True,
            selected_analysts=["warren_buffett"], model_name="llama3-70b-8192", model_provider="groq",
        )

        kwargs = agent_service.run_hedge_fund.call_args.kwargs
        assert kwargs["portfolio"]["cash"] == 5000.0
        assert kwargs["portfolio"]["margin_requirement"] == 0.5
        assert kwargs["show_reasoning"] is True
        assert kwargs["selected_analysts"] == ["warren_buffett"]
        assert kwargs["model_name"] == "llama3-70b-8192"
        assert kwargs["model_provider"] == "groq"


class TestHedgeFundValidation:

    @pytest.mark.parametrize("tickers", [None, [], "", ["AAPL", ""], ["AAPL", 5], 42])
    def test_bad_tickers(self, tickers):
        service, agent_service = _make_service()

        with pytest.raises(InvalidRequestError):
            _call(service, tickers=tickers)
        agent_service.run_hedge_fund.assert_not_called()

    def test_bad_date_format(self):
        service, _ = _make_service()
        with pytest.raises(InvalidRequestError, match="start_date"):
            _call(service, tickers=["AAPL"], start_date="01/01/2024", end_date="2024-02-01")

    def test_start_after_end(self):
        service, _ = _make_service()
        with pytest.raises(InvalidRequestError, match="after"):
            _call(service, tickers=["AAPL"], start_date="2024-03-01", end_date="2024-02-01")

    @pytest.mark.parametrize("cash", [-1, "lots"])
    def test_bad_cash(self, cash):
        service, _ = _make_service()
        with pytest.raises(InvalidRequestError):
            _call(service, tickers=["AAPL"], initial_cash=cash)

    def test_selected_analysts_must_be_list(self):
        service, _ = _make_service()
        with pytest.raises(InvalidRequestError):
            _call(service, tickers=["AAPL"], selected_analysts="warren_buffett")

    def test_unknown_model_provider(self):
        service, _ = _make_service()
        with pytest.raises(InvalidRequestError, match="Unknown model provider"):
            _call(service, tickers=["AAPL"], model_provider="skynet")

    def test_invalid_request_is_value_error(self):
        assert issubclass(InvalidRequestError, ValueError)
