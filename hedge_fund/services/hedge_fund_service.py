"""
Hedge Fund Service
Request-level operations behind the HTTP routes: catalogue lookups and a
hedge fund run with defaults filled in.
"""

import logging
from typing import Any, Dict, List, Optional

from hedge_fund.llm.model_provider import ModelProvider
from hedge_fund.llm.models import get_available_models, get_ollama_models
from hedge_fund.services.agent_service import AgentService
from hedge_fund.utils.analysts import get_analyst_order
from hedge_fund.utils.helpers import is_valid_date, normalize_ticker, parse_date, resolve_date_window

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_CASH: float = 100000.0
DEFAULT_MARGIN_REQUIREMENT: float = 0.0


class InvalidRequestError(ValueError):
    """The request parameters cannot be run."""


def build_portfolio(tickers: List[str], initial_cash: float, margin_requirement: float) -> Dict[str, Any]:
    """
    Fresh portfolio: all cash, flat positions and zero realized gains per ticker.

    Example:
        >>> build_portfolio(['AAPL'], 1000.0, 0.0)['positions']['AAPL']['long']
        0
    """
    return {
        "cash": initial_cash,
        "margin_requirement": margin_requirement,
        "margin_used": 0.0,
        "positions": {
            ticker: {
                "long": 0,
                "short": 0,
                "long_cost_basis": 0.0,
                "short_cost_basis": 0.0,
                "short_margin_used": 0.0,
            }
            for ticker in tickers
        },
        "realized_gains": {
            ticker: {"long": 0.0, "short": 0.0}
            for ticker in tickers
        },
    }


class HedgeFundService:
    def __init__(self, agent_service: AgentService):
        self.agent_service = agent_service

    def get_available_models(self) -> Dict[str, List[Dict[str, str]]]:
        return {
            "models": [model.to_dict() for model in get_available_models()],
            "ollama_models": [model.to_dict() for model in get_ollama_models()],
        }

    def get_available_analysts(self) -> List[Dict[str, str]]:
        return [
            {"display_name": display_name, "key": key}
            for display_name, key in get_analyst_order()
        ]

    @staticmethod
    def _validate_tickers(tickers: Any) -> List[str]:
        if isinstance(tickers, str):
            tickers = tickers.split(",")
        if not isinstance(tickers, list):
            raise InvalidRequestError("tickers must be a list of symbols")

        normalized = []
        for ticker in tickers:
            if not isinstance(ticker, str) or not ticker.strip():
                raise InvalidRequestError(f"Invalid ticker: {ticker!r}")
            symbol = normalize_ticker(ticker)
            if symbol not in normalized:
                normalized.append(symbol)

        if not normalized:
            raise InvalidRequestError("At least one ticker is required")
        return normalized

    @staticmethod
    def _validate_dates(start_date: Optional[str], end_date: Optional[str]):
        for name, value in (("start_date", start_date), ("end_date", end_date)):
            if value is not None and not is_valid_date(value):
                raise InvalidRequestError(f"{name} must be YYYY-MM-DD, got {value!r}")

        start, end = resolve_date_window(start_date, end_date)
        if parse_date(start) > parse_date(end):
            raise InvalidRequestError(f"start_date {start} is after end_date {end}")
        return start, end

    async def hedge_fund(
        self,
        tickers: Any,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        initial_cash: Optional[float] = None,
        margin_requirement: Optional[float] = None,
        show_reasoning: Optional[bool] = None,
        selected_analysts: Optional[List[str]] = None,
        model_name: Optional[str] = None,
        model_provider: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Validate a request, fill defaults and run the hedge fund.

        Defaults: end date today, start date 90 days before the end date,
        initial cash 100000, margin requirement 0.

        Raises:
            InvalidRequestError: Bad tickers, dates or amounts
        """
        symbols = self._validate_tickers(tickers)
        start, end = self._validate_dates(start_date, end_date)

        try:
            cash = float(DEFAULT_INITIAL_CASH if initial_cash is None else initial_cash)
            margin = float(DEFAULT_MARGIN_REQUIREMENT if margin_requirement is None else margin_requirement)
        except (TypeError, ValueError) as e:
            raise InvalidRequestError(f"initial_cash and margin_requirement must be numbers: {e}") from e
        if cash < 0 or margin < 0:
            raise InvalidRequestError("initial_cash and margin_requirement must not be negative")

        if selected_analysts is not None and not isinstance(selected_analysts, list):
            raise InvalidRequestError("selected_analysts must be a list of analyst keys")

        if model_provider is not None:
            try:
                ModelProvider.from_str(model_provider)
            except ValueError as e:
                raise InvalidRequestError(str(e)) from e

        portfolio = build_portfolio(symbols, cash, margin)
        logger.info(
            f"Hedge fund request: {symbols}, {start} to {end}, cash {cash:.2f}, "
            f"analysts {selected_analysts or 'all'}"
        )

        return await self.agent_service.run_hedge_fund(
            tickers=symbols,
            start_date=start,
            end_date=end,
            portfolio=portfolio,
            show_reasoning=bool(show_reasoning),
            selected_analysts=selected_analysts,
            model_name=model_name,
            model_provider=model_provider,
        )
