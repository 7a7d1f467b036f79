"""
Risk Management Agent

Caps how much new money may go into each ticker.

For every ticker:
  current_price      = latest close in [start_date, end_date]
  portfolio_value    = cash + sum of position cost bases
  position_limit     = 20% of portfolio_value
  remaining_limit    = position_limit - this ticker's cost basis
  max_position_size  = min(remaining_limit, cash)

Tickers without price data are skipped (logged) and get no entry.

Writes: data.analyst_signals.risk_management_agent =
    {TICKER: {remaining_position_limit, current_price, reasoning{...}}}
"""

import json
from typing import Any, Dict

from hedge_fund.graph.state import AgentState, PartialAgentStateUpdate, show_agent_reasoning
from hedge_fund.llm.model_provider import ChatMessage
from hedge_fund.tools.api import FinancialDatasetsAPI
from hedge_fund.utils.logger import get_node_logger

logger = get_node_logger("risk_management_agent")

AGENT_ID = "risk_management_agent"

POSITION_LIMIT_PCT: float = 0.20


# ============================================================================
# HELPERS
# ============================================================================

def position_cost_basis(portfolio: Dict[str, Any], ticker: str) -> float:
    """
    Money currently committed to one ticker.

    Reads a flat portfolio['cost_basis'][ticker] when present, otherwise
    long * long_cost_basis + short * short_cost_basis from portfolio['positions'].
    """
    cost_basis = portfolio.get("cost_basis")
    if isinstance(cost_basis, dict):
        return float(cost_basis.get(ticker) or 0.0)

    position = (portfolio.get("positions") or {}).get(ticker) or {}
    long_value = (position.get("long") or 0) * (position.get("long_cost_basis") or 0.0)
    short_value = (position.get("short") or 0) * (position.get("short_cost_basis") or 0.0)
    return float(long_value + short_value)


def total_portfolio_value(portfolio: Dict[str, Any]) -> float:
    cash = float(portfolio.get("cash") or 0.0)
    cost_basis = portfolio.get("cost_basis")
    tickers = cost_basis if isinstance(cost_basis, dict) else (portfolio.get("positions") or {})
    return cash + sum(position_cost_basis(portfolio, ticker) for ticker in tickers)


def calculate_position_limit(portfolio: Dict[str, Any], ticker: str, current_price: float) -> Dict[str, Any]:
    """
    Risk entry for one ticker.

    Example:
        >>> calculate_position_limit({'cash': 100000.0}, 'AAPL', 180.0)['remaining_position_limit']
        20000.0
    """
    cash = float(portfolio.get("cash") or 0.0)
    current_position = position_cost_basis(portfolio, ticker)
    portfolio_value = total_portfolio_value(portfolio)

    position_limit = portfolio_value * POSITION_LIMIT_PCT
    remaining_limit = position_limit - current_position
    max_position_size = min(remaining_limit, cash)

    return {
        "remaining_position_limit": max_position_size,
        "current_price": current_price,
        "reasoning": {
            "portfolio_value": portfolio_value,
            "current_position": current_position,
            "position_limit": position_limit,
            "remaining_limit": remaining_limit,
            "available_cash": cash,
        },
    }


# ============================================================================
# MAIN NODE
# ============================================================================

async def risk_management_agent(state: AgentState, config, cache=None) -> PartialAgentStateUpdate:
    """
    Controls position sizing for every ticker.

    Args:
        state: Needs data.portfolio, data.tickers, data.start_date, data.end_date
        config: Application Config
        cache: Optional Cache for the market data client

    Returns:
        Update with one assistant message and analyst_signals.risk_management_agent
    """
    data = state.data
    portfolio = data.get("portfolio")
    tickers = data.get("tickers") or []
    start_date = data.get("start_date")
    end_date = data.get("end_date")

    if portfolio is None:
        logger.error("Cannot find portfolio inside state.data")
        return PartialAgentStateUpdate()
    if not tickers or not start_date or not end_date:
        logger.error("Missing tickers or date window inside state.data")
        return PartialAgentStateUpdate()

    api = FinancialDatasetsAPI(config, cache=cache)
    risk_analysis: Dict[str, Dict[str, Any]] = {}

    for ticker in tickers:
        prices_df = await api.get_price_data(ticker, start_date, end_date)
        if prices_df.empty:
            logger.warning(f"Risk management: no price data found for {ticker}, skipping")
            continue

        current_price = float(prices_df["close"].iloc[-1])
        risk_analysis[ticker] = calculate_position_limit(portfolio, ticker, current_price)
        logger.info(
            f"Risk management: {ticker} @ {current_price:.2f}, "
            f"remaining limit {risk_analysis[ticker]['remaining_position_limit']:.2f}"
        )

    message = ChatMessage(role="assistant", content=json.dumps(risk_analysis))

    if state.metadata.get("show_reasoning"):
        show_agent_reasoning(risk_analysis, "Risk Management Agent")

    analyst_signals = dict(data.get("analyst_signals") or {})
    analyst_signals[AGENT_ID] = risk_analysis

    return (
        PartialAgentStateUpdate()
        .with_messages([message])
        .with_data({"analyst_signals": analyst_signals})
    )
