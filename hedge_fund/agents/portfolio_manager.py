"""
Portfolio Management Agent

Final node. Gathers every analyst's per-ticker signal together with the
risk manager's limits and asks the LLM for one trading decision per ticker.

Inputs per ticker:
- signals from every analyst except the risk manager ({signal, confidence})
- current price and remaining position limit (risk manager)
- max_shares = int(remaining_limit / price), 0 when the price is unknown

If the LLM reply cannot be parsed, every ticker defaults to hold / 0 / 0.

The decisions JSON becomes the last assistant message of the run.
"""

import json
from typing import Any, Dict, List

from hedge_fund.graph.state import AgentState, PartialAgentStateUpdate, show_agent_reasoning
from hedge_fund.llm.model_provider import ChatMessage
from hedge_fund.llm.providers import call_llm, parse_json_response
from hedge_fund.utils.helpers import safe_divide
from hedge_fund.utils.logger import get_node_logger

logger = get_node_logger("portfolio_manager")

RISK_AGENT_ID = "risk_management_agent"
VALID_ACTIONS = ("buy", "sell", "short", "cover", "hold")

LLM_TEMPERATURE: float = 0.5
LLM_MAX_TOKENS: int = 1024
LLM_TOP_P: float = 0.5

SYSTEM_PROMPT = """You are a portfolio manager making final trading decisions based on multiple tickers.

Trading Rules:
- For long positions:
  * Only buy if you have available cash
  * Only sell if you currently hold long shares of that ticker
  * Sell quantity must be <= current long position shares
  * Buy quantity must be <= max_shares for that ticker

- For short positions:
  * Only short if you have available margin (position value x margin requirement)
  * Only cover if you currently have short shares of that ticker
  * Cover quantity must be <= current short position shares
  * Short quantity must respect margin requirements

- The max_shares values are pre-calculated to respect position limits
- Consider both long and short opportunities based on signals
- Maintain appropriate risk management with both long and short exposure

Available Actions:
- "buy": Open or add to long position
- "sell": Close or reduce long position
- "short": Open or add to short position
- "cover": Close or reduce short position
- "hold": No action

Inputs:
- signals_by_ticker: dictionary of ticker -> signals
- max_shares: maximum shares allowed per ticker
- portfolio_cash: current cash in portfolio
- portfolio_positions: current positions (both long and short)
- current_prices: current prices for each ticker
- margin_requirement: current margin requirement for short positions (e.g., 0.5 means 50%)
- total_margin_used: total margin currently in use"""

HUMAN_PROMPT = """Based on the team's analysis, make your trading decisions for each ticker.

Here are the signals by ticker:
{signals_by_ticker}

Current Prices:
{current_prices}

Maximum Shares Allowed For Purchases:
{max_shares}

Portfolio Cash: {portfolio_cash:.2f}
Current Positions: {portfolio_positions}
Current Margin Requirement: {margin_requirement:.2f}
Total Margin Used: {total_margin_used:.2f}

Output strictly in JSON with the following structure without any explanation:
{{
  "decisions": {{
    "TICKER1": {{
      "action": "buy/sell/short/cover/hold",
      "quantity": integer,
      "confidence": float between 0 and 100,
      "reasoning": "string"
    }},
    "TICKER2": {{
      ...
    }},
    ...
  }}
}}"""


# ============================================================================
# HELPERS
# ============================================================================

def collect_ticker_inputs(tickers: List[str], analyst_signals: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """
    Per-ticker signals, prices and share limits from the accumulated analyst output.

    Returns:
        {'signals_by_ticker', 'current_prices', 'position_limits', 'max_shares'}
    """
    risk_signals = analyst_signals.get(RISK_AGENT_ID) or {}
    signals_by_ticker: Dict[str, Dict[str, Any]] = {}
    current_prices: Dict[str, float] = {}
    position_limits: Dict[str, float] = {}
    max_shares: Dict[str, int] = {}

    for ticker in tickers:
        risk_data = risk_signals.get(ticker) or {}
        position_limit = float(risk_data.get("remaining_position_limit") or 0.0)
        current_price = float(risk_data.get("current_price") or 0.0)

        position_limits[ticker] = position_limit
        current_prices[ticker] = current_price
        max_shares[ticker] = int(safe_divide(position_limit, max(current_price, 0.0)))

        ticker_signals = {}
        for agent, signals in analyst_signals.items():
            if agent == RISK_AGENT_ID or not isinstance(signals, dict):
                continue
            ticker_signal = signals.get(ticker)
            if not isinstance(ticker_signal, dict):
                continue
            ticker_signals[agent] = {
                key: ticker_signal[key] for key in ("signal", "confidence") if key in ticker_signal
            }
        signals_by_ticker[ticker] = ticker_signals

    return {
        "signals_by_ticker": signals_by_ticker,
        "current_prices": current_prices,
        "position_limits": position_limits,
        "max_shares": max_shares,
    }


def default_decisions(tickers: List[str]) -> Dict[str, Dict[str, Any]]:
    return {
        ticker: {
            "action": "hold",
            "quantity": 0,
            "confidence": 0.0,
            "reasoning": "Error in portfolio management, defaulting to hold",
        }
        for ticker in tickers
    }


def _coerce_decisions(parsed: Any, tickers: List[str]) -> Dict[str, Dict[str, Any]]:
    """Validate the LLM's decisions; anything unusable falls back to hold."""
    if not isinstance(parsed, dict) or not isinstance(parsed.get("decisions"), dict):
        return default_decisions(tickers)

    decisions = {}
    for ticker, decision in parsed["decisions"].items():
        if not isinstance(decision, dict):
            continue
        action = str(decision.get("action", "")).strip().lower()
        if action not in VALID_ACTIONS:
            logger.warning(f"Portfolio manager: invalid action '{action}' for {ticker}, using hold")
            action = "hold"
        try:
            quantity = int(decision.get("quantity", 0))
            confidence = float(decision.get("confidence", 0.0))
        except (TypeError, ValueError):
            quantity, confidence = 0, 0.0
        decisions[ticker] = {
            "action": action,
            "quantity": quantity,
            "confidence": confidence,
            "reasoning": str(decision.get("reasoning", "")),
        }
    return decisions


async def generate_trading_decision(tickers: List[str], inputs: Dict[str, Dict[str, Any]],
                                    portfolio: Dict[str, Any], model_name: str,
                                    model_provider: str, config) -> Dict[str, Dict[str, Any]]:
    """Prompt the LLM and return {TICKER: {action, quantity, confidence, reasoning}}."""
    human_prompt = HUMAN_PROMPT.format(
        signals_by_ticker=json.dumps(inputs["signals_by_ticker"], indent=2),
        current_prices=json.dumps(inputs["current_prices"], indent=2),
        max_shares=json.dumps(inputs["max_shares"], indent=2),
        portfolio_cash=float(portfolio.get("cash") or 0.0),
        portfolio_positions=json.dumps(portfolio.get("positions") or {}, indent=2),
        margin_requirement=float(portfolio.get("margin_requirement") or 0.0),
        total_margin_used=float(portfolio.get("margin_used") or 0.0),
    )
    messages = [
        ChatMessage(role="system", content=SYSTEM_PROMPT),
        ChatMessage(role="user", content=human_prompt),
    ]

    logger.info("Portfolio manager: calling LLM for trading decisions")
    content = await call_llm(
        messages, model_name, model_provider, config,
        temperature=LLM_TEMPERATURE, max_tokens=LLM_MAX_TOKENS, top_p=LLM_TOP_P,
    )
    logger.debug(f"LLM response: {content}")

    parsed = parse_json_response(content)
    if parsed is None:
        logger.error("Portfolio manager: failed to parse LLM response, defaulting to hold")
        return default_decisions(tickers)
    return _coerce_decisions(parsed, tickers)


# ============================================================================
# MAIN NODE
# ============================================================================

async def portfolio_management_agent(state: AgentState, config) -> PartialAgentStateUpdate:
    data = state.data
    portfolio = data.get("portfolio")
    analyst_signals = data.get("analyst_signals")
    tickers = data.get("tickers") or []
    model_name = state.metadata.get("model_name")
    model_provider = state.metadata.get("model_provider")

    if portfolio is None or analyst_signals is None or not tickers:
        logger.error("Portfolio manager: missing portfolio, analyst_signals or tickers in state.data")
        return PartialAgentStateUpdate()
    if not model_name or not model_provider:
        logger.error("Portfolio manager: metadata missing model_name or model_provider")
        return PartialAgentStateUpdate()

    inputs = collect_ticker_inputs(tickers, analyst_signals)
    decisions = await generate_trading_decision(
        tickers, inputs, portfolio, model_name, model_provider, config
    )

    message_content = json.dumps(decisions)
    if state.metadata.get("show_reasoning"):
        show_agent_reasoning(decisions, "Portfolio Manager")

    return PartialAgentStateUpdate().with_messages([
        ChatMessage(role="assistant", content=message_content)
    ])
