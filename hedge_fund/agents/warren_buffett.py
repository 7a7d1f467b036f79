"""
Warren Buffett Agent

Scores each ticker on Buffett's principles, values it with a discounted
owner-earnings model and asks the LLM to phrase a final signal.

Scoring (max 7 + 3 + moat_max + mgmt_max = 15):
- Fundamentals (latest period):  ROE > 15%, D/E < 0.5, op margin > 15%,
                                 current ratio > 1.5          → +2 each
- Consistency (>= 4 periods):    net income strictly growing → +3
- Moat (>= 3 periods):           ROE always > 15% → +1, op margin always > 15% → +1,
                                 both → +1 bonus
- Management (latest period):    net buybacks → +1, dividends paid → +1

Valuation:
  owner earnings = net income + D&A - 0.75 * capex
  intrinsic value = 10 years of owner earnings growing 5%, discounted at 9%,
                    plus a 12x terminal multiple discounted from year 10
  margin of safety = (intrinsic value - market cap) / market cap

Rule signal:
  score >= int(0.7 * max) and MoS >= 0.3  → bullish
  score <= int(0.3 * max) or  MoS < -0.3  → bearish
  otherwise                               → neutral

Writes: data.analyst_signals.warren_buffett_agent = {TICKER: {signal, confidence, reasoning}}
"""

import json
from typing import Any, Dict, List, Optional

import numpy as np

from hedge_fund.graph.state import AgentState, PartialAgentStateUpdate, show_agent_reasoning
from hedge_fund.llm.model_provider import ChatMessage
from hedge_fund.llm.providers import call_llm, parse_json_response
from hedge_fund.data.models import FinancialMetrics, LineItem
from hedge_fund.tools.api import FinancialDatasetsAPI
from hedge_fund.utils.logger import get_node_logger

logger = get_node_logger("warren_buffett_agent")

AGENT_ID = "warren_buffett_agent"


# ============================================================================
# CONSTANTS
# ============================================================================

ROE_THRESHOLD: float = 0.15
DEBT_TO_EQUITY_THRESHOLD: float = 0.5
OPERATING_MARGIN_THRESHOLD: float = 0.15
CURRENT_RATIO_THRESHOLD: float = 1.5

FUNDAMENTAL_MAX_SCORE: int = 7     # max-score formula counts 7 although the four checks can reach 8
CONSISTENCY_MAX_SCORE: int = 3
MOAT_MAX_SCORE: int = 3
MANAGEMENT_MAX_SCORE: int = 2

MAINTENANCE_CAPEX_RATIO: float = 0.75
GROWTH_RATE: float = 0.05
DISCOUNT_RATE: float = 0.09
TERMINAL_MULTIPLE: int = 12
PROJECTION_YEARS: int = 10

BULLISH_MARGIN_OF_SAFETY: float = 0.3
BEARISH_MARGIN_OF_SAFETY: float = -0.3

LINE_ITEMS: List[str] = [
    "capital_expenditure",
    "depreciation_and_amortization",
    "net_income",
    "outstanding_shares",
    "total_assets",
    "total_liabilities",
    "dividends_and_other_cash_distributions",
    "issuance_or_purchase_of_equity_shares",
]

VALID_SIGNALS = ("bullish", "bearish", "neutral")

SYSTEM_PROMPT = """You are a Warren Buffett AI agent. Decide on investment signals based on Warren Buffett's principles:
- Circle of Competence: Only invest in businesses you understand
- Margin of Safety (> 30%): Buy at a significant discount to intrinsic value
- Economic Moat: Look for durable competitive advantages
- Quality Management: Seek conservative, shareholder-oriented teams
- Financial Strength: Favor low debt, strong returns on equity
- Long-term Horizon: Invest in businesses, not just stocks
- Sell only if fundamentals deteriorate or valuation far exceeds intrinsic value

When providing your reasoning, be thorough and specific by:
1. Explaining the key factors that influenced your decision the most (both positive and negative)
2. Highlighting how the company aligns with or violates specific Buffett principles
3. Providing quantitative evidence where relevant (e.g., specific margins, ROE values, debt levels)
4. Concluding with a Buffett-style assessment of the investment opportunity
5. Using Warren Buffett's voice and conversational style in your explanation

Follow these guidelines strictly."""

HUMAN_PROMPT = """Based on the following data, create the investment signal as Warren Buffett would:
Analysis Data for {ticker}:
{analysis_data}

Return the trading signal in the following JSON format exactly without any explanation:
{{
  "signal": "bullish" | "bearish" | "neutral",
  "confidence": float between 0 and 100,
  "reasoning": "string"
}}"""


# ============================================================================
# HELPER 1: SCORING
# ============================================================================

def analyze_fundamentals(metrics: List[FinancialMetrics]) -> Dict[str, Any]:
    """
    Score the latest period's ROE, leverage, margins and liquidity.

    Args:
        metrics: Financial metrics, newest first

    Returns:
        Dict with score (0-8), details and the latest metrics
    """
    if not metrics:
        return {"score": 0, "details": "Insufficient fundamental data"}

    latest = metrics[0]
    score = 0
    reasoning = []

    if latest.return_on_equity is not None:
        if latest.return_on_equity > ROE_THRESHOLD:
            score += 2
            reasoning.append(f"Strong ROE of {latest.return_on_equity * 100:.1f}%")
        else:
            reasoning.append(f"Weak ROE of {latest.return_on_equity * 100:.1f}%")
    else:
        reasoning.append("ROE data not available")

    if latest.debt_to_equity is not None:
        if latest.debt_to_equity < DEBT_TO_EQUITY_THRESHOLD:
            score += 2
            reasoning.append(f"Conservative debt-to-equity ratio of {latest.debt_to_equity:.1f}")
        else:
            reasoning.append(f"High debt-to-equity ratio of {latest.debt_to_equity:.1f}")
    else:
        reasoning.append("Debt-to-equity data not available")

    if latest.operating_margin is not None:
        if latest.operating_margin > OPERATING_MARGIN_THRESHOLD:
            score += 2
            reasoning.append(f"Strong operating margin of {latest.operating_margin * 100:.1f}%")
        else:
            reasoning.append(f"Weak operating margin of {latest.operating_margin * 100:.1f}%")
    else:
        reasoning.append("Operating margin data not available")

    if latest.current_ratio is not None:
        if latest.current_ratio > CURRENT_RATIO_THRESHOLD:
            score += 2
            reasoning.append(f"Good liquidity with current ratio of {latest.current_ratio:.1f}")
        else:
            reasoning.append(f"Weak liquidity with current ratio of {latest.current_ratio:.1f}")
    else:
        reasoning.append("Current ratio data not available")

    return {"score": score, "details": "; ".join(reasoning), "metrics": latest.to_dict()}


def analyze_consistency(line_items: List[LineItem]) -> Dict[str, Any]:
    """Earnings consistency: +3 when net income grew every period (newest first)."""
    if len(line_items) < 4:
        return {"score": 0, "details": "Insufficient historical data"}

    score = 0
    reasoning = []
    earnings = [item.get("net_income") for item in line_items if item.get("net_income") is not None]

    if len(earnings) >= 4:
        if all(newer > older for newer, older in zip(earnings, earnings[1:])):
            score += 3
            reasoning.append("Consistent earnings growth over past periods")
        else:
            reasoning.append("Inconsistent earnings growth pattern")

        latest, oldest = earnings[0], earnings[-1]
        if abs(oldest) > 1e-6:
            growth_rate = (latest - oldest) / abs(oldest)
            reasoning.append(
                f"Total earnings growth of {growth_rate * 100:.1f}% over past {len(earnings)} periods"
            )
    else:
        reasoning.append("Insufficient earnings data for trend analysis")

    return {"score": score, "details": "; ".join(reasoning)}


def analyze_moat(metrics: List[FinancialMetrics]) -> Dict[str, Any]:
    """Durable advantage proxy: ROE and operating margin above 15% in every period."""
    if len(metrics) < 3:
        return {"score": 0, "max_score": MOAT_MAX_SCORE, "details": "Insufficient data for moat analysis"}

    reasoning = []
    moat_score = 0
    roes = [m.return_on_equity for m in metrics if m.return_on_equity is not None]
    margins = [m.operating_margin for m in metrics if m.operating_margin is not None]

    if len(roes) >= 3 and all(r > ROE_THRESHOLD for r in roes):
        moat_score += 1
        reasoning.append("Stable ROE above 15% across periods (suggests moat)")
    else:
        reasoning.append("ROE not consistently above 15%")

    if len(margins) >= 3 and all(m > OPERATING_MARGIN_THRESHOLD for m in margins):
        moat_score += 1
        reasoning.append("Stable operating margins above 15% (moat indicator)")
    else:
        reasoning.append("Operating margin not consistently above 15%")

    if moat_score == 2:
        moat_score += 1
        reasoning.append("Both ROE and margin stability indicate a solid moat")

    return {"score": moat_score, "max_score": MOAT_MAX_SCORE, "details": "; ".join(reasoning)}


def analyze_management_quality(line_items: List[LineItem]) -> Dict[str, Any]:
    """Shareholder friendliness: buybacks and dividends in the latest period."""
    if not line_items:
        return {"score": 0, "max_score": MANAGEMENT_MAX_SCORE,
                "details": "Insufficient data for management analysis"}

    reasoning = []
    mgmt_score = 0
    latest = line_items[0]

    issuance = latest.get("issuance_or_purchase_of_equity_shares")
    if issuance is not None:
        if issuance < 0:
            mgmt_score += 1
            reasoning.append("Company has been repurchasing shares (shareholder-friendly)")
        elif issuance > 0:
            reasoning.append("Recent common stock issuance (potential dilution)")
        else:
            reasoning.append("No significant new stock issuance detected")
    else:
        reasoning.append("Data on stock issuance/repurchase not available")

    dividends = latest.get("dividends_and_other_cash_distributions")
    if dividends is not None:
        # Cash outflow, so paid dividends are negative
        if dividends < 0:
            mgmt_score += 1
            reasoning.append("Company has a track record of paying dividends")
        else:
            reasoning.append("No or minimal dividends paid")
    else:
        reasoning.append("Dividend payment data not available")

    return {"score": mgmt_score, "max_score": MANAGEMENT_MAX_SCORE, "details": "; ".join(reasoning)}


# ============================================================================
# HELPER 2: VALUATION
# ============================================================================

def calculate_owner_earnings(line_items: List[LineItem]) -> Dict[str, Any]:
    """
    Owner earnings = net income + depreciation - maintenance capex.

    Maintenance capex is taken as 75% of reported capex.
    """
    if not line_items:
        return {"owner_earnings": None, "details": ["Insufficient data for owner earnings calculation"]}

    latest = line_items[0]
    net_income = latest.get("net_income")
    depreciation = latest.get("depreciation_and_amortization")
    capex = latest.get("capital_expenditure")

    if net_income is None or depreciation is None or capex is None:
        return {"owner_earnings": None, "details": ["Missing components for owner earnings calculation"]}

    maintenance_capex = capex * MAINTENANCE_CAPEX_RATIO
    owner_earnings = net_income + depreciation - maintenance_capex

    return {
        "owner_earnings": owner_earnings,
        "components": {
            "net_income": net_income,
            "depreciation": depreciation,
            "maintenance_capex": maintenance_capex,
        },
        "details": ["Owner earnings calculated successfully"],
    }


def calculate_intrinsic_value(line_items: List[LineItem]) -> Dict[str, Any]:
    """
    Discounted owner-earnings valuation.

    Example:
        >>> result = calculate_intrinsic_value(items)
        >>> result['assumptions']['discount_rate']
        0.09
    """
    if not line_items:
        return {"intrinsic_value": None, "details": ["Insufficient data for valuation"]}

    earnings_data = calculate_owner_earnings(line_items)
    owner_earnings = earnings_data["owner_earnings"]
    if owner_earnings is None:
        return {"intrinsic_value": None, "details": earnings_data["details"]}

    if line_items[0].get("outstanding_shares") is None:
        return {"intrinsic_value": None, "details": ["Missing shares outstanding data"]}

    years = np.arange(1, PROJECTION_YEARS + 1)
    future_earnings = owner_earnings * (1 + GROWTH_RATE) ** years
    present_value = float(np.sum(future_earnings / (1 + DISCOUNT_RATE) ** years))

    terminal_earnings = owner_earnings * (1 + GROWTH_RATE) ** PROJECTION_YEARS
    terminal_value = (terminal_earnings * TERMINAL_MULTIPLE) / (1 + DISCOUNT_RATE) ** PROJECTION_YEARS

    return {
        "intrinsic_value": present_value + terminal_value,
        "owner_earnings": owner_earnings,
        "assumptions": {
            "growth_rate": GROWTH_RATE,
            "discount_rate": DISCOUNT_RATE,
            "terminal_multiple": TERMINAL_MULTIPLE,
            "projection_years": PROJECTION_YEARS,
        },
        "details": ["Intrinsic value calculated using DCF model with owner earnings"],
    }


def margin_of_safety(intrinsic_value: Optional[float], market_cap: Optional[float]) -> Optional[float]:
    if intrinsic_value is None or market_cap is None or abs(market_cap) <= 1e-6:
        return None
    return (intrinsic_value - market_cap) / market_cap


def classify_signal(total_score: int, max_score: int, mos: Optional[float]) -> str:
    """Rule-based signal from the total score and margin of safety."""
    bullish_threshold = int(0.7 * max_score)
    bearish_threshold = int(0.3 * max_score)

    if total_score >= bullish_threshold and mos is not None and mos >= BULLISH_MARGIN_OF_SAFETY:
        return "bullish"
    if total_score <= bearish_threshold or (mos is not None and mos < BEARISH_MARGIN_OF_SAFETY):
        return "bearish"
    return "neutral"


def build_ticker_analysis(metrics: List[FinancialMetrics], line_items: List[LineItem],
                          market_cap: Optional[float]) -> Dict[str, Any]:
    """Combine every score and the valuation into one analysis dict."""
    fundamental = analyze_fundamentals(metrics)
    consistency = analyze_consistency(line_items)
    moat = analyze_moat(metrics)
    management = analyze_management_quality(line_items)
    valuation = calculate_intrinsic_value(line_items)

    total_score = fundamental["score"] + consistency["score"] + moat["score"] + management["score"]
    max_score = (FUNDAMENTAL_MAX_SCORE + CONSISTENCY_MAX_SCORE
                 + moat.get("max_score", MOAT_MAX_SCORE) + management.get("max_score", MANAGEMENT_MAX_SCORE))
    mos = margin_of_safety(valuation.get("intrinsic_value"), market_cap)

    analysis = {
        "signal": classify_signal(total_score, max_score, mos),
        "score": total_score,
        "max_score": max_score,
        "fundamental_analysis": fundamental,
        "consistency_analysis": consistency,
        "moat_analysis": moat,
        "management_analysis": management,
        "intrinsic_value_analysis": valuation,
    }
    if market_cap is not None:
        analysis["market_cap"] = market_cap
    if mos is not None:
        analysis["margin_of_safety"] = mos
    return analysis


# ============================================================================
# HELPER 3: LLM OUTPUT
# ============================================================================

def _default_signal() -> Dict[str, Any]:
    return {"signal": "neutral", "confidence": 0.0, "reasoning": "Error in analysis, defaulting to neutral"}


def _coerce_signal(parsed: Any) -> Dict[str, Any]:
    if not isinstance(parsed, dict):
        return _default_signal()

    signal = str(parsed.get("signal", "")).strip().lower()
    if signal not in VALID_SIGNALS:
        return _default_signal()

    try:
        confidence = float(parsed.get("confidence", 0.0))
    except (TypeError, ValueError):
        confidence = 0.0

    return {"signal": signal, "confidence": confidence, "reasoning": str(parsed.get("reasoning", ""))}


async def generate_buffett_output(ticker: str, analysis: Dict[str, Any], model_name: str,
                                  model_provider: str, config) -> Dict[str, Any]:
    """
    Ask the LLM for {signal, confidence, reasoning}; neutral/0 if unparseable.
    """
    messages = [
        ChatMessage(role="system", content=SYSTEM_PROMPT),
        ChatMessage(role="user", content=HUMAN_PROMPT.format(
            ticker=ticker,
            analysis_data=json.dumps(analysis, indent=2, default=str),
        )),
    ]

    logger.info(f"[Warren Buffett Agent] ({ticker}) Calling LLM for Buffett analysis...")
    content = await call_llm(messages, model_name, model_provider, config)

    parsed = parse_json_response(content)
    if parsed is None:
        logger.error(f"[Warren Buffett Agent] ({ticker}) Could not parse LLM response, defaulting to neutral")
        return _default_signal()
    return _coerce_signal(parsed)


# ============================================================================
# MAIN NODE
# ============================================================================

async def warren_buffett_agent(state: AgentState, config, cache=None) -> PartialAgentStateUpdate:
    """
    Analyse every ticker with Buffett's principles.

    Args:
        state: Needs data.tickers, data.end_date, metadata.model_name/model_provider
        config: Application Config
        cache: Optional Cache for the market data client

    Returns:
        Update with one assistant message and analyst_signals.warren_buffett_agent
    """
    data = state.data
    end_date = data.get("end_date")
    tickers = data.get("tickers") or []
    model_name = state.metadata.get("model_name")
    model_provider = state.metadata.get("model_provider")

    if not end_date or not tickers:
        logger.error("[Warren Buffett Agent] Missing end_date or tickers in state.data")
        return PartialAgentStateUpdate()
    if not model_name or not model_provider:
        logger.error("[Warren Buffett Agent] Metadata missing model_name or model_provider")
        return PartialAgentStateUpdate()

    api = FinancialDatasetsAPI(config, cache=cache)
    buffett_signals: Dict[str, Dict[str, Any]] = {}

    for ticker in tickers:
        logger.info(f"[Warren Buffett Agent] ({ticker}) Fetching financial metrics")
        metrics = await api.get_financial_metrics(ticker, end_date, period="ttm", limit=5)

        logger.info(f"[Warren Buffett Agent] ({ticker}) Gathering financial line items")
        line_items = await api.search_line_items(ticker, LINE_ITEMS, end_date, period="ttm", limit=5)

        logger.info(f"[Warren Buffett Agent] ({ticker}) Getting market cap")
        market_cap = await api.get_market_cap(ticker, end_date)

        analysis = build_ticker_analysis(metrics, line_items, market_cap)
        logger.info(
            f"[Warren Buffett Agent] ({ticker}) score {analysis['score']}/{analysis['max_score']}, "
            f"rule signal {analysis['signal']}"
        )

        buffett_signals[ticker] = await generate_buffett_output(
            ticker, analysis, model_name, model_provider, config
        )

    message = ChatMessage(role="assistant", content=json.dumps(buffett_signals))

    if state.metadata.get("show_reasoning"):
        show_agent_reasoning(buffett_signals, "Warren Buffett Agent")

    analyst_signals = dict(data.get("analyst_signals") or {})
    analyst_signals[AGENT_ID] = buffett_signals

    logger.info("[Warren Buffett Agent] Analysis complete")
    return (
        PartialAgentStateUpdate()
        .with_messages([message])
        .with_data({"analyst_signals": analyst_signals})
    )
