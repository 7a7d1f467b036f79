"""
Agent Service
Compiles the hedge fund workflow and runs it for one request.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from hedge_fund.data.cache import Cache
from hedge_fund.graph.engine import CompiledGraph
from hedge_fund.graph.state import create_initial_state, validate_state
from hedge_fund.graph.workflow import create_workflow
from hedge_fund.utils.config import Config

logger = logging.getLogger(__name__)

DEFAULT_MODEL_NAME = "gpt-4o"
DEFAULT_MODEL_PROVIDER = "OpenAI"


class HedgeFundResponseError(Exception):
    """The run finished but its final message is not a decisions JSON object."""


class AgentService:
    """
    Runs the hedge fund graph.

    The all-analysts graph is compiled once and reused; a request selecting
    specific analysts gets its own graph compiled for that run.
    """

    def __init__(self, config: Config, cache: Optional[Cache] = None):
        self.config = config
        self.cache = cache
        self.default_agent: CompiledGraph = create_workflow(None, cache=cache).compile()

    def _agent_for(self, selected_analysts: Optional[List[str]]) -> CompiledGraph:
        if not selected_analysts:
            return self.default_agent
        return create_workflow(selected_analysts, cache=self.cache).compile()

    async def run_hedge_fund(
        self,
        tickers: List[str],
        start_date: str,
        end_date: str,
        portfolio: Dict[str, Any],
        show_reasoning: bool = False,
        selected_analysts: Optional[List[str]] = None,
        model_name: str = DEFAULT_MODEL_NAME,
        model_provider: str = DEFAULT_MODEL_PROVIDER,
    ) -> Dict[str, Any]:
        """
        Run the full pipeline for a set of tickers.

        Args:
            tickers: Ticker symbols
            start_date: Window start, 'YYYY-MM-DD'
            end_date: Window end, 'YYYY-MM-DD'
            portfolio: Cash, margin and positions
            show_reasoning: Log each agent's reasoning
            selected_analysts: Analyst keys; all analysts when None or empty
            model_name: LLM model name
            model_provider: LLM provider name

        Returns:
            {'decisions': {...}, 'analyst_signals': {...}}

        Raises:
            GraphError: Any engine failure (node errors carry the node name)
            ValueError: Tickers, portfolio or dates are empty
            HedgeFundResponseError: Final message missing or not a JSON object
        """
        agent = self._agent_for(selected_analysts)
        initial_state = create_initial_state(
            tickers=tickers,
            portfolio=portfolio,
            start_date=start_date,
            end_date=end_date,
            show_reasoning=show_reasoning,
            model_name=model_name or DEFAULT_MODEL_NAME,
            model_provider=model_provider or DEFAULT_MODEL_PROVIDER,
        )
        if not validate_state(initial_state):
            raise ValueError("A run needs tickers, a portfolio, start_date and end_date")

        logger.info(f"Running hedge fund for {', '.join(tickers)} ({start_date} to {end_date})")
        final_state = await agent.invoke(initial_state, self.config)

        last_message = final_state.last_message
        if last_message is None:
            raise HedgeFundResponseError("Hedge fund run produced no messages")

        try:
            decisions = json.loads(last_message.content)
        except json.JSONDecodeError as e:
            raise HedgeFundResponseError(f"Failed to parse final decisions: {e}") from e

        if not isinstance(decisions, dict):
            raise HedgeFundResponseError("Final decisions are not a JSON object")

        return {
            "decisions": decisions,
            "analyst_signals": final_state.data.get("analyst_signals", {}),
        }
