"""
Agent State Definition
Shared state threaded through every node of the hedge fund pipeline.

The state has three parts:
- messages: ordered chat messages, append-only across a run
- data:     analysis inputs and outputs (tickers, portfolio, analyst_signals, ...)
- metadata: run options (show_reasoning, model_name, model_provider)

Nodes never mutate the state directly. They return a PartialAgentStateUpdate
which the engine merges: messages are appended in order, data and metadata
are merged key by key with last-write-wins.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from hedge_fund.llm.model_provider import ChatMessage

logger = logging.getLogger(__name__)


@dataclass
class PartialAgentStateUpdate:
    """
    Declared side effect of one node's execution.

    Every part is optional; None means "leave that part of the state alone".

    Example:
        >>> update = PartialAgentStateUpdate().with_data({'k': 1})
        >>> update.data
        {'k': 1}
    """

    messages: Optional[List[ChatMessage]] = None
    data: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None

    def with_messages(self, messages: List[ChatMessage]) -> "PartialAgentStateUpdate":
        self.messages = list(messages)
        return self

    def with_data(self, data: Dict[str, Any]) -> "PartialAgentStateUpdate":
        self.data = dict(data)
        return self

    def with_metadata(self, metadata: Dict[str, Any]) -> "PartialAgentStateUpdate":
        self.metadata = dict(metadata)
        return self

    def is_empty(self) -> bool:
        return self.messages is None and self.data is None and self.metadata is None


@dataclass
class AgentState:
    """State value owned by exactly one graph invocation."""

    messages: List[ChatMessage] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def add_message(self, message: ChatMessage) -> None:
        self.messages.append(message)

    def add_messages(self, messages: List[ChatMessage]) -> None:
        self.messages.extend(messages)

    def merge_data(self, data: Dict[str, Any]) -> None:
        # Plain key overwrite: a later node writing the same key replaces the
        # earlier value wholesale, nested dicts included.
        self.data.update(data)

    def merge_metadata(self, metadata: Dict[str, Any]) -> None:
        self.metadata.update(metadata)

    def update_from_partial(self, update: PartialAgentStateUpdate) -> None:
        """
        Merge one node's update into this state.

        Args:
            update: The node's declared side effect
        """
        if update.messages is not None:
            self.add_messages(update.messages)
            logger.debug(f"Appended {len(update.messages)} message(s) to state")

        if update.data is not None:
            self.merge_data(update.data)
            logger.debug(f"Merged data keys: {sorted(update.data)}")

        if update.metadata is not None:
            self.merge_metadata(update.metadata)
            logger.debug(f"Merged metadata keys: {sorted(update.metadata)}")

    @property
    def last_message(self) -> Optional[ChatMessage]:
        return self.messages[-1] if self.messages else None


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

INITIAL_INSTRUCTION = "Make trading decisions based on the provided data."


def create_initial_state(
    tickers: List[str],
    portfolio: Dict[str, Any],
    start_date: str,
    end_date: str,
    show_reasoning: bool = False,
    model_name: str = "gpt-4o",
    model_provider: str = "OpenAI",
) -> AgentState:
    """
    Create the initial state for one hedge fund run.

    Args:
        tickers: Ticker symbols to analyse (e.g., ['AAPL', 'MSFT'])
        portfolio: Cash, margin and per-ticker positions
        start_date: Analysis window start, 'YYYY-MM-DD'
        end_date: Analysis window end, 'YYYY-MM-DD'
        show_reasoning: Log each agent's reasoning as it runs
        model_name: LLM model identifier
        model_provider: LLM provider name

    Returns:
        Fresh AgentState with the user instruction, data and metadata set

    Example:
        >>> state = create_initial_state(['AAPL'], {'cash': 1000.0}, '2024-01-01', '2024-03-01')
        >>> state.data['tickers']
        ['AAPL']
    """
    state = AgentState()
    state.add_message(ChatMessage(role="user", content=INITIAL_INSTRUCTION))
    state.merge_data({
        "tickers": list(tickers),
        "portfolio": portfolio,
        "start_date": start_date,
        "end_date": end_date,
        "analyst_signals": {},
    })
    state.merge_metadata({
        "show_reasoning": show_reasoning,
        "model_name": model_name,
        "model_provider": model_provider,
    })
    return state


def validate_state(state: AgentState) -> bool:
    """
    Validate that state has the minimum data every node expects.

    Each required field must be present and non-empty.

    Args:
        state: State to validate

    Returns:
        True if valid, False otherwise
    """
    required_fields = ['tickers', 'portfolio', 'start_date', 'end_date']
    return all(state.data.get(key) for key in required_fields)


def show_agent_reasoning(output: Any, agent_name: str) -> None:
    """
    Log an agent's reasoning inside a banner, pretty-printing JSON when possible.

    Args:
        output: JSON string, dict/list, or free text
        agent_name: Display name used in the banner
    """
    logger.info(f"\n{'=' * 10} {agent_name:^28} {'=' * 10}")

    if isinstance(output, str):
        try:
            parsed = json.loads(output)
            logger.info(json.dumps(parsed, indent=2))
        except json.JSONDecodeError:
            logger.info(output)
    else:
        try:
            logger.info(json.dumps(output, indent=2, default=str))
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to serialize reasoning for '{agent_name}': {e}")
            logger.info(repr(output))

    logger.info("=" * 48)
