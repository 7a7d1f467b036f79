"""
Hedge Fund Workflow Builder

Assembles the fixed pipeline:

    start_node
      ↓
    selected analysts (in registry order)
      ↓
    risk_management_agent
      ↓
    portfolio_manager
      ↓
    END
"""

import functools
import logging
from typing import List, Optional

from hedge_fund.agents.portfolio_manager import portfolio_management_agent
from hedge_fund.agents.risk_manager import risk_management_agent
from hedge_fund.data.cache import Cache
from hedge_fund.graph.engine import END, StateGraph
from hedge_fund.graph.state import AgentState, PartialAgentStateUpdate
from hedge_fund.utils.analysts import get_analyst_nodes, get_analyst_order

logger = logging.getLogger(__name__)

START_NODE = "start_node"
RISK_NODE = "risk_management_agent"
PORTFOLIO_NODE = "portfolio_manager"


async def start_node(state: AgentState, config) -> PartialAgentStateUpdate:
    """Entry node; changes nothing."""
    return PartialAgentStateUpdate()


def _resolve_analysts(selected_analysts: Optional[List[str]]) -> List[str]:
    available = [key for _, key in get_analyst_order()]
    if not selected_analysts:
        return available

    resolved = []
    for key in selected_analysts:
        if key not in available:
            logger.warning(f"Unknown analyst '{key}' skipped")
            continue
        if key not in resolved:
            resolved.append(key)
    # Registry order, not request order
    return [key for key in available if key in resolved]


def create_workflow(selected_analysts: Optional[List[str]] = None,
                    cache: Optional[Cache] = None) -> StateGraph:
    """
    Build the hedge fund workflow (not yet compiled).

    Args:
        selected_analysts: Analyst keys to include; all analysts when None or empty
        cache: Cache handed to nodes that fetch market data (process-wide by default)

    Returns:
        StateGraph ready for compile()

    Example:
        >>> app = create_workflow(['warren_buffett']).compile()
        >>> final_state = await app.invoke(initial_state, config)
    """
    workflow = StateGraph()
    workflow.add_node(START_NODE, start_node)

    analyst_nodes = get_analyst_nodes()
    analysts = _resolve_analysts(selected_analysts)
    logger.info(f"Building workflow with analysts: {analysts or 'none'}")

    previous = START_NODE
    for key in analysts:
        node_name, node_func = analyst_nodes[key]
        workflow.add_node(node_name, functools.partial(node_func, cache=cache))
        workflow.add_edge(previous, node_name)
        previous = node_name

    workflow.add_node(RISK_NODE, functools.partial(risk_management_agent, cache=cache))
    workflow.add_node(PORTFOLIO_NODE, portfolio_management_agent)

    workflow.add_edge(previous, RISK_NODE)
    workflow.add_edge(RISK_NODE, PORTFOLIO_NODE)
    workflow.add_edge(PORTFOLIO_NODE, END)

    workflow.set_entry_point(START_NODE)
    return workflow
