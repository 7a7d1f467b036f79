"""
Analyst Registry
The analysts a run can select, their display names and node functions.
"""

from typing import Any, Callable, Dict, List, Tuple

from hedge_fund.agents.warren_buffett import warren_buffett_agent

# key -> {display_name, agent_func, order}
ANALYST_CONFIG: Dict[str, Dict[str, Any]] = {
    "warren_buffett": {
        "display_name": "Warren Buffett",
        "agent_func": warren_buffett_agent,
        "order": 8,
    },
}


def get_analyst_order() -> List[Tuple[str, str]]:
    """
    Analysts as (display_name, key), sorted by their configured order.

    Example:
        >>> get_analyst_order()
        [('Warren Buffett', 'warren_buffett')]
    """
    ordered = sorted(ANALYST_CONFIG.items(), key=lambda item: item[1]["order"])
    return [(config["display_name"], key) for key, config in ordered]


def get_analyst_nodes() -> Dict[str, Tuple[str, Callable]]:
    """Map analyst key -> (node name, node function)."""
    return {
        key: (f"{key}_agent", config["agent_func"])
        for key, config in ANALYST_CONFIG.items()
    }
