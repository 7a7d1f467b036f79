"""
Tests for the hedge fund workflow builder
"""

import asyncio

from hedge_fund.graph.engine import END
from hedge_fund.graph.state import AgentState
from hedge_fund.graph.workflow import (
    PORTFOLIO_NODE,
    RISK_NODE,
    START_NODE,
    _resolve_analysts,
    create_workflow,
    start_node,
)
from hedge_fund.utils.analysts import get_analyst_nodes, get_analyst_order


def _walk(app):
    """Follow first successors from the entry point to END."""
    path = [app.entry]
    while path[-1] != END:
        path.append(app.successors(path[-1])[0])
    return path


class TestAnalystRegistry:

    def test_analyst_order(self):
        assert get_analyst_order() == [("Warren Buffett", "warren_buffett")]

    def test_analyst_nodes(self):
        nodes = get_analyst_nodes()
        node_name, fn = nodes["warren_buffett"]
        assert node_name == "warren_buffett_agent"
        assert callable(fn)


class TestResolveAnalysts:

    def test_none_selects_all(self):
        assert _resolve_analysts(None) == ["warren_buffett"]

    def test_empty_selects_all(self):
        assert _resolve_analysts([]) == ["warren_buffett"]

    def test_unknown_skipped(self):
        assert _resolve_analysts(["nobody", "warren_buffett"]) == ["warren_buffett"]

    def test_only_unknown_yields_no_analysts(self):
        assert _resolve_analysts(["nobody"]) == []

    def test_duplicates_collapsed(self):
        assert _resolve_analysts(["warren_buffett", "warren_buffett"]) == ["warren_buffett"]


class TestCreateWorkflow:

    def test_full_pipeline_order(self):
        app = create_workflow().compile()

        assert _walk(app) == [
            START_NODE,
            "warren_buffett_agent",
            RISK_NODE,
            PORTFOLIO_NODE,
            END,
        ]

    def test_no_known_analysts_goes_straight_to_risk(self):
        app = create_workflow(["nobody"]).compile()

        assert _walk(app) == [START_NODE, RISK_NODE, PORTFOLIO_NODE, END]

    def test_each_call_returns_fresh_builder(self):
        first = create_workflow()
        second = create_workflow()
        first.compile()

        # second builder is still open
        assert second.compile().entry == START_NODE

    def test_start_node_changes_nothing(self):
        update = asyncio.run(start_node(AgentState(), None))
        assert update.is_empty()
