"""
Tests for AgentState, PartialAgentStateUpdate and the state helpers
"""

import logging

from hedge_fund.graph.state import (
    INITIAL_INSTRUCTION,
    AgentState,
    PartialAgentStateUpdate,
    create_initial_state,
    show_agent_reasoning,
    validate_state,
)
from hedge_fund.llm.model_provider import ChatMessage


class TestPartialAgentStateUpdate:

    def test_new_update_is_empty(self):
        assert PartialAgentStateUpdate().is_empty()

    def test_builders_chain_and_copy_input(self):
        data = {"k": 1}
        update = PartialAgentStateUpdate().with_data(data).with_metadata({"m": True})
        data["k"] = 2

        assert update.data == {"k": 1}
        assert update.metadata == {"m": True}
        assert update.messages is None
        assert not update.is_empty()

    def test_empty_collections_are_not_none(self):
        update = PartialAgentStateUpdate().with_data({})
        assert update.data == {}
        assert not update.is_empty()


class TestAgentStateMerge:

    def test_none_parts_leave_state_untouched(self):
        state = AgentState(
            messages=[ChatMessage(role="user", content="hi")],
            data={"k": 1},
            metadata={"m": 1},
        )
        state.update_from_partial(PartialAgentStateUpdate())

        assert len(state.messages) == 1
        assert state.data == {"k": 1}
        assert state.metadata == {"m": 1}

    def test_nested_dict_replaced_wholesale(self):
        state = AgentState(data={"analyst_signals": {"a": {"AAPL": 1}}})
        state.update_from_partial(
            PartialAgentStateUpdate().with_data({"analyst_signals": {"b": {"AAPL": 2}}})
        )

        assert state.data["analyst_signals"] == {"b": {"AAPL": 2}}

    def test_messages_appended(self):
        state = AgentState()
        state.update_from_partial(PartialAgentStateUpdate().with_messages([
            ChatMessage(role="assistant", content="one"),
            ChatMessage(role="assistant", content="two"),
        ]))

        assert [m.content for m in state.messages] == ["one", "two"]
        assert state.last_message.content == "two"

    def test_last_message_none_when_empty(self):
        assert AgentState().last_message is None


class TestCreateInitialState:

    def test_initial_state_contents(self):
        portfolio = {"cash": 1000.0}
        state = create_initial_state(
            tickers=["AAPL", "MSFT"],
            portfolio=portfolio,
            start_date="2024-01-01",
            end_date="2024-03-01",
            show_reasoning=True,
            model_name="llama-3.3-70b-versatile",
            model_provider="Groq",
        )

        assert len(state.messages) == 1
        assert state.messages[0].role == "user"
        assert state.messages[0].content == INITIAL_INSTRUCTION
        assert state.data == {
            "tickers": ["AAPL", "MSFT"],
            "portfolio": portfolio,
            "start_date": "2024-01-01",
            "end_date": "2024-03-01",
            "analyst_signals": {},
        }
        assert state.metadata == {
            "show_reasoning": True,
            "model_name": "llama-3.3-70b-versatile",
            "model_provider": "Groq",
        }
        assert validate_state(state)

    def test_validate_state_missing_fields(self):
        assert not validate_state(AgentState(data={"tickers": ["AAPL"]}))

    def test_validate_state_empty_tickers(self):
        state = create_initial_state([], {"cash": 1000.0}, "2024-01-01", "2024-03-01")
        assert not validate_state(state)


class TestShowAgentReasoning:

    def test_logs_pretty_json_from_string(self, caplog):
        with caplog.at_level(logging.INFO, logger="hedge_fund.graph.state"):
            show_agent_reasoning('{"AAPL": {"signal": "bullish"}}', "Warren Buffett Agent")

        assert "Warren Buffett Agent" in caplog.text
        assert '"signal": "bullish"' in caplog.text

    def test_logs_plain_text(self, caplog):
        with caplog.at_level(logging.INFO, logger="hedge_fund.graph.state"):
            show_agent_reasoning("not json at all", "Risk Management Agent")

        assert "not json at all" in caplog.text
