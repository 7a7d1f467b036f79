"""
Agent Nodes - analyst, risk and portfolio steps of the hedge fund pipeline.

Each node is an async callable taking (AgentState, Config) and returning a
PartialAgentStateUpdate. Nodes never mutate the state they receive.
"""
