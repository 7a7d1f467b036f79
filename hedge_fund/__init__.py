"""
AI Hedge Fund

A fixed pipeline of analyst nodes over a shared state, driven by a small
graph execution engine and backed by a per-ticker merge cache for
market data. The final node (portfolio manager) turns the accumulated
analyst signals into trading decisions.
"""

__version__ = "0.1.0"
