"""
LLM model catalogue and provider clients.
"""
