"""
Shared utilities: configuration, logging, helpers and the analyst registry.
"""
