"""
Service layer between the HTTP transport and the graph engine.
"""
