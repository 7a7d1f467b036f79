"""
Graph Engine - state, builder, compiled graph and the hedge fund workflow.
"""
