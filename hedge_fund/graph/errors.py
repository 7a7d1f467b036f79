"""
Graph Engine Errors
Every failure the engine can raise, rooted at GraphError.
"""

from typing import Optional


class GraphError(Exception):
    """Base class for all graph engine failures."""


class ConfigurationError(GraphError):
    """The graph definition is unusable (no entry point, END misuse, builder reused)."""


class UnknownNodeError(ConfigurationError):
    def __init__(self, node: str, message: Optional[str] = None):
        self.node = node
        super().__init__(message or f"Unknown node: '{node}'")


class GraphStructureError(GraphError):
    """The walk hit a structural problem at run time."""

    def __init__(self, node: str, message: str):
        self.node = node
        super().__init__(message)


class DeadEndError(GraphStructureError):
    def __init__(self, node: str):
        super().__init__(node, f"Node '{node}' has no outgoing edge and is not END")


class CycleDetectedError(GraphStructureError):
    def __init__(self, node: str):
        super().__init__(node, f"Cycle detected: node '{node}' was already visited")


class NodeExecutionError(GraphError):
    """
    A node raised (or returned something other than a partial update).

    The original exception is available as __cause__.
    """

    def __init__(self, node: str, reason: str):
        self.node = node
        self.reason = reason
        super().__init__(f"Node '{node}' failed: {reason}")


class StateCopyError(GraphError):
    """
    State could not be snapshotted for a node.

    node names the node whose update introduced the value, or None when the
    initial state itself cannot be copied. The original exception is
    available as __cause__.
    """

    def __init__(self, node: Optional[str], reason: str):
        self.node = node
        self.reason = reason
        where = f"update from node '{node}'" if node is not None else "initial state"
        super().__init__(f"Cannot copy {where}: {reason}")
