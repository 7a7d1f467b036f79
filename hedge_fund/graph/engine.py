"""
Graph Execution Engine
Builds, validates and runs a linear pipeline of named async nodes over AgentState.

Usage:
    graph = StateGraph()
    graph.add_node("fetch", fetch_node)
    graph.add_node("decide", decide_node)
    graph.add_edge("fetch", "decide")
    graph.add_edge("decide", END)
    graph.set_entry_point("fetch")
    app = graph.compile()

    final_state = await app.invoke(initial_state, config)

Routing is static: each node follows the first edge registered for it.
Extra successors are accepted by add_edge but never taken.
"""

import copy
import inspect
import logging
import time
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from hedge_fund.graph.errors import (
    ConfigurationError,
    CycleDetectedError,
    DeadEndError,
    NodeExecutionError,
    StateCopyError,
    UnknownNodeError,
)
from hedge_fund.graph.state import AgentState, PartialAgentStateUpdate

logger = logging.getLogger(__name__)

END = "END"

NodeResult = Union[PartialAgentStateUpdate, Awaitable[PartialAgentStateUpdate]]
NodeFunction = Callable[[AgentState, Any], NodeResult]


# ============================================================================
# BUILDER
# ============================================================================

class StateGraph:
    """Mutable graph definition. Consumed by compile()."""

    def __init__(self):
        self._nodes: Dict[str, NodeFunction] = {}
        self._edges: Dict[str, List[str]] = {}
        self._entry: Optional[str] = None
        self._compiled = False

    def _ensure_open(self) -> None:
        if self._compiled:
            raise ConfigurationError("Graph has already been compiled")

    def add_node(self, name: str, fn: NodeFunction) -> "StateGraph":
        """
        Register a node under a unique name. Re-registering replaces the binding.

        Args:
            name: Node name, must not be END
            fn: Callable taking (state, config) and returning a PartialAgentStateUpdate
                (directly or as an awaitable)

        Returns:
            self, for chaining
        """
        self._ensure_open()
        if name == END:
            raise ConfigurationError(f"'{END}' is reserved and cannot be registered as a node")
        if not callable(fn):
            raise ConfigurationError(f"Node '{name}' must be callable")
        if name in self._nodes:
            logger.warning(f"Node '{name}' re-registered; previous binding replaced")
        self._nodes[name] = fn
        return self

    register_node = add_node

    def add_edge(self, from_node: str, to_node: str) -> "StateGraph":
        self._ensure_open()
        if from_node == END:
            raise ConfigurationError(f"'{END}' cannot have outgoing edges")
        self._edges.setdefault(from_node, []).append(to_node)
        return self

    def set_entry_point(self, name: str) -> "StateGraph":
        self._ensure_open()
        if name == END:
            raise ConfigurationError(f"'{END}' cannot be the entry point")
        self._entry = name
        return self

    set_entry = set_entry_point

    def compile(self) -> "CompiledGraph":
        """
        Validate the definition and freeze it.

        Raises:
            ConfigurationError: No entry point, or the builder was already compiled
            UnknownNodeError: Entry point or an edge endpoint is not a registered node

        Returns:
            CompiledGraph ready to invoke
        """
        self._ensure_open()

        if self._entry is None:
            raise ConfigurationError("No entry point set")
        if self._entry not in self._nodes:
            raise UnknownNodeError(self._entry, f"Entry point '{self._entry}' is not a registered node")

        for source, targets in self._edges.items():
            if source not in self._nodes:
                raise UnknownNodeError(source, f"Edge source '{source}' is not a registered node")
            for target in targets:
                if target != END and target not in self._nodes:
                    raise UnknownNodeError(target, f"Edge target '{target}' (from '{source}') is not a registered node")

        self._compiled = True
        compiled = CompiledGraph(
            nodes=dict(self._nodes),
            edges={source: tuple(targets) for source, targets in self._edges.items()},
            entry=self._entry,
        )
        logger.info(f"Compiled graph: {len(self._nodes)} nodes, entry '{self._entry}'")
        return compiled


# ============================================================================
# COMPILED GRAPH / EXECUTOR
# ============================================================================

class CompiledGraph:
    """Immutable, reusable graph. invoke() may run concurrently."""

    def __init__(self, nodes: Dict[str, NodeFunction], edges: Dict[str, Tuple[str, ...]], entry: str):
        self._nodes = MappingProxyType(nodes)
        self._edges = MappingProxyType(edges)
        self._entry = entry

    @property
    def entry(self) -> str:
        return self._entry

    @property
    def nodes(self) -> Tuple[str, ...]:
        return tuple(self._nodes)

    def successors(self, name: str) -> Tuple[str, ...]:
        return self._edges.get(name, ())

    @staticmethod
    def _snapshot(value, owner: Optional[str]):
        """Deep copy value; owner is the node that produced it (None for the initial state)."""
        try:
            return copy.deepcopy(value)
        except Exception as e:
            raise StateCopyError(owner, f"{type(e).__name__}: {e}") from e

    async def _run_node(self, name: str, state: AgentState, config: Any) -> PartialAgentStateUpdate:
        fn = self._nodes[name]
        node_state = self._snapshot(state, name)
        try:
            result = fn(node_state, config)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            raise NodeExecutionError(name, f"{type(e).__name__}: {e}") from e

        if not isinstance(result, PartialAgentStateUpdate):
            cause = TypeError(
                f"expected PartialAgentStateUpdate, got {type(result).__name__}"
            )
            raise NodeExecutionError(name, str(cause)) from cause

        # Copied here so an uncopyable value is blamed on the node that wrote it
        return self._snapshot(result, name)

    async def invoke(self, initial_state: AgentState, config: Any = None) -> AgentState:
        """
        Run the pipeline from the entry node until END.

        Args:
            initial_state: Starting state; never mutated
            config: Opaque value handed to every node unchanged

        Returns:
            Final accumulated AgentState

        Raises:
            CycleDetectedError: A node would run twice
            UnknownNodeError: A routed name has no registered node
            NodeExecutionError: A node raised or returned a non-update
            DeadEndError: A non-END node has no outgoing edge
            StateCopyError: The initial state or a node's update cannot be deep-copied
        """
        state = self._snapshot(initial_state, None)
        current = self._entry
        visited = set()
        path: List[str] = []
        run_start = time.perf_counter()

        while current != END:
            if current in visited:
                logger.error(f"Cycle detected at '{current}' after path {' -> '.join(path)}")
                raise CycleDetectedError(current)
            visited.add(current)
            path.append(current)

            if current not in self._nodes:
                raise UnknownNodeError(current)

            logger.info(f"Running node '{current}'")
            node_start = time.perf_counter()
            update = await self._run_node(current, state, config)
            logger.info(f"Node '{current}' finished in {time.perf_counter() - node_start:.2f}s")

            state.update_from_partial(update)

            successors = self._edges.get(current)
            if not successors:
                raise DeadEndError(current)
            current = successors[0]

        logger.info(
            f"Graph finished in {time.perf_counter() - run_start:.2f}s: "
            f"{' -> '.join(path + [END])}"
        )
        return state
