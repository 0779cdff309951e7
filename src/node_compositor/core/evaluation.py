"""
Evaluation Engine - Dependency-ordered graph evaluation.

This module provides the evaluator that runs a compositing graph for a
given time value: it computes a deterministic topological order and
drives each node kind's executor with the values produced upstream in
the same pass.
"""

from __future__ import annotations

import heapq
import logging
import weakref
from dataclasses import dataclass, field
from typing import Any

from node_compositor.core.errors import CycleError, MissingInputError
from node_compositor.core.graph import (
    GraphEvent,
    Node,
    NodeGraph,
    NodeId,
    PortRef,
)


logger = logging.getLogger(__name__)


class _NoOutput:
    """Sentinel type for outputs suppressed by a missing input."""

    _instance: _NoOutput | None = None

    def __new__(cls) -> _NoOutput:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_OUTPUT"

    def __bool__(self) -> bool:
        return False


NO_OUTPUT = _NoOutput()


class EvaluationContext:
    """
    Context passed to node executors during evaluation.

    Provides access to:
    - The time value of the pass
    - Named source frames supplied by the host (read by Input nodes)
    - Publishing of final frames (written by Output nodes)
    """

    def __init__(self, time: float, sources: dict[str, Any] | None = None):
        self.time = float(time)
        self._sources: dict[str, Any] = dict(sources or {})
        self._published: dict[str, Any] = {}
        self.current_node: Node | None = None

    def get_source(self, name: str) -> Any | None:
        """Get a host-supplied source frame by name."""
        return self._sources.get(name)

    def has_source(self, name: str) -> bool:
        return name in self._sources

    def publish(self, target: str, value: Any) -> None:
        """Record a final value under an output target name."""
        self._published[target] = value

    @property
    def published(self) -> dict[str, Any]:
        return dict(self._published)


@dataclass
class EvaluationResult:
    """Outcome of a single evaluation pass."""
    time: float
    order: list[NodeId]
    outputs: dict[NodeId, dict[str, Any]] = field(default_factory=dict)
    missing: dict[NodeId, MissingInputError] = field(default_factory=dict)
    rendered: dict[str, Any] = field(default_factory=dict)

    def value(self, port: PortRef, graph: NodeGraph) -> Any:
        """Value produced on an output port, or NO_OUTPUT."""
        produced = self.outputs.get(port.node_id)
        if produced is NO_OUTPUT or produced is None:
            return NO_OUTPUT
        return produced.get(graph.get_port(port).name, NO_OUTPUT)

    def succeeded(self, node_id: NodeId) -> bool:
        """Check if a node produced outputs in this pass."""
        return node_id in self.outputs and node_id not in self.missing

    @property
    def complete(self) -> bool:
        """True when no node was skipped for a missing input."""
        return not self.missing


class Evaluator:
    """
    Synchronous evaluator for compositing graphs.

    Features:
    - Deterministic topological ordering (Kahn's algorithm, ties broken
      by node insertion order)
    - Per-graph order cache, invalidated by graph change notifications
      and held weakly so dropped graphs are released
    - Missing-input containment: a node with an unconnected required
      input or a skipped upstream node is skipped along with every node
      downstream of it, the rest evaluates
    """

    def __init__(self):
        self._order_cache: weakref.WeakKeyDictionary[NodeGraph, list[NodeId]] = weakref.WeakKeyDictionary()
        self._observed: weakref.WeakSet[NodeGraph] = weakref.WeakSet()

    def execution_order(self, graph: NodeGraph) -> list[NodeId]:
        """
        Get nodes in topological order.

        Nodes with no dependencies come first, followed by nodes that
        depend on them, and so on. Among ready nodes the one added to
        the graph first is taken first.

        Raises:
            CycleError: If the graph contains a cycle. Graph mutations
                reject cycles, so this signals an inconsistent graph.
        """
        cached = self._order_cache.get(graph)
        if cached is not None:
            return list(cached)

        order = self._topological_order(graph)

        if graph not in self._observed:
            graph.add_observer(self._on_graph_changed)
            self._observed.add(graph)
        self._order_cache[graph] = order
        return list(order)

    def invalidate(self, graph: NodeGraph | None = None) -> None:
        """Drop cached orders (for one graph or all)."""
        if graph is None:
            self._order_cache.clear()
        else:
            self._order_cache.pop(graph, None)

    def detach(self, graph: NodeGraph) -> None:
        """Stop observing a graph and forget its cached order."""
        if graph in self._observed:
            graph.remove_observer(self._on_graph_changed)
            self._observed.discard(graph)
        self._order_cache.pop(graph, None)

    def is_cached(self, graph: NodeGraph) -> bool:
        return graph in self._order_cache

    def _on_graph_changed(self, graph: NodeGraph, event: GraphEvent) -> None:
        self._order_cache.pop(graph, None)

    def _topological_order(self, graph: NodeGraph) -> list[NodeId]:
        nodes = graph.nodes
        rank = {node_id: i for i, node_id in enumerate(nodes)}
        pending: dict[NodeId, int] = {node_id: 0 for node_id in nodes}
        dependents: dict[NodeId, list[NodeId]] = {node_id: [] for node_id in nodes}

        for conn in graph.connections:
            pending[conn.target.node_id] += 1
            dependents[conn.source.node_id].append(conn.target.node_id)

        ready = [(rank[nid], nid) for nid, count in pending.items() if count == 0]
        heapq.heapify(ready)

        result: list[NodeId] = []
        while ready:
            _, node_id = heapq.heappop(ready)
            result.append(node_id)
            for dependent in dependents[node_id]:
                pending[dependent] -= 1
                if pending[dependent] == 0:
                    heapq.heappush(ready, (rank[dependent], dependent))

        if len(result) != len(nodes):
            raise CycleError("Graph contains a cycle")

        return result

    def evaluate(
        self,
        graph: NodeGraph,
        time: float,
        sources: dict[str, Any] | None = None,
    ) -> EvaluationResult:
        """
        Run a full evaluation pass.

        Args:
            graph: The graph to evaluate
            time: Time value of this pass (non-monotonic values are seeks)
            sources: Named source frames for Input nodes

        Returns:
            EvaluationResult with per-node outputs. Nodes skipped for a
            missing input map to NO_OUTPUT and appear in `missing`.

        Raises:
            CycleError: If the graph is inconsistent.
            Exception: Anything other than MissingInputError raised by
                an executor aborts the pass.
        """
        order = self.execution_order(graph)
        context = EvaluationContext(time, sources)
        result = EvaluationResult(time=context.time, order=order)

        for node_id in order:
            node = graph.get_node(node_id)
            context.current_node = node
            try:
                result.outputs[node_id] = self._evaluate_node(graph, node, result, context)
            except MissingInputError as e:
                logger.info("Skipping node %s: %s", node.name, e)
                result.outputs[node_id] = NO_OUTPUT
                result.missing[node_id] = e
            except Exception as e:
                logger.warning("Evaluation aborted at node %s: %s", node.name, e)
                raise

        context.current_node = None
        result.rendered = context.published
        return result

    def _evaluate_node(
        self,
        graph: NodeGraph,
        node: Node,
        result: EvaluationResult,
        context: EvaluationContext,
    ) -> dict[str, Any]:
        """Evaluate a single node."""
        node_type = node.kind

        # Gather inputs from connected nodes
        inputs: dict[str, Any] = {}
        for port in node.inputs:
            definition = node_type.get_input(port.name)
            conn = graph.get_input_connection(port.ref)

            if conn is None:
                if definition.required:
                    raise MissingInputError(node.id, port.name, "not connected")
                value = definition.default_value
            else:
                value = result.value(conn.source, graph)
                # Optional or not, a skipped upstream node skips this one too
                if value is NO_OUTPUT:
                    raise MissingInputError(node.id, port.name, "missing upstream output")

            inputs[port.name] = value

        if node_type.executor is None:
            return {out.name: None for out in node.outputs}

        produced = node_type.executor(inputs, dict(node.parameters), context) or {}
        return {out.name: produced.get(out.name) for out in node.outputs}
