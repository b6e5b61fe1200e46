# src/stagecraft/engine/ordering.py
"""Deterministic execution ordering (Kahn's algorithm).

Ties are broken by node creation order, never by id or label, so the same
graph always yields the same order. Nodes that the queue never reaches
(members of a cycle and everything downstream of one) are reported in
ExecutionOrder.unreachable instead of being silently dropped.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

import networkx as nx

from stagecraft.contracts import CycleDetectedError, NodeID
from stagecraft.core.dag import GraphSnapshot, GraphStore


@dataclass(frozen=True, slots=True)
class ExecutionOrder:
    """Result of ordering a graph.

    Attributes:
        nodes: Executable node ids; every node appears after its upstream node
        unreachable: Node ids left out because of a cycle, in creation order
        cycles: Simple cycles among the unreachable nodes
    """

    nodes: tuple[NodeID, ...]
    unreachable: tuple[NodeID, ...] = ()
    cycles: tuple[tuple[NodeID, ...], ...] = ()

    @property
    def is_complete(self) -> bool:
        return not self.unreachable

    def cycle_error(self) -> CycleDetectedError | None:
        """The error describing unreachable nodes, or None when complete."""
        if self.is_complete:
            return None
        return CycleDetectedError(self.unreachable, self.cycles)


def topological_order(graph: GraphStore | GraphSnapshot) -> ExecutionOrder:
    """Order nodes so each runs after its upstream node.

    1. Count incoming connections for every node.
    2. Queue all nodes without one, in creation order.
    3. Pop the head, emit it, and for each outgoing connection (creation
       order) decrement the target's count; enqueue the target at zero.
    """
    nodes = graph.nodes
    indegree: dict[NodeID, int] = {node.node_id: 0 for node in nodes}
    for conn in graph.connections:
        indegree[conn.to_id] += 1

    queue: deque[NodeID] = deque(node.node_id for node in nodes if indegree[node.node_id] == 0)
    ordered: list[NodeID] = []

    while queue:
        node_id = queue.popleft()
        ordered.append(node_id)
        for conn in graph.outgoing_edges(node_id):
            indegree[conn.to_id] -= 1
            if indegree[conn.to_id] == 0:
                queue.append(conn.to_id)

    if len(ordered) == len(nodes):
        return ExecutionOrder(nodes=tuple(ordered))

    reached = set(ordered)
    unreachable = tuple(node.node_id for node in nodes if node.node_id not in reached)
    return ExecutionOrder(
        nodes=tuple(ordered),
        unreachable=unreachable,
        cycles=_find_cycles(graph, unreachable),
    )


def _find_cycles(graph: GraphStore | GraphSnapshot, node_ids: tuple[NodeID, ...]) -> tuple[tuple[NodeID, ...], ...]:
    digraph: nx.DiGraph[str] = nx.DiGraph()
    digraph.add_nodes_from(node_ids)
    members = set(node_ids)
    digraph.add_edges_from(
        (conn.from_id, conn.to_id) for conn in graph.connections if conn.from_id in members and conn.to_id in members
    )
    # Rotate each cycle to start at its oldest node and sort, so reports are stable
    rank = {node_id: i for i, node_id in enumerate(node_ids)}
    cycles: list[tuple[NodeID, ...]] = []
    for cycle in nx.simple_cycles(digraph):
        start = min(range(len(cycle)), key=lambda i: rank[cycle[i]])
        cycles.append(tuple(NodeID(n) for n in cycle[start:] + cycle[:start]))
    return tuple(sorted(cycles, key=lambda c: [rank[n] for n in c]))
