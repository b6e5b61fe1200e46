# src/stagecraft/core/dag/graph.py
"""GraphStore: the only owner of pipeline nodes and connections.

Wraps a NetworkX DiGraph with the pipeline's structural rules:

- no self-loops, no duplicate (from, to) pairs
- sources accept no input, destinations produce no output
- every node has at most one incoming connection; connecting into a node
  that already has one replaces it (replace-on-connect)
- removing a node removes every connection touching it

Structural rejections are not errors: connect() returns None and the
graph is left unchanged.
"""

from __future__ import annotations

import itertools
import uuid
from collections.abc import Callable
from dataclasses import dataclass

import networkx as nx
from networkx import DiGraph

from stagecraft.contracts import NodeID, NodeNotFoundError, UnknownConfigKeyError
from stagecraft.core.catalog import StageDefinition
from stagecraft.core.dag.models import Connection, Node, Position
from stagecraft.core.logging import get_logger

logger = get_logger(__name__)


def _default_node_id() -> NodeID:
    return NodeID(f"node-{uuid.uuid4().hex[:12]}")


def _incoming(graph: DiGraph[str], node_id: str) -> Connection | None:
    for from_id in graph.predecessors(node_id):
        # At most one predecessor by construction
        conn: Connection = graph.edges[from_id, node_id]["conn"]
        return conn
    return None


def _outgoing(graph: DiGraph[str], node_id: str) -> list[Connection]:
    conns: list[Connection] = [data["conn"] for _, _, data in graph.out_edges(node_id, data=True)]
    return sorted(conns, key=lambda c: c.seq)


def _all_connections(graph: DiGraph[str]) -> list[Connection]:
    conns: list[Connection] = [data["conn"] for _, _, data in graph.edges(data=True)]
    return sorted(conns, key=lambda c: c.seq)


class GraphStore:
    """Mutable pipeline graph.

    Nodes are kept in creation order (NetworkX preserves node insertion
    order), which is the tie-breaker the execution ordering relies on.
    """

    def __init__(self, *, id_factory: Callable[[], str] | None = None) -> None:
        self._graph: DiGraph[str] = nx.DiGraph()
        self._id_factory = id_factory or _default_node_id
        self._seq = itertools.count(1)

    @property
    def node_count(self) -> int:
        return self._graph.number_of_nodes()

    @property
    def edge_count(self) -> int:
        return self._graph.number_of_edges()

    @property
    def nodes(self) -> list[Node]:
        """All nodes in creation order."""
        return [data["info"] for _, data in self._graph.nodes(data=True)]

    @property
    def connections(self) -> list[Connection]:
        """All connections in creation order."""
        return _all_connections(self._graph)

    def has_node(self, node_id: str) -> bool:
        return self._graph.has_node(node_id)

    def get_node(self, node_id: str) -> Node:
        """Get a node by id.

        Raises:
            NodeNotFoundError: If the node does not exist
        """
        if not self._graph.has_node(node_id):
            raise NodeNotFoundError(node_id)
        node: Node = self._graph.nodes[node_id]["info"]
        return node

    # === Mutation ===

    def add_node(self, definition: StageDefinition) -> Node:
        """Create a node from a stage definition.

        The config template is cloned, so editing the node never touches
        the catalog.
        """
        node_id = NodeID(self._id_factory())
        if self._graph.has_node(node_id):
            raise ValueError(f"id factory produced a duplicate node id: {node_id!r}")
        node = Node(
            node_id=node_id,
            stage_kind=definition.kind,
            label=definition.label,
            description=definition.description,
            config=dict(definition.config),
            position=Position.for_index(self.node_count),
        )
        self._graph.add_node(node_id, info=node)
        logger.debug("node_added", node_id=node_id, stage_kind=node.stage_kind)
        return node

    def remove_node(self, node_id: str) -> None:
        """Remove a node and every connection touching it. Unknown ids are ignored."""
        if not self._graph.has_node(node_id):
            return
        self.disconnect_all_for(node_id)
        self._graph.remove_node(node_id)
        logger.debug("node_removed", node_id=node_id)

    def disconnect_all_for(self, node_id: str) -> None:
        """Remove every connection with node_id as either endpoint."""
        if not self._graph.has_node(node_id):
            return
        edges = [*self._graph.in_edges(node_id), *self._graph.out_edges(node_id)]
        self._graph.remove_edges_from(edges)

    def connect(self, from_id: str, to_id: str) -> Connection | None:
        """Connect from_id's output to to_id's input.

        Returns:
            The new connection, or None if the attempt was rejected
            (self-loop, duplicate, unknown endpoint, source target,
            destination origin).
        """
        reason = self.rejection_reason(from_id, to_id)
        if reason is not None:
            logger.debug("connection_rejected", from_id=from_id, to_id=to_id, reason=reason)
            return None

        replaced = _incoming(self._graph, to_id)
        if replaced is not None:
            self._graph.remove_edge(replaced.from_id, replaced.to_id)
            logger.debug("connection_replaced", old_from_id=replaced.from_id, to_id=to_id)

        conn = Connection(from_id=NodeID(from_id), to_id=NodeID(to_id), seq=next(self._seq))
        self._graph.add_edge(from_id, to_id, conn=conn)
        logger.debug("connection_added", from_id=from_id, to_id=to_id)
        return conn

    def rejection_reason(self, from_id: str, to_id: str) -> str | None:
        """Why connect(from_id, to_id) would be rejected, or None if it is allowed."""
        if from_id == to_id:
            return "self_loop"
        if not self._graph.has_node(from_id) or not self._graph.has_node(to_id):
            return "unknown_node"
        if self._graph.has_edge(from_id, to_id):
            return "duplicate"
        if not self.get_node(from_id).produces_output:
            return "destination_has_no_output"
        if not self.get_node(to_id).accepts_input:
            return "source_has_no_input"
        return None

    def disconnect(self, from_id: str, to_id: str) -> bool:
        """Remove a single connection. Returns False if it did not exist."""
        if not self._graph.has_edge(from_id, to_id):
            return False
        self._graph.remove_edge(from_id, to_id)
        return True

    def set_config(self, node_id: str, key: str, value: str) -> None:
        """Set one config value on a node.

        Raises:
            NodeNotFoundError: If the node does not exist
            UnknownConfigKeyError: If key is not part of the node's config shape
        """
        node = self.get_node(node_id)
        if key not in node.config:
            raise UnknownConfigKeyError(node_id, key, list(node.config))
        node.config[key] = str(value)

    def move_node(self, node_id: str, x: float, y: float) -> None:
        """Update a node's position hint."""
        node = self.get_node(node_id)
        node.position.x = x
        node.position.y = y

    # === Topology queries ===

    def incoming_edge(self, node_id: str) -> Connection | None:
        """The single connection into node_id, if any."""
        if not self._graph.has_node(node_id):
            return None
        return _incoming(self._graph, node_id)

    def outgoing_edges(self, node_id: str) -> list[Connection]:
        """Connections out of node_id in creation order."""
        if not self._graph.has_node(node_id):
            return []
        return _outgoing(self._graph, node_id)

    def indegree(self, node_id: str) -> int:
        if not self._graph.has_node(node_id):
            return 0
        degree: int = self._graph.in_degree(node_id)
        return degree

    def outline(self) -> list[str]:
        """Lineage lines ("<from label> → <to label>") in connection order."""
        return [
            f"{self.get_node(conn.from_id).label} → {self.get_node(conn.to_id).label}"
            for conn in self.connections
        ]

    def snapshot(self) -> GraphSnapshot:
        """Immutable copy for execution.

        Node configs are copied, so editing the live store during a run
        cannot change what the run sees.
        """
        graph: DiGraph[str] = nx.DiGraph()
        for node in self.nodes:
            graph.add_node(node.node_id, info=node.detached())
        for conn in self.connections:
            graph.add_edge(conn.from_id, conn.to_id, conn=conn)
        return GraphSnapshot(nx.freeze(graph))


@dataclass(frozen=True)
class GraphSnapshot:
    """Read-only view of the graph at one point in time."""

    graph: DiGraph[str]

    @property
    def nodes(self) -> list[Node]:
        return [data["info"] for _, data in self.graph.nodes(data=True)]

    @property
    def connections(self) -> list[Connection]:
        return _all_connections(self.graph)

    def get_node(self, node_id: str) -> Node:
        if not self.graph.has_node(node_id):
            raise NodeNotFoundError(node_id)
        node: Node = self.graph.nodes[node_id]["info"]
        return node

    def incoming_edge(self, node_id: str) -> Connection | None:
        return _incoming(self.graph, node_id)

    def outgoing_edges(self, node_id: str) -> list[Connection]:
        return _outgoing(self.graph, node_id)

    def indegree(self, node_id: str) -> int:
        degree: int = self.graph.in_degree(node_id)
        return degree
