"""Exception taxonomy shared by the graph store, catalog and engine.

Structural rejections (self-loops, duplicate edges, port-rule violations)
are NOT exceptions: the graph store ignores them and returns None.
The classes here cover caller mistakes and topological anomalies.
"""

from __future__ import annotations

from collections.abc import Sequence


class StagecraftError(Exception):
    """Base class for all stagecraft errors."""


class GraphValidationError(StagecraftError, ValueError):
    """Raised when a graph operation or graph check fails."""


class NodeNotFoundError(GraphValidationError, KeyError):
    """Raised when an operation names a node that is not in the graph."""

    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id!r}")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0])


class UnknownConfigKeyError(GraphValidationError, KeyError):
    """Raised when setting a config key outside the node's config shape.

    The key set of a node's config is fixed by its stage definition at
    creation; only values may change afterwards.
    """

    def __init__(self, node_id: str, key: str, allowed: Sequence[str]) -> None:
        self.node_id = node_id
        self.key = key
        self.allowed = tuple(allowed)
        super().__init__(f"Node {node_id!r} has no config key {key!r}. Available keys: {sorted(self.allowed)}")

    def __str__(self) -> str:
        return str(self.args[0])


class CycleDetectedError(GraphValidationError):
    """Raised (or reported) when nodes cannot be ordered because of a cycle.

    Attributes:
        node_ids: Every node the ordering could not reach, in creation order.
            Includes nodes inside a cycle and nodes downstream of one.
        cycles: The simple cycles found among those nodes, each as a list
            of node ids.
    """

    def __init__(self, node_ids: Sequence[str], cycles: Sequence[Sequence[str]] = ()) -> None:
        self.node_ids = tuple(node_ids)
        self.cycles = tuple(tuple(cycle) for cycle in cycles)
        msg = f"Graph contains a cycle; {len(self.node_ids)} node(s) not executed: {', '.join(self.node_ids)}"
        if self.cycles:
            rendered = "; ".join(" -> ".join([*cycle, cycle[0]]) for cycle in self.cycles)
            msg = f"{msg} (cycles: {rendered})"
        super().__init__(msg)


class CatalogError(StagecraftError, ValueError):
    """Raised when a stage catalog is malformed."""


class UnknownStageKindError(CatalogError, KeyError):
    """Raised when a stage kind is not present in the catalog."""

    def __init__(self, kind: str, available: Sequence[str]) -> None:
        self.kind = kind
        super().__init__(f"Unknown stage kind {kind!r}. Available kinds: {list(available)}")

    def __str__(self) -> str:
        return str(self.args[0])
