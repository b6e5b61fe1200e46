# src/stagecraft/core/dag/models.py
"""Node and connection types for the pipeline graph.

Leaf module: no intra-package imports beyond contracts (prevents import cycles).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from stagecraft.contracts import NodeID, NodeRole

# First node lands at (60, 60); each further node is offset so new nodes
# do not stack exactly on top of each other.
_POSITION_ORIGIN = 60
_POSITION_STEP_X = 40
_POSITION_STEP_Y = 30


@dataclass(slots=True)
class Position:
    """Mutable placement hint for the rendering collaborator."""

    x: float
    y: float

    @classmethod
    def for_index(cls, index: int) -> Position:
        """Default placement for the index-th node currently in the graph."""
        return cls(
            x=_POSITION_ORIGIN + index * _POSITION_STEP_X,
            y=_POSITION_ORIGIN + index * _POSITION_STEP_Y,
        )


@dataclass(frozen=True, slots=True)
class Node:
    """A pipeline stage instance.

    Identity fields are frozen. The config mapping itself is mutable, but
    its key set is fixed at creation: change values only through
    GraphStore.set_config(), which enforces the shape.
    """

    node_id: NodeID
    stage_kind: str
    label: str
    description: str
    config: dict[str, str] = field(default_factory=dict)
    position: Position = field(default_factory=lambda: Position(0, 0))

    @property
    def role(self) -> NodeRole:
        """Derived from stage_kind; never changes."""
        return NodeRole.for_kind(self.stage_kind)

    @property
    def accepts_input(self) -> bool:
        return self.role != NodeRole.SOURCE

    @property
    def produces_output(self) -> bool:
        return self.role != NodeRole.DESTINATION

    def detached(self) -> Node:
        """Copy whose config and position are independent of this node."""
        return Node(
            node_id=self.node_id,
            stage_kind=self.stage_kind,
            label=self.label,
            description=self.description,
            config=dict(self.config),
            position=Position(self.position.x, self.position.y),
        )


@dataclass(frozen=True, slots=True)
class Connection:
    """A directed edge from one node's output to another node's input.

    seq is the creation sequence number; listings and outgoing-edge
    iteration follow it.
    """

    from_id: NodeID
    to_id: NodeID
    seq: int = field(default=0, compare=False)

    @property
    def pair(self) -> tuple[NodeID, NodeID]:
        return (self.from_id, self.to_id)
