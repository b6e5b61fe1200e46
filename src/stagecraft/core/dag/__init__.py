# src/stagecraft/core/dag/__init__.py
"""Pipeline graph: node/connection model and the store that owns them."""

from stagecraft.core.dag.graph import GraphSnapshot, GraphStore
from stagecraft.core.dag.models import Connection, Node, Position

__all__ = [
    "Connection",
    "GraphSnapshot",
    "GraphStore",
    "Node",
    "Position",
]
