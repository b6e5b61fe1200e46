"""Semantic type aliases for compile-time type safety."""

from typing import Any, NewType

NodeID = NewType("NodeID", str)
"""Unique node identifier in the pipeline graph (e.g., 'node-3f9a1c2b7d40')"""

type Row = dict[str, Any]
"""A single data row flowing between stages."""
