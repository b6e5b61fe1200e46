"""Shared contracts: enums, type aliases, errors and result types.

Leaf package: nothing here imports from core, engine or plugins.
"""

from stagecraft.contracts.enums import NodeRole, RunStatus, StageKind
from stagecraft.contracts.errors import (
    CatalogError,
    CycleDetectedError,
    GraphValidationError,
    NodeNotFoundError,
    StagecraftError,
    UnknownConfigKeyError,
    UnknownStageKindError,
)
from stagecraft.contracts.results import RunResult, TraceEntry
from stagecraft.contracts.types import NodeID, Row

__all__ = [
    "CatalogError",
    "CycleDetectedError",
    "GraphValidationError",
    "NodeID",
    "NodeNotFoundError",
    "NodeRole",
    "Row",
    "RunResult",
    "RunStatus",
    "StageKind",
    "StagecraftError",
    "TraceEntry",
    "UnknownConfigKeyError",
    "UnknownStageKindError",
]
