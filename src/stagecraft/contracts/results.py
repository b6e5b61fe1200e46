"""Result types produced by a preview run."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import TYPE_CHECKING

from stagecraft.contracts.enums import RunStatus
from stagecraft.contracts.types import NodeID, Row

if TYPE_CHECKING:
    from stagecraft.contracts.errors import CycleDetectedError


@dataclass(frozen=True, slots=True)
class TraceEntry:
    """One human-readable line of the run trace.

    Every executed node contributes exactly one entry.
    """

    timestamp: datetime
    node_id: NodeID
    stage_kind: str
    message: str

    def render(self) -> str:
        """Format as shown in the run log panel."""
        return f"{self.timestamp:%H:%M:%S}  •  {self.message}"


@dataclass(frozen=True)
class RunResult:
    """Outcome of one preview run.

    Attributes:
        status: COMPLETED, or PARTIAL when a cycle kept nodes from running
        order: Node ids in the order they were executed
        outputs: Rows produced by each executed node
        trace: Trace entries, one per executed node
        error: The cycle report when status is PARTIAL
    """

    status: RunStatus
    order: tuple[NodeID, ...]
    outputs: MappingProxyType[NodeID, list[Row]]
    trace: tuple[TraceEntry, ...]
    error: CycleDetectedError | None = field(default=None)

    @property
    def last_output(self) -> list[Row]:
        """Rows produced by the last executed node (empty if nothing ran)."""
        if not self.order:
            return []
        return self.outputs[self.order[-1]]

    @property
    def skipped(self) -> tuple[str, ...]:
        """Node ids that were not executed because of a cycle."""
        if self.error is None:
            return ()
        return self.error.node_ids
