# src/stagecraft/plugins/context.py
"""Per-execution context handed to stage executors."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from stagecraft.contracts import Row
from stagecraft.core.dag import Node
from stagecraft.core.logging import get_logger


@dataclass(frozen=True)
class StageContext:
    """What an executor may know about the run it is part of.

    Attributes:
        node: Snapshot of the node being executed
        sample_rows: The in-memory dataset sources read from
        run_id: Identifier of the current run, bound into log events
    """

    node: Node
    sample_rows: Sequence[Row]
    run_id: str

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        """Operator logger bound to this run and node."""
        return get_logger("stagecraft.stages").bind(
            run_id=self.run_id,
            node_id=self.node.node_id,
            stage_kind=self.node.stage_kind,
        )
