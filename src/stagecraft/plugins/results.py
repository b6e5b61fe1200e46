# src/stagecraft/plugins/results.py
"""Result type returned by stage executors."""

from __future__ import annotations

from dataclasses import dataclass, field

from stagecraft.contracts import Row


@dataclass(frozen=True, slots=True)
class StageResult:
    """Rows produced by one stage execution plus its trace line.

    The engine writes message to the trace log, so every execution
    contributes exactly one line.
    """

    rows: list[Row] = field(default_factory=list)
    message: str = ""

    @classmethod
    def passthrough(cls, rows: list[Row], message: str) -> StageResult:
        """Hand the upstream rows on unchanged."""
        return cls(rows=list(rows), message=message)
