# src/stagecraft/engine/trace.py
"""Append-only trace log for a single preview run."""

from __future__ import annotations

from collections.abc import Iterator

from stagecraft.contracts import NodeID, TraceEntry
from stagecraft.engine.clock import DEFAULT_CLOCK, Clock


class TraceLog:
    """Human-readable execution notices, one per executed node.

    Entries can only be appended during a run; clear() is called by the
    engine at the start of the next run.
    """

    def __init__(self, clock: Clock = DEFAULT_CLOCK) -> None:
        self._clock = clock
        self._entries: list[TraceEntry] = []

    def append(self, node_id: NodeID, stage_kind: str, message: str) -> TraceEntry:
        entry = TraceEntry(
            timestamp=self._clock.now(),
            node_id=node_id,
            stage_kind=stage_kind,
            message=message,
        )
        self._entries.append(entry)
        return entry

    def clear(self) -> None:
        self._entries.clear()

    @property
    def entries(self) -> tuple[TraceEntry, ...]:
        return tuple(self._entries)

    @property
    def messages(self) -> list[str]:
        return [entry.message for entry in self._entries]

    def render(self) -> list[str]:
        """Entries formatted for display."""
        return [entry.render() for entry in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TraceEntry]:
        return iter(tuple(self._entries))
