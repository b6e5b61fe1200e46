# src/stagecraft/plugins/base.py
"""Base classes for stage executors.

An executor implements one stage kind. The engine instantiates it per
node per run with the node's current config, then calls execute() with
the upstream rows:

    class MyStage(BaseTransform):
        kind = "MyKind"

        def execute(self, rows, ctx):
            return StageResult(rows=[...], message="Did the thing")

Executors must subclass BaseSource, BaseTransform or BaseSink: discovery
uses issubclass() against these, and the registry checks the kind's
derived role matches the base class.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import ClassVar

from stagecraft.contracts import NodeRole, Row
from stagecraft.plugins.context import StageContext
from stagecraft.plugins.results import StageResult


class BaseStage(ABC):
    """Common shape of every stage executor."""

    kind: ClassVar[str]
    role: ClassVar[NodeRole]

    def __init__(self, config: Mapping[str, str]) -> None:
        self.config = dict(config)

    @abstractmethod
    def execute(self, rows: list[Row], ctx: StageContext) -> StageResult:
        """Run the stage over its upstream rows.

        Args:
            rows: Output of the upstream node (empty for sources)
            ctx: Execution context

        Returns:
            StageResult with the produced rows and one trace message
        """
        ...


class BaseSource(BaseStage):
    """Executors for stages with no input. Upstream rows are always ignored."""

    role = NodeRole.SOURCE


class BaseTransform(BaseStage):
    """Executors for stages with one input and one output."""

    role = NodeRole.TRANSFORM


class BaseSink(BaseStage):
    """Executors for stages with one input and no outgoing connections.

    Sinks hand their input on unchanged so the final rows can be inspected.
    """

    role = NodeRole.DESTINATION
