# src/stagecraft/engine/orchestrator.py
"""PreviewEngine: runs a pipeline graph over the sample dataset.

One run:
1. Snapshot the graph (later edits to the live store cannot affect it)
2. Clear the previous run's trace and outputs
3. Order nodes (Kahn, creation-order ties)
4. Execute each node on the output of its single upstream node
5. Report COMPLETED, or PARTIAL with a CycleDetectedError naming the
   nodes that could not be ordered

Execution is synchronous and single-threaded; nodes never overlap.
The engine never mutates the graph store.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from types import MappingProxyType

from stagecraft.contracts import NodeID, NodeRole, Row, RunResult, RunStatus
from stagecraft.core.dag import GraphSnapshot, GraphStore, Node
from stagecraft.core.logging import get_logger
from stagecraft.core.sample_data import SAMPLE_SALES
from stagecraft.engine.clock import DEFAULT_CLOCK, Clock
from stagecraft.engine.ordering import topological_order
from stagecraft.engine.trace import TraceLog
from stagecraft.plugins.context import StageContext
from stagecraft.plugins.manager import StageRegistry
from stagecraft.plugins.results import StageResult

logger = get_logger(__name__)


class PreviewEngine:
    """Executes graphs and keeps the results of the most recent run.

    Args:
        registry: Stage executors keyed by kind
        clock: Time source for trace entries
        sample_rows: Dataset returned by source stages
        fail_on_cycle: Raise CycleDetectedError instead of returning a
            PARTIAL result when nodes cannot be ordered
    """

    def __init__(
        self,
        registry: StageRegistry,
        *,
        clock: Clock = DEFAULT_CLOCK,
        sample_rows: Sequence[Row] = SAMPLE_SALES,
        fail_on_cycle: bool = False,
    ) -> None:
        self._registry = registry
        self._sample_rows = sample_rows
        self._fail_on_cycle = fail_on_cycle
        self._trace = TraceLog(clock)
        self._outputs: dict[NodeID, list[Row]] = {}
        self._last_result: RunResult | None = None

    @property
    def trace_log(self) -> TraceLog:
        """Trace of the most recent run."""
        return self._trace

    @property
    def outputs(self) -> MappingProxyType[NodeID, list[Row]]:
        """Rows produced per node by the most recent run."""
        return MappingProxyType(self._outputs)

    @property
    def last_result(self) -> RunResult | None:
        return self._last_result

    def run(self, graph: GraphStore | GraphSnapshot) -> RunResult:
        """Run a preview.

        Raises:
            CycleDetectedError: Only when fail_on_cycle is set and some
                nodes cannot be ordered
        """
        snapshot = graph.snapshot() if isinstance(graph, GraphStore) else graph

        self._trace.clear()
        self._outputs = {}
        self._last_result = None

        run_id = uuid.uuid4().hex
        log = logger.bind(run_id=run_id)

        order = topological_order(snapshot)
        error = order.cycle_error()
        if error is not None:
            log.warning("cycle_detected", node_ids=list(error.node_ids), cycles=[list(c) for c in error.cycles])
            if self._fail_on_cycle:
                raise error

        log.info("run_started", node_count=len(order.nodes))
        for node_id in order.nodes:
            node = snapshot.get_node(node_id)
            upstream = self._upstream_rows(snapshot, node)
            result = self._execute(node, upstream, run_id)
            self._outputs[node_id] = result.rows
            self._trace.append(node_id, node.stage_kind, result.message)

        status = RunStatus.COMPLETED if error is None else RunStatus.PARTIAL
        self._last_result = RunResult(
            status=status,
            order=order.nodes,
            outputs=MappingProxyType(dict(self._outputs)),
            trace=self._trace.entries,
            error=error,
        )
        log.info("run_completed", status=status, executed=len(order.nodes), skipped=len(order.unreachable))
        return self._last_result

    def _upstream_rows(self, snapshot: GraphSnapshot, node: Node) -> list[Row]:
        if node.role == NodeRole.SOURCE:
            return []
        incoming = snapshot.incoming_edge(node.node_id)
        if incoming is None:
            return []
        # Copy the list so an executor cannot reorder another node's output
        return list(self._outputs.get(incoming.from_id, []))

    def _execute(self, node: Node, upstream: list[Row], run_id: str) -> StageResult:
        stage_cls = self._registry.get_stage(node.stage_kind)
        if stage_cls is None:
            return StageResult.passthrough(
                upstream,
                f"No executor for stage kind {node.stage_kind}; passing {len(upstream)} rows through",
            )
        ctx = StageContext(node=node, sample_rows=self._sample_rows, run_id=run_id)
        return stage_cls(node.config).execute(upstream, ctx)
