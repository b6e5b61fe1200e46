# src/stagecraft/workspace.py
"""Workspace: the pipeline editing session owned by the hosting application.

Bundles the stage catalog, a GraphStore and a PreviewEngine, and exposes
the mutation and query surface the editor works against. There is no
module-level state; create as many workspaces as needed.

    ws = Workspace()
    src = ws.add_stage("SqlSource")
    flt = ws.add_stage("Filter")
    ws.connect(src.node_id, flt.node_id)
    result = ws.run_preview()
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path
from types import MappingProxyType

from stagecraft.contracts import GraphValidationError, NodeID, Row, RunResult
from stagecraft.core.catalog import StageCatalog, load_catalog
from stagecraft.core.config import PipelineSettings, StagecraftSettings
from stagecraft.core.dag import Connection, GraphStore, Node
from stagecraft.core.logging import get_logger
from stagecraft.core.sample_data import SAMPLE_SALES
from stagecraft.engine.clock import DEFAULT_CLOCK, Clock
from stagecraft.engine.orchestrator import PreviewEngine
from stagecraft.engine.trace import TraceLog
from stagecraft.plugins.manager import StageRegistry

logger = get_logger(__name__)


class Workspace:
    """One pipeline editing session.

    Args:
        catalog: Stage definitions offered to the editor (built-in by default)
        registry: Stage executors (built-in executors by default)
        clock: Time source for trace entries
        sample_rows: Dataset returned by source stages
        fail_on_cycle: Raise instead of reporting a partial run
        id_factory: Node id generator, injectable for deterministic ids
    """

    def __init__(
        self,
        *,
        catalog: StageCatalog | None = None,
        registry: StageRegistry | None = None,
        clock: Clock = DEFAULT_CLOCK,
        sample_rows: Sequence[Row] = SAMPLE_SALES,
        fail_on_cycle: bool = False,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        if registry is None:
            registry = StageRegistry()
            registry.register_builtin_plugins()
        self._catalog = catalog if catalog is not None else load_catalog()
        self._registry = registry
        self._store = GraphStore(id_factory=id_factory)
        self._engine = PreviewEngine(
            registry,
            clock=clock,
            sample_rows=sample_rows,
            fail_on_cycle=fail_on_cycle,
        )

    @classmethod
    def from_settings(
        cls,
        settings: StagecraftSettings,
        *,
        base_dir: Path | None = None,
        clock: Clock = DEFAULT_CLOCK,
        id_factory: Callable[[], str] | None = None,
    ) -> tuple[Workspace, dict[str, NodeID]]:
        """Build a workspace and assemble the pipeline a settings file describes.

        Args:
            settings: Validated settings
            base_dir: Directory relative catalog_file paths resolve against
            clock: Time source for trace entries
            id_factory: Node id generator

        Returns:
            (workspace, {pipeline node name: node id})

        Raises:
            CatalogError: If the catalog file is invalid
            UnknownStageKindError: If a pipeline node names a kind the catalog lacks
            UnknownConfigKeyError: If a config override names a key the stage lacks
            GraphValidationError: If a connection breaks the structural rules
        """
        catalog = None
        if settings.catalog_file is not None:
            catalog_path = Path(settings.catalog_file)
            if base_dir is not None and not catalog_path.is_absolute():
                catalog_path = base_dir / catalog_path
            catalog = load_catalog(catalog_path)

        workspace = cls(
            catalog=catalog,
            clock=clock,
            fail_on_cycle=settings.execution.fail_on_cycle,
            id_factory=id_factory,
        )
        names = workspace.assemble(settings.pipeline)
        return workspace, names

    # === Properties ===

    @property
    def catalog(self) -> StageCatalog:
        return self._catalog

    @property
    def registry(self) -> StageRegistry:
        return self._registry

    @property
    def store(self) -> GraphStore:
        return self._store

    # === Mutation surface ===

    def add_stage(self, kind: str) -> Node:
        """Create a node from the catalog definition of kind.

        Raises:
            UnknownStageKindError: If kind is not in the catalog
        """
        return self._store.add_node(self._catalog.get(kind))

    def remove_node(self, node_id: str) -> None:
        self._store.remove_node(node_id)

    def connect(self, from_id: str, to_id: str) -> Connection | None:
        return self._store.connect(from_id, to_id)

    def disconnect(self, from_id: str, to_id: str) -> bool:
        return self._store.disconnect(from_id, to_id)

    def set_config(self, node_id: str, key: str, value: str) -> None:
        self._store.set_config(node_id, key, value)

    def move_node(self, node_id: str, x: float, y: float) -> None:
        self._store.move_node(node_id, x, y)

    def assemble(self, pipeline: PipelineSettings) -> dict[str, NodeID]:
        """Add the nodes and connections of a pipeline definition.

        Connections a file declares are checked strictly: one the store
        would reject, or a second connection into the same node, is an error
        rather than a silent no-op or replacement.

        Returns:
            {pipeline node name: node id}
        """
        names: dict[str, NodeID] = {}
        for node_settings in pipeline.nodes:
            node = self.add_stage(node_settings.kind)
            for key, value in node_settings.config.items():
                self._store.set_config(node.node_id, key, value)
            names[node_settings.name] = node.node_id

        for conn in pipeline.connections:
            from_id, to_id = names[conn.from_node], names[conn.to_node]
            reason = self._store.rejection_reason(from_id, to_id)
            if reason is not None:
                raise GraphValidationError(f"Connection {conn.from_node} → {conn.to_node} is not allowed: {reason}")
            existing = self._store.incoming_edge(to_id)
            if existing is not None:
                raise GraphValidationError(f"Node '{conn.to_node}' has more than one incoming connection")
            self._store.connect(from_id, to_id)

        logger.info("pipeline_assembled", nodes=len(names), connections=len(pipeline.connections))
        return names

    # === Query surface ===

    @property
    def nodes(self) -> list[Node]:
        return self._store.nodes

    @property
    def connections(self) -> list[Connection]:
        return self._store.connections

    def get_node(self, node_id: str) -> Node:
        return self._store.get_node(node_id)

    def outline(self) -> list[str]:
        return self._store.outline()

    @property
    def trace_log(self) -> TraceLog:
        return self._engine.trace_log

    @property
    def outputs(self) -> MappingProxyType[NodeID, list[Row]]:
        return self._engine.outputs

    @property
    def last_result(self) -> RunResult | None:
        return self._engine.last_result

    # === Execution ===

    def run_preview(self) -> RunResult:
        """Run the current graph over the sample dataset.

        Raises:
            CycleDetectedError: Only when the workspace was created with
                fail_on_cycle
        """
        return self._engine.run(self._store)
