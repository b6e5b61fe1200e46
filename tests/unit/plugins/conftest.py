# tests/unit/plugins/conftest.py
"""Fixtures for executing stage executors directly, outside the engine."""

from collections.abc import Callable

import pytest

from stagecraft.contracts import NodeID, Row
from stagecraft.core.catalog import StageCatalog
from stagecraft.core.dag import Node, Position
from stagecraft.core.sample_data import SAMPLE_SALES
from stagecraft.plugins.context import StageContext


@pytest.fixture
def make_ctx(catalog: StageCatalog) -> Callable[..., StageContext]:
    """Build a StageContext for a node of the given kind."""

    def factory(kind: str, *, sample_rows: list[Row] | None = None, **config: str) -> StageContext:
        definition = catalog.get(kind)
        node = Node(
            node_id=NodeID("n1"),
            stage_kind=kind,
            label=definition.label,
            description=definition.description,
            config={**definition.config, **config},
            position=Position(60, 60),
        )
        rows = list(SAMPLE_SALES) if sample_rows is None else sample_rows
        return StageContext(node=node, sample_rows=rows, run_id="run-test")

    return factory


@pytest.fixture
def sales() -> list[Row]:
    return [dict(row) for row in SAMPLE_SALES]
