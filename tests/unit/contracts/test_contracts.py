# tests/unit/contracts/test_contracts.py
"""Tests for shared enums, errors and result types."""

from datetime import UTC, datetime
from types import MappingProxyType

import pytest

from stagecraft.contracts import (
    CatalogError,
    CycleDetectedError,
    GraphValidationError,
    NodeID,
    NodeNotFoundError,
    NodeRole,
    RunResult,
    RunStatus,
    StageKind,
    StagecraftError,
    TraceEntry,
    UnknownConfigKeyError,
    UnknownStageKindError,
)


class TestNodeRole:
    @pytest.mark.parametrize(
        ("kind", "role"),
        [
            ("SqlSource", NodeRole.SOURCE),
            ("CsvImport", NodeRole.SOURCE),
            ("Filter", NodeRole.TRANSFORM),
            ("Lookup", NodeRole.TRANSFORM),
            ("Aggregate", NodeRole.TRANSFORM),
            ("CsvDestination", NodeRole.DESTINATION),
            ("WarehouseLoad", NodeRole.DESTINATION),
        ],
    )
    def test_builtin_kinds(self, kind: str, role: NodeRole) -> None:
        assert NodeRole.for_kind(kind) == role

    def test_accepts_enum_members(self) -> None:
        assert NodeRole.for_kind(StageKind.SQL_SOURCE) == NodeRole.SOURCE
        assert NodeRole.for_kind(StageKind.WAREHOUSE_LOAD) == NodeRole.DESTINATION

    def test_unknown_kind_is_transform(self) -> None:
        assert NodeRole.for_kind("Dedupe") == NodeRole.TRANSFORM

    def test_kind_values_match_catalog_identifiers(self) -> None:
        assert str(StageKind.CSV_DESTINATION) == "CsvDestination"


class TestErrors:
    def test_hierarchy(self) -> None:
        assert issubclass(GraphValidationError, StagecraftError)
        assert issubclass(GraphValidationError, ValueError)
        assert issubclass(NodeNotFoundError, GraphValidationError)
        assert issubclass(NodeNotFoundError, KeyError)
        assert issubclass(CycleDetectedError, GraphValidationError)
        assert issubclass(UnknownStageKindError, CatalogError)
        assert issubclass(CatalogError, ValueError)

    def test_node_not_found_message_is_not_repr_quoted(self) -> None:
        err = NodeNotFoundError("n9")
        assert err.node_id == "n9"
        assert str(err) == "Node not found: 'n9'"

    def test_unknown_config_key_lists_allowed_keys(self) -> None:
        err = UnknownConfigKeyError("n1", "script", ["expression"])
        assert err.key == "script"
        assert err.allowed == ("expression",)
        assert "'script'" in str(err)
        assert "['expression']" in str(err)

    def test_cycle_error_renders_cycles(self) -> None:
        err = CycleDetectedError(["a", "b", "c"], [["a", "b"]])
        assert err.node_ids == ("a", "b", "c")
        assert err.cycles == (("a", "b"),)
        assert "3 node(s) not executed: a, b, c" in str(err)
        assert "a -> b -> a" in str(err)

    def test_unknown_stage_kind(self) -> None:
        err = UnknownStageKindError("Nope", ["Filter"])
        assert err.kind == "Nope"
        assert str(err).startswith("Unknown stage kind 'Nope'")


class TestResults:
    def test_trace_entry_render(self) -> None:
        entry = TraceEntry(
            timestamp=datetime(2024, 3, 1, 9, 5, 7, tzinfo=UTC),
            node_id=NodeID("n1"),
            stage_kind="SqlSource",
            message="Executed SQL: SELECT 1 (5 rows)",
        )
        assert entry.render() == "09:05:07  •  Executed SQL: SELECT 1 (5 rows)"

    def test_last_output_is_final_executed_node(self) -> None:
        outputs = MappingProxyType({NodeID("a"): [{"x": 1}], NodeID("b"): [{"x": 2}]})
        result = RunResult(
            status=RunStatus.COMPLETED,
            order=(NodeID("a"), NodeID("b")),
            outputs=outputs,
            trace=(),
        )
        assert result.last_output == [{"x": 2}]
        assert result.skipped == ()

    def test_empty_run(self) -> None:
        result = RunResult(status=RunStatus.COMPLETED, order=(), outputs=MappingProxyType({}), trace=())
        assert result.last_output == []

    def test_skipped_comes_from_cycle_error(self) -> None:
        err = CycleDetectedError(["b", "c"])
        result = RunResult(
            status=RunStatus.PARTIAL,
            order=(NodeID("a"),),
            outputs=MappingProxyType({NodeID("a"): []}),
            trace=(),
            error=err,
        )
        assert result.skipped == ("b", "c")
