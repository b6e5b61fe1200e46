# tests/unit/test_workspace.py
"""Tests for the Workspace editing session."""

from collections.abc import Callable
from pathlib import Path

import pytest

from stagecraft.contracts import (
    CycleDetectedError,
    GraphValidationError,
    RunStatus,
    UnknownConfigKeyError,
    UnknownStageKindError,
)
from stagecraft.core.config import StagecraftSettings
from stagecraft.core.dag import Position
from stagecraft.engine.clock import MockClock
from stagecraft.workspace import Workspace


def settings_for(nodes: list[dict[str, object]], connections: list[dict[str, str]], **extra: object) -> StagecraftSettings:
    return StagecraftSettings.model_validate({"pipeline": {"nodes": nodes, "connections": connections}, **extra})


class TestEditing:
    def test_add_stage_from_catalog(self, workspace: Workspace) -> None:
        node = workspace.add_stage("Lookup")
        assert node.label == "Lookup"
        assert workspace.nodes == [node]

    def test_add_unknown_stage(self, workspace: Workspace) -> None:
        with pytest.raises(UnknownStageKindError):
            workspace.add_stage("Teleport")

    def test_mutation_surface(self, workspace: Workspace) -> None:
        src = workspace.add_stage("SqlSource")
        flt = workspace.add_stage("Filter")
        conn = workspace.connect(src.node_id, flt.node_id)
        workspace.set_config(flt.node_id, "expression", "row.amount > 900")
        workspace.move_node(flt.node_id, 10, 20)

        assert workspace.connections == [conn]
        assert workspace.outline() == ["SQL Source → Filter Rows"]
        assert workspace.get_node(flt.node_id).config["expression"] == "row.amount > 900"
        assert workspace.get_node(flt.node_id).position == Position(10, 20)

        assert workspace.disconnect(src.node_id, flt.node_id) is True
        workspace.remove_node(src.node_id)
        assert [n.node_id for n in workspace.nodes] == [flt.node_id]

    def test_default_collaborators(self) -> None:
        workspace = Workspace()
        assert len(workspace.catalog) == 7
        assert "Aggregate" in workspace.registry


class TestRunPreview:
    def test_run_and_query(self, workspace: Workspace) -> None:
        src = workspace.add_stage("SqlSource")
        flt = workspace.add_stage("Filter")
        workspace.connect(src.node_id, flt.node_id)

        result = workspace.run_preview()

        assert result.status == RunStatus.COMPLETED
        assert workspace.last_result is result
        assert len(workspace.outputs[flt.node_id]) == 3
        assert workspace.trace_log.messages[1] == "Filtering rows with: row.amount >= 500 (3 of 5 rows kept)"

    def test_config_edit_applies_to_next_run(self, workspace: Workspace) -> None:
        src = workspace.add_stage("SqlSource")
        flt = workspace.add_stage("Filter")
        workspace.connect(src.node_id, flt.node_id)
        workspace.run_preview()

        workspace.set_config(flt.node_id, "expression", "row.region == 'West'")
        workspace.run_preview()

        assert [r["amount"] for r in workspace.outputs[flt.node_id]] == [850, 600]

    def test_workspaces_are_independent(self, id_factory: Callable[[], str]) -> None:
        first = Workspace(id_factory=id_factory)
        second = Workspace()
        first.add_stage("SqlSource")
        assert second.nodes == []


class TestFromSettings:
    def test_assembles_named_pipeline(self, clock: MockClock, id_factory: Callable[[], str]) -> None:
        settings = settings_for(
            [
                {"name": "sales", "kind": "SqlSource"},
                {"name": "big", "kind": "Filter", "config": {"expression": "row.amount > 800"}},
                {"name": "out", "kind": "WarehouseLoad"},
            ],
            [{"from": "sales", "to": "big"}, {"from": "big", "to": "out"}],
        )
        workspace, names = Workspace.from_settings(settings, clock=clock, id_factory=id_factory)

        assert names == {"sales": "n1", "big": "n2", "out": "n3"}
        assert workspace.outline() == ["SQL Source → Filter Rows", "Filter Rows → Warehouse"]
        result = workspace.run_preview()
        assert [r["customer"] for r in result.last_output] == ["CloudCo", "WideWorld Importers"]

    def test_unknown_config_key(self) -> None:
        settings = settings_for([{"name": "f", "kind": "Filter", "config": {"script": "x"}}], [])
        with pytest.raises(UnknownConfigKeyError):
            Workspace.from_settings(settings)

    def test_unknown_kind(self) -> None:
        settings = settings_for([{"name": "x", "kind": "Teleport"}], [])
        with pytest.raises(UnknownStageKindError):
            Workspace.from_settings(settings)

    def test_rejected_connection_is_an_error(self) -> None:
        settings = settings_for(
            [{"name": "f", "kind": "Filter"}, {"name": "s", "kind": "SqlSource"}],
            [{"from": "f", "to": "s"}],
        )
        with pytest.raises(GraphValidationError, match="source_has_no_input"):
            Workspace.from_settings(settings)

    def test_second_incoming_connection_is_an_error(self) -> None:
        settings = settings_for(
            [
                {"name": "a", "kind": "SqlSource"},
                {"name": "b", "kind": "CsvImport"},
                {"name": "f", "kind": "Filter"},
            ],
            [{"from": "a", "to": "f"}, {"from": "b", "to": "f"}],
        )
        with pytest.raises(GraphValidationError, match="more than one incoming connection"):
            Workspace.from_settings(settings)

    def test_fail_on_cycle_setting(self) -> None:
        settings = settings_for(
            [{"name": "a", "kind": "Filter"}, {"name": "b", "kind": "Lookup"}],
            [{"from": "a", "to": "b"}, {"from": "b", "to": "a"}],
            execution={"fail_on_cycle": True},
        )
        workspace, _ = Workspace.from_settings(settings)
        with pytest.raises(CycleDetectedError):
            workspace.run_preview()

    def test_relative_catalog_file(self, tmp_path: Path) -> None:
        (tmp_path / "stages.yaml").write_text("transforms:\n  - {kind: Dedupe, label: Dedupe}\n")
        settings = settings_for([{"name": "d", "kind": "Dedupe"}], [], catalog_file="stages.yaml")

        workspace, _ = Workspace.from_settings(settings, base_dir=tmp_path)

        assert workspace.catalog.kinds == ["Dedupe"]
        assert workspace.nodes[0].label == "Dedupe"
