# tests/unit/core/test_graph_store.py
"""Tests for GraphStore structural rules and queries."""

import re

import networkx as nx
import pytest

from stagecraft.contracts import NodeNotFoundError, NodeRole, UnknownConfigKeyError
from stagecraft.core.catalog import StageCatalog
from stagecraft.core.dag import GraphStore, Node, Position


def add(store: GraphStore, catalog: StageCatalog, kind: str) -> Node:
    return store.add_node(catalog.get(kind))


class TestAddNode:
    def test_node_from_definition(self, store: GraphStore, catalog: StageCatalog) -> None:
        node = add(store, catalog, "Filter")
        assert node.node_id == "n1"
        assert node.stage_kind == "Filter"
        assert node.label == "Filter Rows"
        assert node.description == "Keep rows matching a condition"
        assert node.config == {"expression": "row.amount >= 500"}
        assert node.role == NodeRole.TRANSFORM

    def test_config_is_cloned_from_template(self, store: GraphStore, catalog: StageCatalog) -> None:
        first = add(store, catalog, "Filter")
        second = add(store, catalog, "Filter")
        store.set_config(first.node_id, "expression", "row.amount > 0")

        assert second.config == {"expression": "row.amount >= 500"}
        assert catalog.get("Filter").config == {"expression": "row.amount >= 500"}

    def test_default_ids_are_unique(self, catalog: StageCatalog) -> None:
        store = GraphStore()
        ids = {store.add_node(catalog.get("SqlSource")).node_id for _ in range(20)}
        assert len(ids) == 20
        assert all(re.fullmatch(r"node-[0-9a-f]{12}", node_id) for node_id in ids)

    def test_duplicate_id_from_factory_rejected(self, catalog: StageCatalog) -> None:
        store = GraphStore(id_factory=lambda: "same")
        store.add_node(catalog.get("SqlSource"))
        with pytest.raises(ValueError, match="duplicate node id"):
            store.add_node(catalog.get("SqlSource"))

    def test_positions_offset_per_node(self, store: GraphStore, catalog: StageCatalog) -> None:
        first = add(store, catalog, "SqlSource")
        second = add(store, catalog, "Filter")
        assert first.position == Position(60, 60)
        assert second.position == Position(100, 90)

    def test_nodes_in_creation_order(self, store: GraphStore, catalog: StageCatalog) -> None:
        for kind in ("WarehouseLoad", "SqlSource", "Filter"):
            add(store, catalog, kind)
        assert [n.node_id for n in store.nodes] == ["n1", "n2", "n3"]
        assert store.node_count == 3


class TestConnect:
    def test_connect(self, store: GraphStore, catalog: StageCatalog) -> None:
        src = add(store, catalog, "SqlSource")
        flt = add(store, catalog, "Filter")
        conn = store.connect(src.node_id, flt.node_id)

        assert conn is not None
        assert conn.pair == ("n1", "n2")
        assert store.connections == [conn]
        assert store.incoming_edge(flt.node_id) == conn
        assert store.outgoing_edges(src.node_id) == [conn]
        assert store.indegree(flt.node_id) == 1

    def test_self_loop_rejected(self, store: GraphStore, catalog: StageCatalog) -> None:
        flt = add(store, catalog, "Filter")
        assert store.connect(flt.node_id, flt.node_id) is None
        assert store.connections == []

    def test_duplicate_rejected(self, store: GraphStore, catalog: StageCatalog) -> None:
        src = add(store, catalog, "SqlSource")
        flt = add(store, catalog, "Filter")
        store.connect(src.node_id, flt.node_id)
        assert store.connect(src.node_id, flt.node_id) is None
        assert store.edge_count == 1

    def test_unknown_endpoint_rejected(self, store: GraphStore, catalog: StageCatalog) -> None:
        src = add(store, catalog, "SqlSource")
        assert store.connect(src.node_id, "ghost") is None
        assert store.connect("ghost", src.node_id) is None

    def test_into_source_rejected(self, store: GraphStore, catalog: StageCatalog) -> None:
        flt = add(store, catalog, "Filter")
        src = add(store, catalog, "SqlSource")
        assert store.connect(flt.node_id, src.node_id) is None
        assert store.rejection_reason(flt.node_id, src.node_id) == "source_has_no_input"

    def test_out_of_destination_rejected(self, store: GraphStore, catalog: StageCatalog) -> None:
        dst = add(store, catalog, "CsvDestination")
        flt = add(store, catalog, "Filter")
        assert store.connect(dst.node_id, flt.node_id) is None
        assert store.rejection_reason(dst.node_id, flt.node_id) == "destination_has_no_output"

    def test_replace_on_connect(self, store: GraphStore, catalog: StageCatalog) -> None:
        a = add(store, catalog, "SqlSource")
        b = add(store, catalog, "CsvImport")
        c = add(store, catalog, "Filter")
        store.connect(a.node_id, c.node_id)
        replacement = store.connect(b.node_id, c.node_id)

        assert replacement is not None
        assert [conn.pair for conn in store.connections] == [("n2", "n3")]
        assert store.outgoing_edges(a.node_id) == []

    def test_fan_out_allowed(self, store: GraphStore, catalog: StageCatalog) -> None:
        src = add(store, catalog, "SqlSource")
        f1 = add(store, catalog, "Filter")
        f2 = add(store, catalog, "Lookup")
        store.connect(src.node_id, f1.node_id)
        store.connect(src.node_id, f2.node_id)
        assert [c.to_id for c in store.outgoing_edges(src.node_id)] == ["n2", "n3"]

    def test_disconnect(self, store: GraphStore, catalog: StageCatalog) -> None:
        src = add(store, catalog, "SqlSource")
        flt = add(store, catalog, "Filter")
        store.connect(src.node_id, flt.node_id)
        assert store.disconnect(src.node_id, flt.node_id) is True
        assert store.disconnect(src.node_id, flt.node_id) is False
        assert store.incoming_edge(flt.node_id) is None


class TestRemoveNode:
    def test_cascade_delete(self, store: GraphStore, catalog: StageCatalog) -> None:
        src = add(store, catalog, "SqlSource")
        flt = add(store, catalog, "Filter")
        dst = add(store, catalog, "CsvDestination")
        store.connect(src.node_id, flt.node_id)
        store.connect(flt.node_id, dst.node_id)

        store.remove_node(flt.node_id)

        assert [n.node_id for n in store.nodes] == ["n1", "n3"]
        assert store.connections == []
        assert not store.has_node(flt.node_id)

    def test_unknown_id_ignored(self, store: GraphStore) -> None:
        store.remove_node("ghost")
        assert store.node_count == 0

    def test_disconnect_all_for(self, store: GraphStore, catalog: StageCatalog) -> None:
        src = add(store, catalog, "SqlSource")
        flt = add(store, catalog, "Filter")
        store.connect(src.node_id, flt.node_id)
        store.disconnect_all_for(src.node_id)
        assert store.connections == []
        assert store.node_count == 2


class TestConfigAndPosition:
    def test_set_config(self, store: GraphStore, catalog: StageCatalog) -> None:
        flt = add(store, catalog, "Filter")
        store.set_config(flt.node_id, "expression", "row.amount > 1")
        assert store.get_node(flt.node_id).config == {"expression": "row.amount > 1"}

    def test_set_config_unknown_key(self, store: GraphStore, catalog: StageCatalog) -> None:
        flt = add(store, catalog, "Filter")
        with pytest.raises(UnknownConfigKeyError):
            store.set_config(flt.node_id, "script", "row.amount > 1")
        assert set(store.get_node(flt.node_id).config) == {"expression"}

    def test_set_config_unknown_node(self, store: GraphStore) -> None:
        with pytest.raises(NodeNotFoundError):
            store.set_config("ghost", "expression", "x")

    def test_move_node(self, store: GraphStore, catalog: StageCatalog) -> None:
        flt = add(store, catalog, "Filter")
        store.move_node(flt.node_id, 320.5, 48)
        assert store.get_node(flt.node_id).position == Position(320.5, 48)

    def test_get_node_unknown(self, store: GraphStore) -> None:
        with pytest.raises(NodeNotFoundError):
            store.get_node("ghost")


class TestOutlineAndSnapshot:
    def test_outline(self, store: GraphStore, catalog: StageCatalog) -> None:
        src = add(store, catalog, "SqlSource")
        flt = add(store, catalog, "Filter")
        dst = add(store, catalog, "WarehouseLoad")
        store.connect(flt.node_id, dst.node_id)
        store.connect(src.node_id, flt.node_id)
        assert store.outline() == ["Filter Rows → Warehouse", "SQL Source → Filter Rows"]

    def test_snapshot_is_isolated(self, store: GraphStore, catalog: StageCatalog) -> None:
        src = add(store, catalog, "SqlSource")
        flt = add(store, catalog, "Filter")
        store.connect(src.node_id, flt.node_id)

        snapshot = store.snapshot()
        store.set_config(flt.node_id, "expression", "row.amount > 0")
        store.remove_node(src.node_id)

        assert [n.node_id for n in snapshot.nodes] == ["n1", "n2"]
        assert snapshot.get_node(flt.node_id).config == {"expression": "row.amount >= 500"}
        assert snapshot.incoming_edge(flt.node_id) is not None
        assert snapshot.indegree(flt.node_id) == 1
        assert [c.to_id for c in snapshot.outgoing_edges(src.node_id)] == ["n2"]

    def test_snapshot_graph_is_frozen(self, store: GraphStore, catalog: StageCatalog) -> None:
        add(store, catalog, "SqlSource")
        snapshot = store.snapshot()
        with pytest.raises(nx.NetworkXError, match="Frozen graph"):
            snapshot.graph.add_node("x")
