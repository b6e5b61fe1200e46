# tests/unit/plugins/test_sources_and_sinks.py
"""Tests for the sample-backed sources and the reporting destinations."""

from collections.abc import Callable

from stagecraft.contracts import NodeRole, Row
from stagecraft.core.sample_data import SAMPLE_SALES
from stagecraft.plugins.context import StageContext
from stagecraft.plugins.sinks.preview_sink import CsvDestination, WarehouseLoad
from stagecraft.plugins.sources.sample_source import CsvImport, SqlSource

type ContextFactory = Callable[..., StageContext]


class TestSources:
    def test_sql_source_returns_sample(self, make_ctx: ContextFactory) -> None:
        ctx = make_ctx("SqlSource")
        result = SqlSource(ctx.node.config).execute([], ctx)
        assert result.rows == list(SAMPLE_SALES)
        assert result.message == "Executed SQL: SELECT * FROM sales (5 rows)"

    def test_csv_import_reports_path(self, make_ctx: ContextFactory) -> None:
        ctx = make_ctx("CsvImport", path="q3.csv")
        result = CsvImport(ctx.node.config).execute([], ctx)
        assert len(result.rows) == 5
        assert result.message == "Imported CSV from q3.csv (5 rows)"

    def test_upstream_ignored(self, make_ctx: ContextFactory) -> None:
        ctx = make_ctx("SqlSource")
        result = SqlSource(ctx.node.config).execute([{"junk": 1}], ctx)
        assert {"junk": 1} not in result.rows

    def test_rows_are_copies(self, make_ctx: ContextFactory) -> None:
        sample: list[Row] = [{"region": "West", "amount": 1}]
        ctx = make_ctx("SqlSource", sample_rows=sample)
        result = SqlSource(ctx.node.config).execute([], ctx)
        result.rows[0]["amount"] = 999
        assert sample[0]["amount"] == 1

    def test_roles(self) -> None:
        assert SqlSource.role == NodeRole.SOURCE
        assert CsvImport.role == NodeRole.SOURCE


class TestDestinations:
    def test_csv_destination_passes_rows_through(self, make_ctx: ContextFactory, sales: list[Row]) -> None:
        ctx = make_ctx("CsvDestination")
        result = CsvDestination(ctx.node.config).execute(sales[:2], ctx)
        assert result.rows == sales[:2]
        assert result.message == "Writing 2 rows to export.csv"

    def test_warehouse_load(self, make_ctx: ContextFactory, sales: list[Row]) -> None:
        ctx = make_ctx("WarehouseLoad", table="dim_customer")
        result = WarehouseLoad(ctx.node.config).execute(sales, ctx)
        assert result.rows == sales
        assert result.message == "Loading 5 rows into table dim_customer"

    def test_empty_input(self, make_ctx: ContextFactory) -> None:
        ctx = make_ctx("WarehouseLoad")
        result = WarehouseLoad(ctx.node.config).execute([], ctx)
        assert result.rows == []
        assert result.message == "Loading 0 rows into table fact_sales"

    def test_roles(self) -> None:
        assert CsvDestination.role == NodeRole.DESTINATION
        assert WarehouseLoad.role == NodeRole.DESTINATION
