"""Destination executors.

Nothing is written anywhere: a preview only reports what the write would
have been and passes the rows through for inspection.
"""

from pydantic import Field

from stagecraft.contracts import Row, StageKind
from stagecraft.plugins.base import BaseSink
from stagecraft.plugins.config_base import StageConfig
from stagecraft.plugins.context import StageContext
from stagecraft.plugins.results import StageResult


class CsvDestinationConfig(StageConfig):
    file_name: str = Field(default="export.csv")


class WarehouseLoadConfig(StageConfig):
    table: str = Field(default="fact_sales")


class CsvDestination(BaseSink):
    """Persist rows as CSV."""

    kind = StageKind.CSV_DESTINATION

    def execute(self, rows: list[Row], ctx: StageContext) -> StageResult:
        cfg = CsvDestinationConfig.from_dict(self.config)
        return StageResult.passthrough(rows, f"Writing {len(rows)} rows to {cfg.file_name}")


class WarehouseLoad(BaseSink):
    """Load data into analytics store."""

    kind = StageKind.WAREHOUSE_LOAD

    def execute(self, rows: list[Row], ctx: StageContext) -> StageResult:
        cfg = WarehouseLoadConfig.from_dict(self.config)
        return StageResult.passthrough(rows, f"Loading {len(rows)} rows into table {cfg.table}")
