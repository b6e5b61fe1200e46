"""Source executors backed by the in-memory sample dataset.

No query is run and no file is read: both kinds return a fresh copy of
ctx.sample_rows and differ only in what they report.
"""

import copy

from pydantic import Field

from stagecraft.contracts import Row, StageKind
from stagecraft.plugins.base import BaseSource
from stagecraft.plugins.config_base import StageConfig
from stagecraft.plugins.context import StageContext
from stagecraft.plugins.results import StageResult


class SqlSourceConfig(StageConfig):
    """Configuration for the SQL source."""

    query: str = Field(default="SELECT * FROM sales", description="Query shown in the trace")


class CsvImportConfig(StageConfig):
    """Configuration for the CSV import source."""

    path: str = Field(default="sample-data.csv", description="File name shown in the trace")


class SqlSource(BaseSource):
    """Pull data via query."""

    kind = StageKind.SQL_SOURCE

    def execute(self, rows: list[Row], ctx: StageContext) -> StageResult:
        cfg = SqlSourceConfig.from_dict(self.config)
        data = copy.deepcopy(list(ctx.sample_rows))
        return StageResult(rows=data, message=f"Executed SQL: {cfg.query} ({len(data)} rows)")


class CsvImport(BaseSource):
    """Upload comma separated values."""

    kind = StageKind.CSV_IMPORT

    def execute(self, rows: list[Row], ctx: StageContext) -> StageResult:
        cfg = CsvImportConfig.from_dict(self.config)
        data = copy.deepcopy(list(ctx.sample_rows))
        return StageResult(rows=data, message=f"Imported CSV from {cfg.path} ({len(data)} rows)")
