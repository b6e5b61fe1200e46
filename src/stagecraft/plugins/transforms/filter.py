"""Filter transform: keep rows matching a condition.

Failure policy:
- The expression does not parse or uses a forbidden construct: the stage
  is skipped and every row passes through (fail-open).
- The expression fails for one row (missing field, incomparable types):
  that row is dropped (fail-closed) and the rest carry on.
"""

from pydantic import Field

from stagecraft.contracts import Row, StageKind
from stagecraft.engine.expression_parser import (
    ExpressionEvaluationError,
    ExpressionParser,
    ExpressionSecurityError,
    ExpressionSyntaxError,
)
from stagecraft.plugins.base import BaseTransform
from stagecraft.plugins.config_base import StageConfig
from stagecraft.plugins.context import StageContext
from stagecraft.plugins.results import StageResult


class FilterConfig(StageConfig):
    """Configuration for the filter transform."""

    expression: str = Field(
        default="row.amount >= 500",
        description="Condition evaluated per row, e.g. \"row.amount >= 500\"",
    )


class Filter(BaseTransform):
    """Keep rows matching a condition.

    Config options:
        expression: Condition over `row`; see ExpressionParser for the grammar

    Example:
        expression: "row.status == 'won' and row.amount >= 500"
    """

    kind = StageKind.FILTER

    def execute(self, rows: list[Row], ctx: StageContext) -> StageResult:
        cfg = FilterConfig.from_dict(self.config)
        try:
            parser = ExpressionParser(cfg.expression)
        except (ExpressionSyntaxError, ExpressionSecurityError) as e:
            ctx.logger.warning("filter_expression_invalid", expression=cfg.expression, error=str(e))
            return StageResult.passthrough(rows, f"Filter expression invalid; skipping filter: {e}")

        kept: list[Row] = []
        for index, row in enumerate(rows):
            try:
                if parser.matches(row):
                    kept.append(row)
            except ExpressionEvaluationError as e:
                ctx.logger.debug("filter_row_excluded", row_index=index, error=str(e))

        return StageResult(
            rows=kept,
            message=f"Filtering rows with: {cfg.expression} ({len(kept)} of {len(rows)} rows kept)",
        )
