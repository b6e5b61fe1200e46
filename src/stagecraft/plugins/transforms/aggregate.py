"""Aggregate transform: count and sum a metric per group.

Output is one row per group in first-seen order:

    {"group": <group value>, "amount": <sum of the metric field>, "count": <rows>}

The metric names the summed field ("sum(price)" sums row["price"]); the
total is always reported under "amount".
"""

import math
import re
from collections.abc import Hashable
from typing import Any

from pydantic import Field

from stagecraft.contracts import Row, StageKind
from stagecraft.plugins.base import BaseTransform
from stagecraft.plugins.config_base import StageConfig
from stagecraft.plugins.context import StageContext
from stagecraft.plugins.results import StageResult

DEFAULT_GROUP_BY = "region"
DEFAULT_METRIC_FIELD = "amount"
SUM_KEY = "amount"
UNKNOWN_GROUP = "unknown"

_METRIC_RE = re.compile(r"^\s*sum\(\s*([^()\s]+)\s*\)\s*$", re.IGNORECASE)


class AggregateConfig(StageConfig):
    """Configuration for the aggregate transform."""

    group_by: str = Field(default=DEFAULT_GROUP_BY, description="Field to group rows by")
    metric: str = Field(default=f"sum({DEFAULT_METRIC_FIELD})", description="Metric expression, e.g. \"sum(amount)\"")


def parse_metric(metric: str) -> str | None:
    """Field summed by a "sum(<field>)" metric, or None if the metric is not of that form."""
    match = _METRIC_RE.match(metric)
    return match.group(1) if match else None


def to_number(value: Any) -> int | float:
    """Numeric contribution of a value; anything non-numeric counts as 0.

    Booleans count as 0/1 and numeric strings are parsed (blank is 0).
    NaN and infinities count as 0.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else 0
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return 0
        return number if math.isfinite(number) else 0
    return 0


class Aggregate(BaseTransform):
    """Summarize metrics by group.

    Rows whose group field is missing or None fall into the "unknown" group.
    """

    kind = StageKind.AGGREGATE

    def execute(self, rows: list[Row], ctx: StageContext) -> StageResult:
        cfg = AggregateConfig.from_dict(self.config)
        group_by = cfg.group_by or DEFAULT_GROUP_BY
        metric_field = parse_metric(cfg.metric)
        if metric_field is None:
            ctx.logger.warning("aggregate_metric_unsupported", metric=cfg.metric, fallback=DEFAULT_METRIC_FIELD)
            metric_field = DEFAULT_METRIC_FIELD

        groups: dict[Any, Row] = {}
        for row in rows:
            key = row.get(group_by)
            if key is None:
                key = UNKNOWN_GROUP
            elif not isinstance(key, Hashable):
                key = repr(key)
            if key not in groups:
                groups[key] = {"group": key, SUM_KEY: 0, "count": 0}
            groups[key][SUM_KEY] += to_number(row.get(metric_field))
            groups[key]["count"] += 1

        return StageResult(
            rows=list(groups.values()),
            message=f"Aggregating by {group_by} using {cfg.metric} ({len(groups)} groups)",
        )
