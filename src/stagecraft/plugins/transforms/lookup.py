"""Lookup transform: enrich rows from an inline mapping table."""

from pydantic import Field

from stagecraft.contracts import Row, StageKind
from stagecraft.plugins.base import BaseTransform
from stagecraft.plugins.config_base import StageConfig
from stagecraft.plugins.context import StageContext
from stagecraft.plugins.results import StageResult


class LookupConfig(StageConfig):
    """Configuration for the lookup transform."""

    key: str = Field(default="status", description="Field whose value is looked up")
    mapping: str = Field(
        default="",
        description="Comma-separated key:label pairs, e.g. \"new:New,won:Closed Won\"",
    )


def parse_mapping(text: str) -> dict[str, str]:
    """Parse "k1:v1,k2:v2" into a dict.

    Whitespace around keys and labels is trimmed. Pairs without a colon
    or with an empty key are skipped. Only the first colon splits, so
    labels may contain colons. A later pair wins over an earlier one.
    """
    mapping: dict[str, str] = {}
    for pair in text.split(","):
        key, sep, label = pair.partition(":")
        key = key.strip()
        if not sep or not key:
            continue
        mapping[key] = label.strip()
    return mapping


def lookup_key(value: object) -> str:
    """Mapping key a row value is looked up under.

    Booleans match "true"/"false" and integral floats match their integer
    text, so 1.0 finds the "1" entry.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class Lookup(BaseTransform):
    """Enrich rows using a mapping table.

    Each output row is a copy of the input row plus `<key>_label`: the
    mapped label for lookup_key(row[key]), or row[key] itself when unmapped.
    """

    kind = StageKind.LOOKUP

    def execute(self, rows: list[Row], ctx: StageContext) -> StageResult:
        cfg = LookupConfig.from_dict(self.config)
        mapping = parse_mapping(cfg.mapping)
        label_field = f"{cfg.key}_label"

        enriched: list[Row] = []
        for row in rows:
            value = row.get(cfg.key)
            label = value if value is None else mapping.get(lookup_key(value), value)
            enriched.append({**row, label_field: label})

        return StageResult(rows=enriched, message=f"Lookup on key {cfg.key} ({len(enriched)} rows)")
