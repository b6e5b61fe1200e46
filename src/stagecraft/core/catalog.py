# src/stagecraft/core/catalog.py
"""Stage catalog: the enumerable list of stage definitions.

The catalog is configuration data, not code. The built-in catalog ships as
stages.yaml next to this module; callers may load their own file with the
same layout:

    sources:
      - kind: SqlSource
        label: SQL Source
        description: Pull data via query
        config: {query: "SELECT * FROM sales"}
    transforms: [...]
    destinations: [...]

Adding a stage kind is a catalog entry plus (optionally) an executor
registered for that kind. Kinds with no executor pass rows through.
"""

from __future__ import annotations

from collections.abc import Iterator
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from stagecraft.contracts import CatalogError, NodeRole, StageKind, UnknownStageKindError

type CatalogSection = Literal["sources", "transforms", "destinations"]

_SECTION_ROLES: dict[str, NodeRole] = {
    "sources": NodeRole.SOURCE,
    "transforms": NodeRole.TRANSFORM,
    "destinations": NodeRole.DESTINATION,
}

_BUILTIN_KINDS = frozenset(kind.value for kind in StageKind)


class StageDefinition(BaseModel):
    """A palette entry: what a new node of this kind looks like."""

    model_config = {"frozen": True, "extra": "forbid"}

    kind: str = Field(min_length=1, description="Stage kind identifier (e.g., 'Filter')")
    label: str = Field(description="Display label for new nodes")
    description: str = Field(default="", description="One-line description shown in the palette")
    config: dict[str, str] = Field(
        default_factory=dict,
        description="Config template cloned into every new node of this kind",
    )

    @field_validator("config", mode="before")
    @classmethod
    def coerce_config_values(cls, v: Any) -> Any:
        """YAML turns bare numbers and booleans into non-strings; config values are strings."""
        if isinstance(v, dict):
            return {key: "" if value is None else str(value) for key, value in v.items()}
        return v

    @property
    def role(self) -> NodeRole:
        """Role of nodes created from this definition."""
        return NodeRole.for_kind(self.kind)


class StageCatalogSettings(BaseModel):
    """On-disk layout of a catalog file."""

    model_config = {"frozen": True, "extra": "forbid"}

    sources: list[StageDefinition] = Field(default_factory=list)
    transforms: list[StageDefinition] = Field(default_factory=list)
    destinations: list[StageDefinition] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_kinds(self) -> StageCatalogSettings:
        """Kinds are unique and built-in kinds sit in the section for their role."""
        seen: set[str] = set()
        for section, definitions in self._sections():
            for definition in definitions:
                if definition.kind in seen:
                    raise ValueError(f"Duplicate stage kind in catalog: {definition.kind!r}")
                seen.add(definition.kind)

                expected = _SECTION_ROLES[section]
                if definition.kind in _BUILTIN_KINDS and definition.role != expected:
                    raise ValueError(
                        f"Stage kind {definition.kind!r} is a {definition.role} and cannot be listed under '{section}'"
                    )
                if definition.kind not in _BUILTIN_KINDS and expected != NodeRole.TRANSFORM:
                    # Roles of custom kinds derive to 'transform'; listing them
                    # elsewhere would give the node ports its section promises it lacks.
                    raise ValueError(f"Custom stage kind {definition.kind!r} can only be listed under 'transforms'")
        return self

    def _sections(self) -> list[tuple[str, list[StageDefinition]]]:
        return [
            ("sources", self.sources),
            ("transforms", self.transforms),
            ("destinations", self.destinations),
        ]


class StageCatalog:
    """Read-only lookup over stage definitions.

    Definitions keep file order within each section, sections ordered
    sources, transforms, destinations.
    """

    def __init__(self, settings: StageCatalogSettings) -> None:
        self._sections: MappingProxyType[str, tuple[StageDefinition, ...]] = MappingProxyType(
            {
                "sources": tuple(settings.sources),
                "transforms": tuple(settings.transforms),
                "destinations": tuple(settings.destinations),
            }
        )
        self._by_kind: dict[str, StageDefinition] = {
            definition.kind: definition for definitions in self._sections.values() for definition in definitions
        }

    def __iter__(self) -> Iterator[StageDefinition]:
        return iter(self._by_kind.values())

    def __len__(self) -> int:
        return len(self._by_kind)

    def __contains__(self, kind: object) -> bool:
        return isinstance(kind, str) and str(kind) in self._by_kind

    @property
    def kinds(self) -> list[str]:
        return list(self._by_kind)

    def section(self, name: CatalogSection) -> tuple[StageDefinition, ...]:
        """Definitions listed under one palette section."""
        return self._sections[name]

    def get(self, kind: str) -> StageDefinition:
        """Look up a definition by kind.

        Raises:
            UnknownStageKindError: If the kind is not in the catalog
        """
        try:
            return self._by_kind[str(kind)]
        except KeyError:
            raise UnknownStageKindError(str(kind), self.kinds) from None


def _parse_catalog(raw: Any, origin: str) -> StageCatalog:
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise CatalogError(f"Catalog {origin} must be a mapping of sections, got {type(raw).__name__}")
    try:
        settings = StageCatalogSettings.model_validate(raw)
    except ValidationError as e:
        raise CatalogError(f"Invalid catalog {origin}: {e}") from e
    return StageCatalog(settings)


def load_catalog(path: Path | None = None) -> StageCatalog:
    """Load a stage catalog from YAML.

    Args:
        path: Catalog file to load. None loads the built-in catalog.

    Returns:
        Validated StageCatalog

    Raises:
        CatalogError: If the file is not valid YAML or fails validation
        FileNotFoundError: If path does not exist
    """
    if path is None:
        text = resources.files("stagecraft.core").joinpath("stages.yaml").read_text(encoding="utf-8")
        origin = "<built-in>"
    else:
        if not path.exists():
            raise FileNotFoundError(f"Catalog file not found: {path}")
        text = path.read_text(encoding="utf-8")
        origin = str(path)

    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise CatalogError(f"Invalid YAML in catalog {origin}: {e}") from e
    return _parse_catalog(raw, origin)
