"""Kinds, roles and statuses used across subsystem boundaries."""

from enum import StrEnum


class StageKind(StrEnum):
    """Built-in stage kinds.

    Values are the identifiers used in catalog files and trace lines.
    """

    SQL_SOURCE = "SqlSource"
    CSV_IMPORT = "CsvImport"
    FILTER = "Filter"
    LOOKUP = "Lookup"
    AGGREGATE = "Aggregate"
    CSV_DESTINATION = "CsvDestination"
    WAREHOUSE_LOAD = "WarehouseLoad"


class NodeRole(StrEnum):
    """Derived category of a node.

    Determines which ports a node exposes:
    - SOURCE: output only, never accepts an incoming connection
    - TRANSFORM: one input, one output
    - DESTINATION: input only, never produces an outgoing connection
    """

    SOURCE = "source"
    TRANSFORM = "transform"
    DESTINATION = "destination"

    @classmethod
    def for_kind(cls, kind: str) -> "NodeRole":
        """Derive the role of a stage kind.

        Kinds outside the built-in source/destination sets are transforms,
        including catalog-defined kinds the engine has no executor for.
        """
        value = str(kind)
        if value in _SOURCE_KINDS:
            return cls.SOURCE
        if value in _DESTINATION_KINDS:
            return cls.DESTINATION
        return cls.TRANSFORM


_SOURCE_KINDS = frozenset({StageKind.SQL_SOURCE.value, StageKind.CSV_IMPORT.value})
_DESTINATION_KINDS = frozenset({StageKind.CSV_DESTINATION.value, StageKind.WAREHOUSE_LOAD.value})


class RunStatus(StrEnum):
    """Outcome of a preview run.

    PARTIAL means some nodes could not be ordered (cycle) and were not run.
    """

    COMPLETED = "completed"
    PARTIAL = "partial"
