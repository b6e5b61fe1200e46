# src/stagecraft/core/config.py
"""
Configuration schema and loading for stagecraft.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.

A settings file describes a pipeline to assemble through the graph store
plus the ambient knobs (logging, cycle policy, catalog override):

    pipeline:
      nodes:
        - name: sales
          kind: SqlSource
        - name: big_deals
          kind: Filter
          config:
            expression: "row.amount >= 500"
      connections:
        - from: sales
          to: big_deals
    execution:
      fail_on_cycle: false
    logging:
      level: INFO
"""

import os
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator


class PipelineNodeSettings(BaseModel):
    """One node of a pipeline definition."""

    model_config = {"frozen": True, "extra": "forbid"}

    name: str = Field(min_length=1, description="Local handle used by connections in this file")
    kind: str = Field(min_length=1, description="Stage kind from the catalog (e.g., 'Filter')")
    config: dict[str, str] = Field(
        default_factory=dict,
        description="Config overrides; keys must exist in the stage's config template",
    )

    @field_validator("config", mode="before")
    @classmethod
    def coerce_config_values(cls, v: Any) -> Any:
        """Config values are strings; YAML may hand us numbers or booleans."""
        if isinstance(v, dict):
            return {key: "" if value is None else str(value) for key, value in v.items()}
        return v


class ConnectionSettings(BaseModel):
    """A connection between two named nodes."""

    model_config = {"frozen": True, "extra": "forbid", "populate_by_name": True}

    from_node: str = Field(alias="from", description="Name of the upstream node")
    to_node: str = Field(alias="to", description="Name of the downstream node")


class PipelineSettings(BaseModel):
    """Nodes and connections to assemble, in creation order."""

    model_config = {"frozen": True, "extra": "forbid"}

    nodes: list[PipelineNodeSettings] = Field(default_factory=list)
    connections: list[ConnectionSettings] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_node_names(self) -> "PipelineSettings":
        """Node names must be unique."""
        names = [node.name for node in self.nodes]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate node name(s): {duplicates}")
        return self

    @model_validator(mode="after")
    def validate_connection_endpoints(self) -> "PipelineSettings":
        """Connections must reference defined nodes."""
        names = {node.name for node in self.nodes}
        for conn in self.connections:
            for endpoint in (conn.from_node, conn.to_node):
                if endpoint not in names:
                    raise ValueError(f"Connection references unknown node '{endpoint}'. Available nodes: {sorted(names)}")
        return self


class ExecutionSettings(BaseModel):
    """Preview execution behavior."""

    model_config = {"frozen": True, "extra": "forbid"}

    fail_on_cycle: bool = Field(
        default=False,
        description="Raise CycleDetectedError instead of reporting a partial run",
    )


class LoggingSettings(BaseModel):
    """Operator logging configuration."""

    model_config = {"frozen": True, "extra": "forbid"}

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    json_output: bool = Field(default=False, description="Emit JSON log lines instead of console output")

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


class StagecraftSettings(BaseModel):
    """Top-level stagecraft configuration.

    All settings are validated and frozen after construction.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    execution: ExecutionSettings = Field(default_factory=ExecutionSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    # NOTE: str rather than Path so the raw value round-trips through model_dump
    catalog_file: str | None = Field(
        default=None,
        description="Stage catalog YAML to use instead of the built-in catalog",
    )


# Regex pattern for ${VAR} or ${VAR:-default} syntax
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")

# Sections whose keys are settings names (not user data) and may arrive
# upper-cased from environment overrides such as STAGECRAFT_EXECUTION__FAIL_ON_CYCLE.
_KEY_NORMALIZED_SECTIONS = ("execution", "logging")


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values."""

    def _expand_string(value: str) -> str:
        def replacer(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default = match.group(2)
            env_value = os.environ.get(var_name)
            if env_value is not None:
                return env_value
            if default is not None:
                return default
            # No env var and no default - keep original
            return match.group(0)

        return _ENV_VAR_PATTERN.sub(replacer, value)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _expand_string(value)
        elif isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_expand_value(item) for item in value]
        else:
            return value

    return {k: _expand_value(v) for k, v in config.items()}


def _normalize_section_keys(config: dict[str, Any]) -> dict[str, Any]:
    result = dict(config)
    for section in _KEY_NORMALIZED_SECTIONS:
        if isinstance(result.get(section), dict):
            result[section] = {str(k).lower(): v for k, v in result[section].items()}
    return result


def load_settings(config_path: Path) -> StagecraftSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (STAGECRAFT_*) - highest priority
    2. Config file
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: STAGECRAFT_EXECUTION__FAIL_ON_CYCLE for nested keys.

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="STAGECRAFT",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys; filter out its internal settings
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}

    raw_config = _normalize_section_keys(raw_config)
    raw_config = _expand_env_vars(raw_config)

    return StagecraftSettings(**raw_config)


def resolve_config(settings: StagecraftSettings) -> dict[str, Any]:
    """Convert validated settings to a JSON-ready dict (explicit + defaults)."""
    return settings.model_dump(mode="json", by_alias=True)
