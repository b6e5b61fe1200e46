# src/stagecraft/plugins/config_base.py
"""Base class for typed stage configurations.

Node config values are strings edited freely by the user, so stage
configs declare defaults for every key and ignore keys they do not know
(custom catalogs may carry extra display keys).

Example:
    class LookupConfig(StageConfig):
        key: str = "status"
        mapping: str = ""

    cfg = LookupConfig.from_dict(node.config)
"""

from collections.abc import Mapping
from typing import Any, Self

from pydantic import BaseModel, ValidationError


class StageConfigError(Exception):
    """Raised when a stage configuration cannot be interpreted."""


class StageConfig(BaseModel):
    """Base class for stage configurations."""

    model_config = {"extra": "ignore", "frozen": True}

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> Self:
        """Create config from a node's config mapping.

        Raises:
            StageConfigError: If configuration is invalid.
        """
        try:
            return cls.model_validate(dict(config))
        except ValidationError as e:
            raise StageConfigError(f"Invalid configuration for {cls.__name__}: {e}") from e
