# src/stagecraft/plugins/__init__.py
"""Stage executors via pluggy.

- Base classes: BaseSource, BaseTransform, BaseSink
- Results: StageResult
- Registry: StageRegistry (discovery + lookup by kind)
- Hookspecs: hookimpl for third-party executors
"""

from stagecraft.plugins.base import BaseSink, BaseSource, BaseStage, BaseTransform
from stagecraft.plugins.config_base import StageConfig, StageConfigError
from stagecraft.plugins.context import StageContext
from stagecraft.plugins.hookspecs import hookimpl, hookspec
from stagecraft.plugins.manager import StageRegistry
from stagecraft.plugins.results import StageResult

__all__ = [
    "BaseSink",
    "BaseSource",
    "BaseStage",
    "BaseTransform",
    "StageConfig",
    "StageConfigError",
    "StageContext",
    "StageRegistry",
    "StageResult",
    "hookimpl",
    "hookspec",
]
