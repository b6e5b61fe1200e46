# src/stagecraft/plugins/manager.py
"""Stage registry: maps stage kinds to executor classes.

Uses pluggy for hook-based registration, so third-party packages can add
executors for custom catalog kinds by implementing stagecraft_get_stages.
"""

from typing import Any

import pluggy

from stagecraft.contracts import NodeRole
from stagecraft.plugins.base import BaseStage
from stagecraft.plugins.hookspecs import PROJECT_NAME, StagecraftStageSpec


class StageRegistry:
    """Lookup of stage executors keyed by kind.

    Usage:
        registry = StageRegistry()
        registry.register_builtin_plugins()
        executor_cls = registry.get_stage("Filter")
    """

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(StagecraftStageSpec)
        self._stages: dict[str, type[BaseStage]] = {}

    def register_builtin_plugins(self) -> None:
        """Discover and register the executors shipped with stagecraft."""
        from stagecraft.plugins.discovery import create_dynamic_hookimpl, discover_all_stages

        discovered = discover_all_stages()
        stage_classes = [cls for classes in discovered.values() for cls in classes]
        self.register(create_dynamic_hookimpl(stage_classes, "stagecraft_get_stages"))

    def register(self, plugin: Any) -> None:
        """Register a plugin object implementing stagecraft_get_stages."""
        self._pm.register(plugin)
        try:
            self._refresh_cache()
        except ValueError:
            self._pm.unregister(plugin)
            raise

    def _refresh_cache(self) -> None:
        """Rebuild the kind -> class map from all hooks.

        Raises:
            ValueError: On duplicate kinds or a kind/base-class role mismatch
        """
        stages: dict[str, type[BaseStage]] = {}
        # pluggy calls the most recently registered plugin first; reverse
        # so the first registration owns a kind in error messages
        for classes in reversed(self._pm.hook.stagecraft_get_stages()):
            for cls in classes:
                kind = str(cls.kind)
                if kind in stages:
                    raise ValueError(f"Duplicate stage executor for kind '{kind}'. Already registered by {stages[kind].__name__}")
                expected = NodeRole.for_kind(kind)
                if cls.role != expected:
                    raise ValueError(f"Executor {cls.__name__} is a {cls.role} but stage kind '{kind}' is a {expected}")
                stages[kind] = cls
        self._stages = stages

    @property
    def kinds(self) -> list[str]:
        return list(self._stages)

    def get_stages(self) -> list[type[BaseStage]]:
        return list(self._stages.values())

    def get_stage(self, kind: str) -> type[BaseStage] | None:
        """Executor class for a kind, or None if nothing handles it."""
        return self._stages.get(str(kind))

    def __contains__(self, kind: object) -> bool:
        return isinstance(kind, str) and str(kind) in self._stages
