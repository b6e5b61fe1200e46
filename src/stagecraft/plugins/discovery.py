# src/stagecraft/plugins/discovery.py
"""Discovery of built-in stage executors by package scanning.

Scans the executor packages for classes that:
1. Inherit from the package's base class (BaseSource, BaseTransform, BaseSink)
2. Have a non-empty `kind` class attribute
3. Are not abstract
"""

import importlib
import inspect
import logging
import pkgutil
from typing import Any

logger = logging.getLogger(__name__)

# Which subpackage holds which executor type (non-recursive)
PLUGIN_SCAN_CONFIG: dict[str, str] = {
    "sources": "stagecraft.plugins.sources",
    "transforms": "stagecraft.plugins.transforms",
    "sinks": "stagecraft.plugins.sinks",
}


def _get_base_classes() -> dict[str, type]:
    """Base classes per executor type (deferred import)."""
    from stagecraft.plugins.base import BaseSink, BaseSource, BaseTransform

    return {
        "sources": BaseSource,
        "transforms": BaseTransform,
        "sinks": BaseSink,
    }


def discover_stages_in_package(package_name: str, base_class: type) -> list[type]:
    """Discover executor classes in every module of a package.

    Executor code is system-owned: import errors are bugs and propagate.
    """
    package = importlib.import_module(package_name)
    discovered: list[type] = []

    for module_info in sorted(pkgutil.iter_modules(package.__path__), key=lambda m: m.name):
        if module_info.ispkg or module_info.name.startswith("_"):
            continue
        module = importlib.import_module(f"{package_name}.{module_info.name}")

        for name, obj in inspect.getmembers(module, inspect.isclass):
            # Defined here, not imported
            if obj.__module__ != module.__name__:
                continue
            if not issubclass(obj, base_class) or obj is base_class or inspect.isabstract(obj):
                continue
            if not getattr(obj, "kind", None):
                logger.warning(
                    "Class %s in %s inherits from %s but has no/empty 'kind' attribute - skipping",
                    name,
                    module.__name__,
                    base_class.__name__,
                )
                continue
            discovered.append(obj)

    return discovered


def discover_all_stages() -> dict[str, list[type]]:
    """Discover all built-in executors.

    Returns:
        {"sources": [...], "transforms": [...], "sinks": [...]}
    """
    base_classes = _get_base_classes()
    return {
        stage_type: discover_stages_in_package(package_name, base_classes[stage_type])
        for stage_type, package_name in PLUGIN_SCAN_CONFIG.items()
    }


def create_dynamic_hookimpl(stage_classes: list[type], hook_method_name: str) -> object:
    """Create a pluggy hookimpl object returning the given classes."""
    from stagecraft.plugins.hookspecs import hookimpl

    class DynamicHookImpl:
        """Dynamically generated hook implementer."""

    def hook_method(self: Any) -> list[type]:
        return stage_classes

    setattr(DynamicHookImpl, hook_method_name, hookimpl(hook_method))
    return DynamicHookImpl()
