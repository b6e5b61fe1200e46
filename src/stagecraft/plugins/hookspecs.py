# src/stagecraft/plugins/hookspecs.py
"""pluggy hook specifications for stage executors.

Usage (implementing a plugin):
    from stagecraft.plugins.hookspecs import hookimpl

    class MyPlugin:
        @hookimpl
        def stagecraft_get_stages(self):
            return [MyStage]
"""

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from stagecraft.plugins.base import BaseStage

PROJECT_NAME = "stagecraft"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)

hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class StagecraftStageSpec:
    """Hook specifications for stage executor plugins."""

    @hookspec
    def stagecraft_get_stages(self) -> list[type["BaseStage"]]:  # type: ignore[empty-body]
        """Return stage executor classes (not instances)."""
