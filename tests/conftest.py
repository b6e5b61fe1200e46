# tests/conftest.py
"""Shared test fixtures.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import itertools
import logging
import os
from collections.abc import Callable, Iterator
from datetime import UTC, datetime

import pytest
import structlog
from hypothesis import Phase, Verbosity, settings

from stagecraft.core.catalog import StageCatalog, load_catalog
from stagecraft.core.dag import GraphStore
from stagecraft.engine.clock import MockClock
from stagecraft.engine.orchestrator import PreviewEngine
from stagecraft.plugins.manager import StageRegistry
from stagecraft.workspace import Workspace

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


def sequential_ids(prefix: str = "n") -> Callable[[], str]:
    """Deterministic node id factory: n1, n2, ..."""
    counter = itertools.count(1)
    return lambda: f"{prefix}{next(counter)}"


@pytest.fixture
def id_factory() -> Callable[[], str]:
    return sequential_ids()


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """Undo configure_logging() calls so handlers never outlive a test's streams."""
    yield
    root = logging.getLogger()
    root.handlers = []
    root.setLevel(logging.WARNING)
    structlog.reset_defaults()


@pytest.fixture(scope="session")
def catalog() -> StageCatalog:
    return load_catalog()


@pytest.fixture(scope="session")
def registry() -> StageRegistry:
    reg = StageRegistry()
    reg.register_builtin_plugins()
    return reg


@pytest.fixture
def clock() -> MockClock:
    return MockClock(start=datetime(2024, 3, 1, 9, 30, 0, tzinfo=UTC))


@pytest.fixture
def store() -> GraphStore:
    return GraphStore(id_factory=sequential_ids())


@pytest.fixture
def engine(registry: StageRegistry, clock: MockClock) -> PreviewEngine:
    return PreviewEngine(registry, clock=clock)


@pytest.fixture
def workspace(catalog: StageCatalog, registry: StageRegistry, clock: MockClock) -> Workspace:
    return Workspace(catalog=catalog, registry=registry, clock=clock, id_factory=sequential_ids())
