"""Shared fixtures for eventry tests."""

import pytest

from eventry.core.events import Registry, TargetIndex, set_target_index
from eventry.core.tracing import TraceController


class Target:
    """Plain object used as an event target."""

    def __init__(self, name: str):
        self.name = name

    def __repr__(self) -> str:
        return f"Target({self.name!r})"


@pytest.fixture(autouse=True)
def fresh_index():
    """Every test gets its own target index and trace controller."""
    index = TargetIndex()
    set_target_index(index)
    TraceController.reset_instance()
    yield index
    set_target_index(TargetIndex())
    TraceController.reset_instance()


@pytest.fixture
def target_a() -> Target:
    return Target("A")


@pytest.fixture
def target_b() -> Target:
    return Target("B")


@pytest.fixture
def registry(target_a: Target) -> Registry:
    return Registry([target_a])


@pytest.fixture
def pair_registry(target_a: Target, target_b: Target) -> Registry:
    return Registry([target_a, target_b])


class Recorder:
    """Handler collecting every event it receives."""

    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)

    @property
    def types(self):
        return [event.type for event in self.events]

    @property
    def targets(self):
        return [event.target for event in self.events]


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def make_recorder():
    return Recorder


@pytest.fixture
def make_target():
    return Target
