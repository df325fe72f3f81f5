"""Shared fixtures: a controllable clock and engines wired to in-memory storage."""

import pytest

from learner_model.config import Settings
from learner_model.engine import UserModelingEngine
from learner_model.storage.memory_store import InMemoryUserStore

START_MS = 1_700_000_000_000


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: int = START_MS):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryUserStore()


@pytest.fixture
def engine(store, clock):
    return UserModelingEngine(store=store, settings=Settings(), clock=clock)
