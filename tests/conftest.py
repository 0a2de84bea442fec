"""
tests/conftest.py
"""

import pytest

from fusionswap.core.time import ManualClock
from fusionswap.journal.keys import JournalKey
from tests.helpers.swap_fixtures import T0, build_engine


@pytest.fixture
def clock():
    """Deterministic clock starting at T0."""
    return ManualClock(T0)


@pytest.fixture
def engine(clock):
    """In-memory engine with maker, resolver and rival funded in both assets."""
    return build_engine(clock)


@pytest.fixture
def sink(engine):
    return engine.ctx.sink


@pytest.fixture
def key():
    """A fresh journal signing key for each test."""
    return JournalKey.generate()


@pytest.fixture
def key2():
    """A second independent key."""
    return JournalKey.generate()
