"""Root conftest - shared fixtures: a fixed clock and an in-memory store."""

from datetime import datetime, timezone

import pytest

from tests.fakes import FixedClock, InMemoryTreasuryStore
from treasury.services.treasury_engine import TreasuryEngine

# Mid-month, so one-day steps never cross a month boundary by accident
START = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return FixedClock(START)


@pytest.fixture
def store():
    return InMemoryTreasuryStore()


@pytest.fixture
def engine(store, clock):
    return TreasuryEngine(store, clock=clock)
