"""Fixtures compartidas para las pruebas de VoteChain.

Shared fixtures for the VoteChain tests.
"""

from __future__ import annotations

import pytest

from votechain.ledger.memory import InMemoryLedger
from votechain_fakes import T0, FakeClock, RecordingWriter


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(T0)


@pytest.fixture
def ledger(clock: FakeClock) -> InMemoryLedger:
    return InMemoryLedger(clock=clock)


@pytest.fixture
def writer() -> RecordingWriter:
    return RecordingWriter()
