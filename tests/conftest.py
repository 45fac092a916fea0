"""
Pytest configuration and shared fixtures for test suite.
"""
from __future__ import annotations

import os
from datetime import datetime, timezone

import pytest

from src.treasury.core.config import CurrencyThreshold
from src.treasury.data.storage.memory import InMemorySnapshotStore
from tests.fakes import RecordingSink

# never talk to a real Telegram bot from tests
for _k in list(os.environ):
    if _k.startswith("TELEGRAM_"):
        os.environ.pop(_k)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def store() -> InMemorySnapshotStore:
    return InMemorySnapshotStore()


@pytest.fixture
def btc_threshold() -> CurrencyThreshold:
    return CurrencyThreshold(
        symbol="BTC",
        min_wallet_balance=1_000,
        max_wallet_balance=10_000,
        max_unused_wallet_balance=500,
        min_local_balance=2_000,
        min_remote_balance=3_000,
    )


@pytest.fixture
def t0() -> datetime:
    return datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

