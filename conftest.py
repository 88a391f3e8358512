"""Shared test fixtures."""
from datetime import datetime, timedelta, timezone

import pytest
from loguru import logger

from market.models import Tick

T0 = datetime(2024, 1, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_tick():
    """Factory for ticks offset ``seconds`` from a fixed start time."""
    def _make(symbol="EURUSD", bid=1.1000, ask=1.1002, seconds=0.0) -> Tick:
        return Tick(symbol=symbol, bid=bid, ask=ask, time=T0 + timedelta(seconds=seconds))
    return _make


@pytest.fixture
def log_messages():
    """Collect loguru messages emitted during a test."""
    messages = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
