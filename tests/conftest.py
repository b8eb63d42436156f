"""Shared test fixtures.

Time is faked everywhere: ``FakeClock`` serves as the wall clock, the
monotonic clock and the sleep function, so backoff and pacing can be
asserted without waiting.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import pytest

from clubnet.config import set_config

AUDIT_LOGGER_NAME = "clubnet.core.observability.audit.audit"


class FakeClock:
    """Controllable clock whose ``sleep`` advances time instead of waiting."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        # Still yield so other tasks get scheduled
        await asyncio.sleep(0)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def audit_events(caplog):
    """Return a callable listing audit event dicts captured so far."""
    caplog.set_level(logging.INFO, logger=AUDIT_LOGGER_NAME)

    def _events(event_type: Optional[str] = None) -> List[Dict[str, Any]]:
        events = [r.audit for r in caplog.records if r.name == AUDIT_LOGGER_NAME]
        if event_type is not None:
            events = [e for e in events if e["event_type"] == event_type]
        return events

    return _events


@pytest.fixture(autouse=True)
def _reset_global_config():
    """Isolate tests from the global settings instance."""
    set_config(None)
    yield
    set_config(None)
