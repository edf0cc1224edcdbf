"""Shared fixtures for room registry and transport tests."""

from __future__ import annotations

import pytest

from tests.unit.room_testkit import ManualSessionTimers
from tests.unit.room_testkit import RegistryHarness


@pytest.fixture
def manual_timers() -> ManualSessionTimers:
    """Deterministic timer scheduler driven by ``advance(seconds)``."""
    return ManualSessionTimers()


@pytest.fixture
def harness(manual_timers: ManualSessionTimers) -> RegistryHarness:
    """Capacity-2 registry with manual timers and captured timer deliveries."""
    return RegistryHarness(timers=manual_timers, capacity=2)


@pytest.fixture(autouse=True)
def _campfire_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep process environment from leaking into settings-driven tests."""
    for name in (
        "CAMPFIRE_ROOM_CAPACITY",
        "CAMPFIRE_SESSION_DURATION_SECONDS",
        "CAMPFIRE_SESSION_WARNING_SECONDS",
        "CAMPFIRE_QUORUM_POLICY",
        "CAMPFIRE_QUORUM_FIXED_THRESHOLD",
    ):
        monkeypatch.delenv(name, raising=False)
