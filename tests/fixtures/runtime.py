"""Runtime-related pytest fixtures."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from synckit.core.http import HttpTransport
from synckit.core.logging import LogConfig, LogFormat, UnifiedLogger

__all__ = ["quiet_logging", "sleepless_transport"]


@pytest.fixture(autouse=True)  # type: ignore[misc]
def quiet_logging() -> Iterator[None]:
    """Keep log output to warnings and above and drop bound context afterwards."""
    UnifiedLogger.configure(LogConfig(level="WARNING", format=LogFormat.KEY_VALUE))
    yield
    UnifiedLogger.reset()


@pytest.fixture(autouse=True)  # type: ignore[misc]
def sleepless_transport(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Record retry backoff delays instead of sleeping."""
    delays: list[float] = []
    monkeypatch.setattr(HttpTransport, "_sleep", staticmethod(delays.append))
    return delays
