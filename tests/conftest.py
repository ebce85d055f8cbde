"""Shared pytest fixtures for synckit tests."""

from __future__ import annotations

pytest_plugins = [
    "tests.fixtures.runtime",
    "tests.fixtures.backend",
    "tests.fixtures.providers",
    "tests.fixtures.config",
]
