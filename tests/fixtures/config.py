"""Configuration-related pytest fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import yaml

from .backend import BASE_URL

__all__ = ["config_payload", "config_file"]


@pytest.fixture  # type: ignore[misc]
def config_payload() -> dict[str, Any]:
    """A complete configuration document for the fake backend."""
    return {
        "http": {
            "timeout_sec": 10,
            "retries": {"total": 0},
            "headers": {"User-Agent": "pytest"},
        },
        "providers": {
            "placeholder": {
                "base_url": BASE_URL,
                "pager": {"kind": "link_header"},
                "filter_policy": "ignore",
            },
        },
        "hydration": {
            "default": ["lazy"],
            "rules": [{"flags": ["eager"], "entity": "User", "depth": 1}],
        },
        "serialization": {"key_case": "camel", "deferred": "link"},
        "logging": {"level": "ERROR", "format": "key_value"},
    }


@pytest.fixture  # type: ignore[misc]
def config_file(tmp_path: Path, config_payload: dict[str, Any]) -> Path:
    """``config_payload`` written to a YAML file."""
    path = tmp_path / "synckit.yaml"
    path.write_text(yaml.safe_dump(config_payload, sort_keys=False), encoding="utf-8")
    return path
