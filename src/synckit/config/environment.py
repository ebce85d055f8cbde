"""Environment-driven settings for synckit entry points.

``EnvironmentSettings`` reads ``SYNCKIT_*`` variables (and a local ``.env``
file) for the few options that select *which* configuration to load.
Overrides of individual configuration values use the double underscore form
handled by :func:`collect_env_overrides`, e.g.
``SYNCKIT__PROVIDERS__API__BASE_URL=https://staging.example.org``.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .helpers import build_overrides

ENV_OVERRIDE_PREFIX = "SYNCKIT__"


class EnvironmentSettings(BaseSettings):
    """Typed view of synckit environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SYNCKIT_",
        env_file=(".env",),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    config: Path | None = Field(default=None, description="Path to the YAML configuration file.")
    log_level: str | None = Field(default=None, description="Overrides logging.level.")
    log_format: str | None = Field(default=None, description="Overrides logging.format.")

    @field_validator("log_level")
    @classmethod
    def _normalise_level(cls, value: str | None) -> str | None:
        if value is None:
            return None
        stripped = value.strip().upper()
        return stripped or None

    def as_overrides(self) -> dict[str, Any]:
        """Return configuration overrides implied by these settings."""

        logging_section: dict[str, Any] = {}
        if self.log_level:
            logging_section["level"] = self.log_level
        if self.log_format:
            logging_section["format"] = self.log_format.strip().lower()
        return {"logging": logging_section} if logging_section else {}


def load_environment_settings() -> EnvironmentSettings:
    """Instantiate :class:`EnvironmentSettings` from the process environment."""

    return EnvironmentSettings()


def coerce_env_value(raw: str) -> Any:
    """Parse an environment value as a YAML scalar, falling back to the raw text."""

    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw


def collect_env_overrides(
    env: Mapping[str, str],
    *,
    prefix: str = ENV_OVERRIDE_PREFIX,
) -> dict[str, Any]:
    """Build a nested override mapping from ``SYNCKIT__A__B=value`` variables."""

    pairs: list[tuple[tuple[str, ...], Any]] = []
    for key in sorted(env):
        if not key.startswith(prefix):
            continue
        path = tuple(part.lower() for part in key[len(prefix) :].split("__") if part)
        if path:
            pairs.append((path, coerce_env_value(env[key])))
    return build_overrides(pairs)


__all__ = [
    "ENV_OVERRIDE_PREFIX",
    "EnvironmentSettings",
    "coerce_env_value",
    "collect_env_overrides",
    "load_environment_settings",
]
