"""Pydantic configuration models."""

from .http import HTTPClientConfig, RetryConfig
from .sync import (
    HydrationConfig,
    HydrationRuleConfig,
    LoggingSection,
    PagerConfig,
    ProviderConfig,
    SerializeConfig,
    SyncConfig,
)

__all__ = [
    "HTTPClientConfig",
    "RetryConfig",
    "HydrationConfig",
    "HydrationRuleConfig",
    "LoggingSection",
    "PagerConfig",
    "ProviderConfig",
    "SerializeConfig",
    "SyncConfig",
]
