"""Configuration models and loaders for synckit."""

from .environment import EnvironmentSettings, load_environment_settings
from .loader import load_config, load_raw_config
from .models import (
    HTTPClientConfig,
    HydrationConfig,
    PagerConfig,
    ProviderConfig,
    RetryConfig,
    SerializeConfig,
    SyncConfig,
)

__all__ = [
    "EnvironmentSettings",
    "HTTPClientConfig",
    "HydrationConfig",
    "PagerConfig",
    "ProviderConfig",
    "RetryConfig",
    "SerializeConfig",
    "SyncConfig",
    "load_config",
    "load_environment_settings",
    "load_raw_config",
]
