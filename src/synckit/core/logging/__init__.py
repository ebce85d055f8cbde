"""Structured logging primitives for the synckit core package."""

from .log_events import LogEvents
from .logger import DEFAULT_LOG_LEVEL, LogConfig, LogFormat, UnifiedLogger

__all__ = [
    "DEFAULT_LOG_LEVEL",
    "LogConfig",
    "LogEvents",
    "LogFormat",
    "UnifiedLogger",
]
