"""Registry of structured logging event identifiers."""

from __future__ import annotations

from enum import Enum, auto

__all__ = ["LogEvents"]


class LogEvents(str, Enum):
    """Strongly typed registry of UnifiedLogger events.

    Members declared with :func:`auto` derive a dotted identifier from their
    name: the first part is the namespace, the last part the outcome and
    everything in between the action (``SYNC_OPERATION_START`` becomes
    ``sync.operation.start``).
    """

    @staticmethod
    def _generate_next_value_(name: str, start: int, count: int, _last_values: list[str]) -> str:
        parts = name.lower().split("_")
        namespace = parts[0]
        suffix = parts[-1] if len(parts) > 1 else "event"
        action = ".".join(parts[1:-1]) if len(parts) > 2 else "event"
        return ".".join((namespace, action, suffix))

    def __str__(self) -> str:
        return str(self.value)

    CLI_COMMAND_START = auto()
    CLI_COMMAND_FINISH = auto()
    CLI_COMMAND_ERROR = auto()
    CONFIG_LAYER_LOADED = auto()
    CONFIG_ENV_APPLIED = auto()
    HTTP_REQUEST_COMPLETED = auto()
    HTTP_REQUEST_EXCEPTION = auto()
    HTTP_REQUEST_FAILED = auto()
    HTTP_REQUEST_RETRY = auto()
    HTTP_PAGINATOR_PAGE_FETCHED = auto()
    HTTP_PAGINATOR_REQUEST_PREPARED = auto()
    SYNC_OPERATION_START = auto()
    SYNC_OPERATION_FINISH = auto()
    SYNC_OPERATION_ERROR = auto()
    SYNC_FILTER_IGNORED = auto()
    SYNC_FILTER_REJECTED = auto()
    SYNC_STORE_REGISTERED = auto()
    SYNC_STORE_REUSED = auto()
    SYNC_STORE_EVICTED = auto()
    SYNC_HYDRATION_DEFERRED = auto()
    SYNC_HYDRATION_EAGER = auto()
    SYNC_HYDRATION_SUPPRESSED = auto()
    SYNC_DEFERRED_RESOLVED = auto()
    SYNC_RESOLVER_THRESHOLD_EXCEEDED = auto()
