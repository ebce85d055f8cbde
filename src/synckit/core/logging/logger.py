"""Structured logging for synckit.

Every provider, transport and command line entry-point logs through one
``structlog`` configuration. A sync operation can then be followed end to
end: the operation start, each page fetched for it, every entity registered
in the identity store and every deferred relationship resolved.

Records are written to stderr; stdout is reserved for command output.
"""
from __future__ import annotations

import logging
from collections.abc import Iterator, MutableMapping, Sequence
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Final, cast

import structlog
from structlog.contextvars import (
    bind_contextvars,
    clear_contextvars,
    get_contextvars,
    unbind_contextvars,
)
from structlog.exceptions import DropEvent
from structlog.stdlib import BoundLogger

__all__ = ["DEFAULT_LOG_LEVEL", "LogConfig", "LogFormat", "UnifiedLogger"]

DEFAULT_LOG_LEVEL = logging.INFO
REDACTED: Final[str] = "***REDACTED***"

# Leading keys of key/value lines; the remaining keys follow in call order.
_KEY_VALUE_ORDER: Final[tuple[str, ...]] = (
    "timestamp",
    "level",
    "component",
    "provider",
    "entity",
    "operation",
    "message",
)


class LogFormat(str, Enum):
    """Renderers available to :class:`LogConfig`."""

    JSON = "json"
    KEY_VALUE = "key_value"


@dataclass(frozen=True, slots=True)
class LogConfig:
    level: int | str = DEFAULT_LOG_LEVEL
    format: LogFormat = LogFormat.JSON
    redact_fields: Sequence[str] = ("api_key", "access_token", "password", "authorization")

    def numeric_level(self) -> int:
        if isinstance(self.level, int):
            return self.level
        resolved = logging.getLevelNamesMapping().get(self.level.upper())
        if resolved is None:
            raise ValueError(f"Unsupported log level: {self.level}")
        return resolved


class _Redactor:
    """Mask configured keys before anything is rendered."""

    def __init__(self, fields: Sequence[str]) -> None:
        self.fields = frozenset(fields)

    def __call__(self, _: Any, __: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
        for key in self.fields.intersection(event_dict):
            event_dict[key] = REDACTED
        return event_dict


def _plain_event(_: Any, __: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    """Render ``LogEvents`` members as their dotted identifier."""

    event = event_dict.get("event")
    if isinstance(event, Enum):
        event_dict["event"] = str(event.value)
    return event_dict


def _drop_below_level(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    target = logger or logging.getLogger(UnifiedLogger.root_name)
    level = logging.getLevelNamesMapping().get(method_name.upper(), logging.ERROR)
    if not target.isEnabledFor(level):
        raise DropEvent
    return event_dict


class UnifiedLogger:
    """The one entry point modules use to configure and obtain loggers."""

    root_name: ClassVar[str] = "synckit"

    @staticmethod
    def _pre_chain(config: LogConfig) -> list[Any]:
        return [
            structlog.contextvars.merge_contextvars,
            _plain_event,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
            structlog.processors.EventRenamer("message"),
            _Redactor(config.redact_fields),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
        ]

    @staticmethod
    def _renderer(format: LogFormat) -> Any:
        if format is LogFormat.KEY_VALUE:
            return structlog.processors.KeyValueRenderer(
                key_order=list(_KEY_VALUE_ORDER),
                sort_keys=False,
                drop_missing=True,
            )
        return structlog.processors.JSONRenderer(sort_keys=True, ensure_ascii=False, default=str)

    @staticmethod
    def configure(config: LogConfig | None = None) -> None:
        """(Re)configure stdlib logging and structlog from ``config``."""

        config = config or LogConfig()
        level = config.numeric_level()
        pre_chain = UnifiedLogger._pre_chain(config)

        handler = logging.StreamHandler()
        handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                foreign_pre_chain=pre_chain,
                processors=[
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    UnifiedLogger._renderer(config.format),
                ],
            )
        )
        logging.basicConfig(handlers=[handler], level=level, force=True)

        structlog.configure(
            processors=[*pre_chain, _drop_below_level, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    @staticmethod
    def get(name: str | None = None) -> BoundLogger:
        return cast(BoundLogger, structlog.get_logger(name or UnifiedLogger.root_name))

    @staticmethod
    def bind(**context: Any) -> None:
        """Attach ``context`` to every later record in this context."""

        bind_contextvars(**context)

    @staticmethod
    def reset() -> None:
        clear_contextvars()

    @staticmethod
    def scoped(**context: Any) -> AbstractContextManager[None]:
        """Bind ``context`` for a ``with`` block, then restore what it shadowed."""

        @contextmanager
        def _scope() -> Iterator[None]:
            shadowed = {key: value for key, value in get_contextvars().items() if key in context}
            bind_contextvars(**context)
            try:
                yield None
            finally:
                unbind_contextvars(*context)
                if shadowed:
                    bind_contextvars(**shadowed)

        return _scope()
