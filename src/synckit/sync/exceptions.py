"""Exception taxonomy raised by sync providers.

Every error names the entity type and the operation that was attempted so a
misconfigured provider can be diagnosed without backend-specific detail.
Errors raised while resolving a deferred relationship surface at the point of
first access, which may be long after the operation that returned the entity.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from synckit.core.runtime.errors import SynckitError

from .catalog import SyncOperation

__all__ = [
    "EntityNotFound",
    "FilterPolicyViolation",
    "SerializationDepthExceeded",
    "SyncEntityRegistryError",
    "SyncError",
    "TransportFailure",
    "UnsupportedOperation",
]


def _entity_name(entity: Any) -> str | None:
    if entity is None:
        return None
    if isinstance(entity, type):
        return entity.__name__
    return str(entity)


class SyncError(SynckitError):
    """Base class for sync failures."""

    def __init__(
        self,
        message: str,
        *,
        entity: type | str | None = None,
        operation: SyncOperation | None = None,
    ) -> None:
        self.entity = _entity_name(entity)
        self.operation = operation
        self.reason = message
        super().__init__(self._format(message))

    def _format(self, message: str) -> str:
        operation = self.operation.value if self.operation is not None else "-"
        return f"{message} [entity={self.entity or '-'}, operation={operation}]"

    def fill_context(self, *, entity: type | str | None = None, operation: SyncOperation | None = None) -> None:
        """Record ``entity`` and ``operation`` where the raiser left them unset."""

        if self.entity is None:
            self.entity = _entity_name(entity)
        if self.operation is None:
            self.operation = operation
        self.args = (self._format(self.reason),)


class EntityNotFound(SyncError):
    def __init__(
        self,
        message: str | None = None,
        *,
        entity: type | str | None = None,
        operation: SyncOperation | None = None,
        entity_id: Any = None,
    ) -> None:
        self.entity_id = entity_id
        super().__init__(
            message or f"Entity not found: {_entity_name(entity)}({entity_id!r})",
            entity=entity,
            operation=operation,
        )


class FilterPolicyViolation(SyncError):
    """Filter criteria were rejected under the ``FAIL`` policy."""

    def __init__(
        self,
        filters: Iterable[str],
        *,
        entity: type | str | None = None,
        operation: SyncOperation | None = None,
    ) -> None:
        self.filters = tuple(sorted(filters))
        super().__init__(
            f"Backend cannot apply filter(s): {', '.join(self.filters)}",
            entity=entity,
            operation=operation,
        )


class UnsupportedOperation(SyncError):
    pass


class TransportFailure(SyncError):
    """A backend call failed; the transport error is chained as ``__cause__``."""

    def __init__(
        self,
        message: str,
        *,
        entity: type | str | None = None,
        operation: SyncOperation | None = None,
        status_code: int | None = None,
    ) -> None:
        self.status_code = status_code
        super().__init__(message, entity=entity, operation=operation)


class SyncEntityRegistryError(SyncError, LookupError):
    pass


class SerializationDepthExceeded(SyncError):
    def __init__(self, depth: int, *, entity: type | str | None = None) -> None:
        self.depth = depth
        super().__init__(f"Serialization exceeded max_depth={depth}", entity=entity)
