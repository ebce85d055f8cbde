"""Placeholders for relationships that have not been fetched yet.

A placeholder wraps a zero-argument resolver that runs at most once. When the
resolver succeeds the value is cached and, if the placeholder knows the entity
field it stands in for, the field's state is replaced with the value. A
resolver that raises is not marked as resolved; the error reaches whoever
touched the relationship.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping, Sequence
from typing import TYPE_CHECKING, Any, overload

from synckit.core.logging import LogEvents, UnifiedLogger

if TYPE_CHECKING:
    from .entity import SyncEntity

__all__ = ["DeferredEntity", "DeferredRelationship"]

_log = UnifiedLogger.get(__name__)


class _Placeholder:
    def __init__(
        self,
        entity_type: type[SyncEntity],
        resolver: Callable[[], Any],
        *,
        owner: SyncEntity | None = None,
        field: str | None = None,
    ) -> None:
        self.entity_type = entity_type
        self.owner = owner
        self.field = field
        self._resolver: Callable[[], Any] | None = resolver
        self._value: Any = None
        self._resolved = False

    @property
    def resolved(self) -> bool:
        return self._resolved

    def resolve(self) -> Any:
        if not self._resolved:
            resolver = self._resolver
            value = resolver() if resolver is not None else None
            self._value = value
            self._resolved = True
            self._resolver = None
            _log.debug(
                LogEvents.SYNC_DEFERRED_RESOLVED,
                component="sync.deferred",
                entity=self.entity_type.__name__,
                field=self.field,
                owner=repr(self.owner) if self.owner is not None else None,
            )
            if self.owner is not None and self.field is not None:
                self.owner.replace_deferred(self.field, self, value)
        return self._value


class DeferredEntity(_Placeholder):
    """A single related entity known only by its id."""

    def __init__(
        self,
        entity_type: type[SyncEntity],
        entity_id: int | str,
        resolver: Callable[[], SyncEntity],
        *,
        owner: SyncEntity | None = None,
        field: str | None = None,
    ) -> None:
        super().__init__(entity_type, resolver, owner=owner, field=field)
        self.entity_id = entity_id

    def __repr__(self) -> str:
        state = "resolved" if self._resolved else "pending"
        return f"<DeferredEntity {self.entity_type.__name__}({self.entity_id!r}) {state}>"


class DeferredRelationship(_Placeholder, Sequence):
    """A list of related entities fetched with ``filter`` on first use.

    Iterating, indexing or taking the length resolves the relationship.
    """

    def __init__(
        self,
        entity_type: type[SyncEntity],
        filter: Mapping[str, Any],
        resolver: Callable[[], list[SyncEntity]],
        *,
        owner: SyncEntity | None = None,
        field: str | None = None,
    ) -> None:
        super().__init__(entity_type, resolver, owner=owner, field=field)
        self.filter = dict(filter)

    @overload
    def __getitem__(self, index: int) -> SyncEntity: ...

    @overload
    def __getitem__(self, index: slice) -> list[SyncEntity]: ...

    def __getitem__(self, index: int | slice) -> SyncEntity | list[SyncEntity]:
        return self.resolve()[index]

    def __len__(self) -> int:
        return len(self.resolve())

    def __iter__(self) -> Iterator[SyncEntity]:
        return iter(self.resolve())

    def __repr__(self) -> str:
        state = "resolved" if self._resolved else "pending"
        return f"<DeferredRelationship {self.entity_type.__name__} {self.filter!r} {state}>"
