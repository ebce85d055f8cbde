"""Immutable per-operation state passed to providers."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from .catalog import HydrationFlag, SyncOperation
from .entity import SyncEntity
from .hydration import HydrationPolicy, flags_from
from .naming import to_snake_case
from .store import SyncStore

__all__ = ["SyncContext", "normalise_filter"]


def normalise_filter(criteria: Mapping[str, Any] | None) -> dict[str, Any]:
    """Snake-case filter keys and replace entity values with their ids."""

    normalised: dict[str, Any] = {}
    for key, value in (criteria or {}).items():
        if isinstance(value, SyncEntity):
            value = value.id
        normalised[to_snake_case(str(key))] = value
    return normalised


@dataclass(frozen=True, slots=True)
class SyncContext:
    """Store, hydration policy, filter and parent stack for one operation.

    Every builder returns a new context; ``depth`` is the number of parent
    entities on the stack.
    """

    store: SyncStore
    hydration: HydrationPolicy = field(default_factory=HydrationPolicy)
    filter: Mapping[str, Any] = field(default_factory=dict)
    stack: tuple[SyncEntity, ...] = ()
    operation: SyncOperation | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "filter", MappingProxyType(dict(self.filter)))

    @property
    def depth(self) -> int:
        return len(self.stack)

    @property
    def parent(self) -> SyncEntity | None:
        return self.stack[-1] if self.stack else None

    def with_hydration(
        self,
        flags: HydrationFlag | Iterable[str],
        replace: bool = True,
        entity: type[SyncEntity] | str | None = None,
        depth: int | None = None,
    ) -> SyncContext:
        policy = self.hydration.with_flags(flags_from(flags), replace=replace, entity=entity, depth=depth)
        return dataclasses.replace(self, hydration=policy)

    def with_filter(self, criteria: Mapping[str, Any] | None) -> SyncContext:
        return dataclasses.replace(self, filter=normalise_filter(criteria))

    def with_operation(self, operation: SyncOperation | None) -> SyncContext:
        return dataclasses.replace(self, operation=operation)

    def push(self, entity: SyncEntity) -> SyncContext:
        """Descend into ``entity``'s relationships. Filters do not carry over."""

        return dataclasses.replace(self, stack=(*self.stack, entity), filter={}, operation=None)
