"""Hydration policy and the engine that applies it to relationship fields.

Depth convention: entities returned by an operation are at depth 0 and their
relationships are hydrated at depth 1. A rule bounded to depth ``N`` applies
to relationships at depths ``1..N``. Eager fetches run depth-first through
the owning provider with the parent pushed onto the context stack, so the
fetched entities hydrate their own relationships at ``depth + 1``.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from synckit.config.models.sync import HydrationConfig
from synckit.core.logging import LogEvents, UnifiedLogger

from .catalog import HydrationFlag
from .deferred import DeferredEntity, DeferredRelationship
from .entity import (
    UNSET,
    Deferred,
    HasOne,
    Relationship,
    RelationshipState,
    Resolved,
    SyncEntity,
    get_entity_type,
)
from .store import IdentityKey

if TYPE_CHECKING:
    from .context import SyncContext
    from .provider import SyncProvider

__all__ = ["HydrationEngine", "HydrationPolicy", "HydrationRule", "flags_from"]


@dataclass(frozen=True, slots=True)
class HydrationRule:
    """Flags applied to relationships targeting ``entity`` up to ``depth``."""

    flags: HydrationFlag
    entity: type[SyncEntity] | str | None = None
    depth: int | None = None

    def applies_to(self, entity_type: type[SyncEntity], depth: int) -> bool:
        if self.depth is not None and depth > self.depth:
            return False
        if self.entity is None:
            return True
        if isinstance(self.entity, str):
            return any(klass.__name__ == self.entity for klass in entity_type.__mro__)
        return issubclass(entity_type, self.entity)


@dataclass(frozen=True, slots=True)
class HydrationPolicy:
    """Default hydration flags plus ordered overrides.

    Among the rules that apply, entity-specific rules beat global ones, then
    depth-bounded rules beat unbounded ones, then later rules beat earlier
    ones. With no applicable rule the default flags apply.
    """

    default: HydrationFlag = HydrationFlag.LAZY
    rules: tuple[HydrationRule, ...] = ()

    @classmethod
    def from_config(cls, config: HydrationConfig) -> HydrationPolicy:
        rules = tuple(
            HydrationRule(HydrationFlag.from_names(rule.flags), rule.entity, rule.depth)
            for rule in config.rules
        )
        return cls(default=HydrationFlag.from_names(config.default), rules=rules)

    def flags_for(self, entity_type: type[SyncEntity], depth: int) -> HydrationFlag:
        best: HydrationRule | None = None
        best_rank: tuple[bool, bool, int] | None = None
        for index, rule in enumerate(self.rules):
            if not rule.applies_to(entity_type, depth):
                continue
            rank = (rule.entity is not None, rule.depth is not None, index)
            if best_rank is None or rank > best_rank:
                best, best_rank = rule, rank
        return best.flags if best is not None else self.default

    def mode_for(self, entity_type: type[SyncEntity], depth: int) -> HydrationFlag:
        return self.flags_for(entity_type, depth).mode()

    def with_flags(
        self,
        flags: HydrationFlag,
        *,
        replace: bool = True,
        entity: type[SyncEntity] | str | None = None,
        depth: int | None = None,
    ) -> HydrationPolicy:
        """Return a policy with ``flags`` applied globally or to ``entity``/``depth``.

        With ``replace=False`` the flags are added to those currently in effect
        for the same target instead of replacing them.
        """

        if depth is not None and depth < 1:
            msg = f"Hydration depth must be at least 1, got {depth}"
            raise ValueError(msg)
        if entity is None and depth is None:
            return dataclasses.replace(self, default=flags if replace else self.default | flags)
        if not replace:
            target = SyncEntity if entity is None else get_entity_type(entity)
            flags |= self.flags_for(target, depth or 1)
        return dataclasses.replace(self, rules=(*self.rules, HydrationRule(flags, entity, depth)))


class HydrationEngine:
    """Populate, defer or suppress the relationship fields of new entities."""

    def __init__(self) -> None:
        self._log = UnifiedLogger.get(__name__).bind(component="sync.hydration")

    def hydrate(self, entity: SyncEntity, context: SyncContext) -> SyncEntity:
        for name, relationship in type(entity).relationships().items():
            self._hydrate_field(entity, name, relationship, context)
        return entity

    def _hydrate_field(
        self,
        entity: SyncEntity,
        name: str,
        relationship: Relationship,
        context: SyncContext,
    ) -> None:
        provider = entity.provider
        if provider is None or entity.relationship_state(name) is not UNSET:
            return
        depth = context.depth + 1
        target = relationship.target
        mode = context.hydration.mode_for(target, depth)
        log_context = {
            "entity": type(entity).__name__,
            "field": name,
            "target": target.__name__,
            "depth": depth,
        }
        if mode is HydrationFlag.SUPPRESS:
            entity.set_relationship_state(name, UNSET)
            self._log.debug(LogEvents.SYNC_HYDRATION_SUPPRESSED, **log_context)
            return

        child = context.push(entity)
        if isinstance(relationship, HasOne):
            state = self._hydrate_one(entity, name, target, mode, provider, child)
        else:
            state = self._hydrate_many(entity, name, relationship, target, mode, provider, child)
        entity.set_relationship_state(name, state)
        if isinstance(state, Deferred):
            self._log.debug(LogEvents.SYNC_HYDRATION_DEFERRED, **log_context)
        elif mode is HydrationFlag.EAGER and isinstance(state, Resolved):
            self._log.debug(LogEvents.SYNC_HYDRATION_EAGER, **log_context)

    def _hydrate_one(
        self,
        entity: SyncEntity,
        name: str,
        target: type[SyncEntity],
        mode: HydrationFlag,
        provider: SyncProvider,
        child: SyncContext,
    ) -> RelationshipState:
        captured = entity.captured_relationship(name)
        if captured is None:
            return UNSET
        if isinstance(captured, Mapping):
            return Resolved(provider.materialize(target, captured, child))
        if isinstance(captured, SyncEntity):
            return Resolved(captured)

        key = IdentityKey(provider.provider_hash, target.__name__, captured)
        existing = child.store.get(key)
        if existing is not None:
            return Resolved(existing)

        def fetch() -> SyncEntity:
            return child.store.get(key) or provider.with_(target, child).get(captured)

        if mode is HydrationFlag.EAGER:
            return Resolved(fetch())
        return Deferred(DeferredEntity(target, captured, fetch, owner=entity, field=name))

    def _hydrate_many(
        self,
        entity: SyncEntity,
        name: str,
        relationship: Any,
        target: type[SyncEntity],
        mode: HydrationFlag,
        provider: SyncProvider,
        child: SyncContext,
    ) -> RelationshipState:
        captured = entity.captured_relationship(name)
        if _is_sequence(captured):
            ids = [item for item in captured if not isinstance(item, (Mapping, SyncEntity))]
            if not ids:
                return Resolved([_materialize_item(provider, target, item, child) for item in captured])

            def fetch_captured() -> list[SyncEntity]:
                return [_materialize_item(provider, target, item, child) for item in captured]

            if mode is HydrationFlag.EAGER:
                return Resolved(fetch_captured())
            filter_ = {"id": ids}
            return Deferred(DeferredRelationship(target, filter_, fetch_captured, owner=entity, field=name))

        if entity.id is None:
            return UNSET
        filter_ = {relationship.filter_key: entity.id}

        def fetch_list() -> list[SyncEntity]:
            return provider.with_(target, child).get_list(filter_)

        if mode is HydrationFlag.EAGER:
            return Resolved(fetch_list())
        return Deferred(DeferredRelationship(target, filter_, fetch_list, owner=entity, field=name))


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def _materialize_item(
    provider: SyncProvider,
    target: type[SyncEntity],
    item: Any,
    context: SyncContext,
) -> SyncEntity:
    if isinstance(item, SyncEntity):
        return item
    if isinstance(item, Mapping):
        return provider.materialize(target, item, context)
    key = IdentityKey(provider.provider_hash, target.__name__, item)
    return context.store.get(key) or provider.with_(target, context).get(item)


def flags_from(value: HydrationFlag | Iterable[str]) -> HydrationFlag:
    """Accept a flag value or flag names such as ``("eager",)``."""

    if isinstance(value, HydrationFlag):
        return value
    return HydrationFlag.from_names(value)
