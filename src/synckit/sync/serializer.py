"""Render entity graphs as plain nested mappings.

The walk is depth-first. Entities currently being rendered on the path from
the root are tracked by identity key (object identity for unkeyed entities);
meeting one of them again yields a reference stub instead of recursing, so
serialization terminates on any cyclic graph. The tracking set lives for one
call only.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

from synckit.config.models.sync import SerializeConfig

from .catalog import DeferredMode, KeyCase
from .deferred import DeferredEntity, DeferredRelationship
from .entity import HasOne, Resolved, SyncEntity, Unset
from .exceptions import SerializationDepthExceeded
from .naming import to_camel_case, to_pascal_case

__all__ = ["CIRCULAR_REFERENCE", "SerializeRules", "serialize"]

CIRCULAR_REFERENCE = "circular reference"

_KEY_CASES: dict[KeyCase, Callable[[str], str]] = {
    KeyCase.SNAKE: lambda name: name,
    KeyCase.CAMEL: to_camel_case,
    KeyCase.PASCAL: to_pascal_case,
}


@dataclass(frozen=True, slots=True)
class SerializeRules:
    """Options for :func:`serialize`.

    ``include``, ``exclude`` and ``ids_only`` take field names relative to the
    root entity, with dots for nested fields (``posts.user``). A non-empty
    ``include`` list for a level keeps only the named fields (and ``id``) at
    that level.
    """

    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()
    ids_only: tuple[str, ...] = ()
    key_case: KeyCase = KeyCase.SNAKE
    sort_keys: bool = False
    deferred: DeferredMode = DeferredMode.NULL
    include_meta: bool = False
    max_depth: int | None = None
    date_format: str | None = None

    @classmethod
    def from_config(cls, config: SerializeConfig, **overrides: Any) -> SerializeRules:
        values: dict[str, Any] = {
            "key_case": KeyCase(config.key_case),
            "sort_keys": config.sort_keys,
            "deferred": DeferredMode(config.deferred),
            "include_meta": config.include_meta,
            "max_depth": config.max_depth,
        }
        values.update(overrides)
        return cls(**values)

    def allows(self, path: tuple[str, ...], name: str) -> bool:
        dotted = ".".join((*path, name))
        if dotted in self.exclude:
            return False
        prefix = ".".join(path)
        whitelist = {
            entry.rpartition(".")[2]
            for entry in self.include
            if entry.rpartition(".")[0] == prefix
        }
        return not whitelist or name in whitelist or name == "id"

    def wants_ids(self, path: tuple[str, ...], name: str) -> bool:
        return ".".join((*path, name)) in self.ids_only


def serialize(value: Any, rules: SerializeRules | None = None) -> Any:
    """Serialize ``value`` (an entity, list, mapping or scalar)."""

    return _Walker(rules or SerializeRules()).walk(value, (), frozenset(), 0)


def _reference_stub(entity: SyncEntity) -> dict[str, Any]:
    return {"type": type(entity).__name__, "id": entity.id, "reason": CIRCULAR_REFERENCE}


class _Walker:
    def __init__(self, rules: SerializeRules) -> None:
        self.rules = rules
        self._key = _KEY_CASES[rules.key_case]

    def walk(self, value: Any, path: tuple[str, ...], ancestors: frozenset[Any], depth: int) -> Any:
        if isinstance(value, SyncEntity):
            return self._entity(value, path, ancestors, depth)
        if isinstance(value, (DeferredEntity, DeferredRelationship)):
            return self._placeholder(value, path, ancestors, depth)
        if isinstance(value, datetime | date):
            return value.strftime(self.rules.date_format) if self.rules.date_format else value.isoformat()
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, Mapping):
            rendered = {str(key): self.walk(item, path, ancestors, depth) for key, item in value.items()}
            return dict(sorted(rendered.items())) if self.rules.sort_keys else rendered
        if isinstance(value, (list, tuple, set, frozenset)):
            return [self.walk(item, path, ancestors, depth) for item in value]
        return value

    def _entity(
        self,
        entity: SyncEntity,
        path: tuple[str, ...],
        ancestors: frozenset[Any],
        depth: int,
    ) -> Any:
        marker = entity.identity_key() or ("object", id(entity))
        if marker in ancestors:
            return _reference_stub(entity)
        if self.rules.max_depth is not None and depth > self.rules.max_depth:
            raise SerializationDepthExceeded(self.rules.max_depth, entity=type(entity))
        ancestors = ancestors | {marker}

        output: dict[str, Any] = {}
        for name in entity.fields():
            if self.rules.allows(path, name):
                output[self._key(name)] = self.walk(getattr(entity, name), (*path, name), ancestors, depth + 1)

        for name, relationship in entity.relationships().items():
            if not self.rules.allows(path, name):
                continue
            field_path = (*path, name)
            if self.rules.wants_ids(path, name):
                output[self._key(name)] = self._ids(entity, name, isinstance(relationship, HasOne))
            else:
                output[self._key(name)] = self._relationship(entity, name, field_path, ancestors, depth)

        if self.rules.include_meta:
            for key, item in entity.meta.items():
                output.setdefault(self._key(key), self.walk(item, (*path, key), ancestors, depth + 1))

        return dict(sorted(output.items())) if self.rules.sort_keys else output

    def _relationship(
        self,
        entity: SyncEntity,
        name: str,
        path: tuple[str, ...],
        ancestors: frozenset[Any],
        depth: int,
    ) -> Any:
        state = entity.relationship_state(name)
        if isinstance(state, Unset):
            return None
        if isinstance(state, Resolved):
            return self.walk(state.value, path, ancestors, depth + 1)
        if self.rules.deferred is DeferredMode.RESOLVE:
            return self.walk(getattr(entity, name), path, ancestors, depth + 1)
        if self.rules.deferred is DeferredMode.LINK:
            return self._link(state.placeholder)
        return None

    def _placeholder(self, placeholder: Any, path: tuple[str, ...], ancestors: frozenset[Any], depth: int) -> Any:
        if self.rules.deferred is DeferredMode.RESOLVE:
            return self.walk(placeholder.resolve(), path, ancestors, depth)
        if self.rules.deferred is DeferredMode.LINK:
            return self._link(placeholder)
        return None

    @staticmethod
    def _link(placeholder: Any) -> dict[str, Any]:
        link: dict[str, Any] = {"type": placeholder.entity_type.__name__}
        if isinstance(placeholder, DeferredEntity):
            link["id"] = placeholder.entity_id
        else:
            link["filter"] = dict(placeholder.filter)
        return link

    def _ids(self, entity: SyncEntity, name: str, one_to_one: bool) -> Any:
        if one_to_one:
            return entity.related_id(name)
        state = entity.relationship_state(name)
        if isinstance(state, Resolved):
            values = state.value or []
        elif isinstance(state, Unset):
            return None
        elif self.rules.deferred is DeferredMode.RESOLVE:
            values = getattr(entity, name) or []
        else:
            return None
        return [getattr(item, "id", item) for item in values]
