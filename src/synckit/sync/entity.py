"""Sync entities: typed records with declared relationships.

Scalar fields are class annotations with defaults. Relationships are declared
with :class:`HasOne` and :class:`HasMany`; their runtime value is a tagged
state (:class:`Unset`, :class:`Resolved` or :class:`Deferred`) and the
descriptor is the typed accessor that resolves deferred values on first read.

Example::

    class User(SyncEntity):
        name: str | None = None
        posts = HasMany("Post")

    class Post(SyncEntity):
        title: str | None = None
        user = HasOne("User")  # captured from ``user_id``/``userId`` or a nested object
"""

from __future__ import annotations

import copy
import inspect
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, ClassVar, Self, TypeAlias

from .catalog import RelationshipType
from .exceptions import SyncEntityRegistryError
from .naming import pluralise, to_snake_case
from .store import IdentityKey

if TYPE_CHECKING:
    from .context import SyncContext
    from .provider import SyncProvider
    from .serializer import SerializeRules

__all__ = [
    "Deferred",
    "HasMany",
    "HasOne",
    "Relationship",
    "RelationshipState",
    "Resolved",
    "SyncEntity",
    "UNSET",
    "Unset",
    "get_entity_type",
    "register_entity_type",
]

_ENTITY_TYPES: dict[str, type[SyncEntity]] = {}


def register_entity_type(entity_type: type[SyncEntity]) -> type[SyncEntity]:
    """Make ``entity_type`` resolvable by class name. The latest class wins."""

    _ENTITY_TYPES[entity_type.__name__] = entity_type
    return entity_type


def get_entity_type(entity_type: type[SyncEntity] | str) -> type[SyncEntity]:
    if isinstance(entity_type, type):
        if not issubclass(entity_type, SyncEntity):
            raise SyncEntityRegistryError(f"{entity_type.__name__} is not a SyncEntity", entity=entity_type)
        return entity_type
    try:
        return _ENTITY_TYPES[entity_type]
    except KeyError as exc:
        raise SyncEntityRegistryError(f"Unknown entity type: {entity_type!r}", entity=entity_type) from exc


class Unset:
    """Relationship state of a field that holds nothing (reads as ``None``)."""

    __slots__ = ()
    _instance: ClassVar[Unset | None] = None

    def __new__(cls) -> Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = Unset()


@dataclass(frozen=True, slots=True)
class Resolved:
    value: Any


@dataclass(frozen=True, slots=True)
class Deferred:
    placeholder: Any


RelationshipState: TypeAlias = Unset | Resolved | Deferred


class Relationship:
    """Descriptor for a relationship field."""

    relationship_type: ClassVar[RelationshipType]

    def __init__(self, target: type[SyncEntity] | str) -> None:
        self._target = target
        self.name = ""
        self.owner: type[SyncEntity] | None = None

    def __set_name__(self, owner: type[SyncEntity], name: str) -> None:
        self.name = name
        self.owner = owner

    @property
    def target(self) -> type[SyncEntity]:
        return get_entity_type(self._target)

    def __get__(self, instance: SyncEntity | None, owner: type | None = None) -> Any:
        if instance is None:
            return self
        return instance._read_relationship(self.name)

    def __set__(self, instance: SyncEntity, value: Any) -> None:
        instance.set_relationship_state(self.name, Resolved(value))

    def __repr__(self) -> str:
        target = self._target if isinstance(self._target, str) else self._target.__name__
        return f"{type(self).__name__}({target!r}, name={self.name!r})"


class HasOne(Relationship):
    """One-to-one relationship captured from a foreign key or a nested object."""

    relationship_type = RelationshipType.ONE_TO_ONE

    def __init__(self, target: type[SyncEntity] | str, key: str | None = None) -> None:
        super().__init__(target)
        self._key = key

    @property
    def key(self) -> str:
        return self._key or f"{self.name}_id"


class HasMany(Relationship):
    """One-to-many relationship captured from a nested list or fetched by filter."""

    relationship_type = RelationshipType.ONE_TO_MANY

    def __init__(self, target: type[SyncEntity] | str, filter_key: str | None = None) -> None:
        super().__init__(target)
        self._filter_key = filter_key

    @property
    def filter_key(self) -> str:
        if self._filter_key:
            return self._filter_key
        return to_snake_case(self.owner.__name__) if self.owner is not None else "parent"


def _is_classvar(annotation: Any) -> bool:
    if isinstance(annotation, str):
        return annotation.startswith(("ClassVar", "typing.ClassVar"))
    return getattr(annotation, "__origin__", None) is ClassVar or annotation is ClassVar


class SyncEntity:
    """Base class for entities exchanged with a backend.

    Instances carry ``id``, the ``provider`` that produced them, the
    ``context`` they were materialized in and ``meta``, a mapping of backend
    fields the class does not declare.
    """

    id: int | str | None = None

    date_fields: ClassVar[tuple[str, ...]] = ()
    prefixes: ClassVar[tuple[str, ...]] = ()
    plural: ClassVar[str | None] = None

    _scalar_fields: ClassVar[dict[str, Any]] = {"id": None}
    _relationship_fields: ClassVar[dict[str, Relationship]] = {}
    _foreign_keys: ClassVar[dict[str, str]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        scalars: dict[str, Any] = {}
        relationships: dict[str, Relationship] = {}
        for klass in reversed(cls.__mro__):
            if not issubclass(klass, SyncEntity):
                continue
            for name, annotation in inspect.get_annotations(klass).items():
                if name.startswith("_") or _is_classvar(annotation):
                    continue
                scalars[name] = None
            for name, value in vars(klass).items():
                if isinstance(value, Relationship):
                    relationships[name] = value
        for name in relationships:
            scalars.pop(name, None)
        cls._scalar_fields = {name: getattr(cls, name, None) for name in scalars}
        cls._relationship_fields = relationships
        cls._foreign_keys = {
            relationship.key: name
            for name, relationship in relationships.items()
            if isinstance(relationship, HasOne)
        }
        register_entity_type(cls)

    def __init__(self, **values: Any) -> None:
        self.provider: SyncProvider | None = None
        self.context: SyncContext | None = None
        self.meta: dict[str, Any] = {}
        self._states: dict[str, RelationshipState] = {}
        self._captured: dict[str, Any] = {}
        self._supplied: set[str] = set()
        for name, default in self._scalar_fields.items():
            setattr(self, name, copy.copy(default) if isinstance(default, (list, dict, set)) else default)
        for key, value in values.items():
            if key in self._scalar_fields or key in self._relationship_fields:
                setattr(self, key, value)
                self._supplied.add(key)
            else:
                self.meta[key] = value

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"

    # Introspection

    @classmethod
    def fields(cls) -> tuple[str, ...]:
        return tuple(cls._scalar_fields)

    @classmethod
    def relationships(cls) -> dict[str, Relationship]:
        return dict(cls._relationship_fields)

    @classmethod
    def plural_name(cls) -> str:
        return cls.plural or pluralise(to_snake_case(cls.__name__))

    @classmethod
    def _is_known(cls, name: str) -> bool:
        return name in cls._scalar_fields or name in cls._relationship_fields or name in cls._foreign_keys

    @classmethod
    def normalise_key(cls, key: str) -> str:
        """Map a backend key to a field name.

        Keys are converted to snake_case. A leading entity-name prefix is
        removed (``USER_ID`` on ``User`` becomes ``id``) unless the snake_case
        key is itself a declared field.
        """

        snake = to_snake_case(key)
        if cls._is_known(snake):
            return snake
        for prefix in (to_snake_case(cls.__name__), *cls.prefixes):
            prefix = f"{to_snake_case(prefix)}_"
            if snake.startswith(prefix) and cls._is_known(snake[len(prefix) :]):
                return snake[len(prefix) :]
        return snake

    # Construction

    @classmethod
    def provide(
        cls,
        data: Mapping[str, Any],
        provider: SyncProvider | None = None,
        context: SyncContext | None = None,
    ) -> Self:
        """Build an unregistered entity from backend data."""

        entity = cls()
        entity.provider = provider
        entity.context = context
        entity._apply_data(data)
        return entity

    @classmethod
    def provide_list(
        cls,
        data: Iterable[Mapping[str, Any]],
        provider: SyncProvider | None = None,
        context: SyncContext | None = None,
    ) -> list[Self]:
        return [cls.provide(item, provider, context) for item in data]

    def _apply_data(self, data: Mapping[str, Any]) -> None:
        cls = type(self)
        for raw_key, value in data.items():
            key = cls.normalise_key(str(raw_key))
            if key in cls._relationship_fields:
                if value is not None:
                    self._captured[key] = value
            elif key in cls._foreign_keys:
                if value is not None:
                    self._captured.setdefault(cls._foreign_keys[key], value)
                if key in cls._scalar_fields:
                    setattr(self, key, value)
                    self._supplied.add(key)
            elif key in cls._scalar_fields:
                setattr(self, key, self._parse_value(key, value))
                self._supplied.add(key)
            else:
                self.meta[key] = value

    @classmethod
    def _parse_value(cls, key: str, value: Any) -> Any:
        if key in cls.date_fields and isinstance(value, str) and value:
            return datetime.fromisoformat(value)
        return value

    def merge_from(self, other: SyncEntity, *, relationships: bool = False) -> None:
        """Copy fields supplied on ``other`` into this instance."""

        for name in other._supplied:
            if name in self._scalar_fields:
                setattr(self, name, getattr(other, name))
                self._supplied.add(name)
        self.meta.update(other.meta)
        if relationships:
            self._states.update(other._states)
            self._captured.update(other._captured)

    # Relationships

    def _check_relationship(self, name: str) -> None:
        if name not in self._relationship_fields:
            msg = f"{type(self).__name__} has no relationship named {name!r}"
            raise AttributeError(msg)

    def relationship_state(self, name: str) -> RelationshipState:
        """Return the raw state of relationship ``name`` without resolving it."""

        self._check_relationship(name)
        return self._states.get(name, UNSET)

    def set_relationship_state(self, name: str, state: RelationshipState) -> None:
        self._check_relationship(name)
        self._states[name] = state

    def captured_relationship(self, name: str) -> Any:
        """Backend data captured for ``name``: an id, a nested object or a nested list."""

        return self._captured.get(name)

    def _read_relationship(self, name: str) -> Any:
        state = self._states.get(name, UNSET)
        if isinstance(state, Deferred):
            value = state.placeholder.resolve()
            self._states[name] = Resolved(value)
            return value
        if isinstance(state, Resolved):
            return state.value
        return None

    def replace_deferred(self, name: str, placeholder: Any, value: Any) -> None:
        """Swap a resolved placeholder for its value if it is still installed."""

        state = self._states.get(name)
        if isinstance(state, Deferred) and state.placeholder is placeholder:
            self._states[name] = Resolved(value)

    def related_id(self, name: str) -> Any:
        """Id of the entity referenced by one-to-one relationship ``name``, without fetching it."""

        state = self._states.get(name, UNSET)
        if isinstance(state, Resolved):
            return getattr(state.value, "id", None)
        if isinstance(state, Deferred):
            return getattr(state.placeholder, "entity_id", None)
        captured = self._captured.get(name)
        if isinstance(captured, Mapping):
            return captured.get("id")
        return captured

    # Identity and serialization

    def identity_key(self) -> IdentityKey | None:
        if self.id is None or self.provider is None:
            return None
        return IdentityKey(self.provider.provider_hash, type(self).__name__, self.id)

    def to_dict(self, rules: SerializeRules | None = None) -> Any:
        from .serializer import serialize

        return serialize(self, rules)
