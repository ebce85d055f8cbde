"""Enumerations shared by the sync core."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum, Flag, auto

__all__ = [
    "DeferredMode",
    "FilterPolicy",
    "HydrationFlag",
    "KeyCase",
    "RelationshipType",
    "SyncOperation",
]


class SyncOperation(str, Enum):
    """Operations a provider can perform on an entity type."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    CREATE_LIST = "create_list"
    READ_LIST = "read_list"
    UPDATE_LIST = "update_list"
    DELETE_LIST = "delete_list"

    def __str__(self) -> str:
        return self.value

    def is_list(self) -> bool:
        return self.value.endswith("_list")

    @property
    def verb(self) -> str:
        """Method name prefix used when dispatching to provider methods."""

        base = self.value.removesuffix("_list")
        return "get" if base == "read" else base

    def single(self) -> SyncOperation:
        """Return the per-entity counterpart of a list operation."""

        return SyncOperation(self.value.removesuffix("_list"))


class HydrationFlag(Flag):
    """Hydration behaviour for relationship fields.

    A flag value can combine members; the effective mode is ``SUPPRESS`` if
    present, else ``EAGER`` if present, else ``LAZY``.
    """

    LAZY = auto()
    EAGER = auto()
    SUPPRESS = auto()

    @classmethod
    def from_names(cls, names: Iterable[str]) -> HydrationFlag:
        flags = cls(0)
        for name in names:
            try:
                flags |= cls[name.strip().upper()]
            except KeyError as exc:
                msg = f"Unknown hydration flag: {name!r}"
                raise ValueError(msg) from exc
        return flags

    def mode(self) -> HydrationFlag:
        if HydrationFlag.SUPPRESS in self:
            return HydrationFlag.SUPPRESS
        if HydrationFlag.EAGER in self:
            return HydrationFlag.EAGER
        return HydrationFlag.LAZY


class FilterPolicy(str, Enum):
    """What to do with filter criteria a backend cannot apply."""

    IGNORE = "ignore"
    FAIL = "fail"
    RETURN_EMPTY = "return_empty"
    FILTER_LOCALLY = "filter_locally"


class RelationshipType(str, Enum):
    ONE_TO_ONE = "one_to_one"
    ONE_TO_MANY = "one_to_many"


class DeferredMode(str, Enum):
    """How the serializer renders relationships that are still deferred."""

    RESOLVE = "resolve"
    NULL = "null"
    LINK = "link"


class KeyCase(str, Enum):
    SNAKE = "snake"
    CAMEL = "camel"
    PASCAL = "pascal"
