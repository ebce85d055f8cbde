"""Declarative descriptions of how a provider serves one entity type."""

from __future__ import annotations

import string
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from synckit.clients.http import PageRequest, Pager, Paginator

from .catalog import FilterPolicy, SyncOperation
from .entity import SyncEntity
from .exceptions import UnsupportedOperation
from .serializer import SerializeRules, serialize

if TYPE_CHECKING:
    from .context import SyncContext
    from .http_provider import HttpSyncProvider

__all__ = [
    "DEFAULT_METHODS",
    "HttpSyncDefinition",
    "OperationClosure",
    "SyncDefinition",
]

OperationClosure = Callable[..., Any]
"""``closure(context, *args)`` performing one operation."""

DEFAULT_METHODS: Mapping[SyncOperation, str] = MappingProxyType(
    {
        SyncOperation.CREATE: "POST",
        SyncOperation.READ: "GET",
        SyncOperation.UPDATE: "PUT",
        SyncOperation.DELETE: "DELETE",
        SyncOperation.CREATE_LIST: "POST",
        SyncOperation.READ_LIST: "GET",
        SyncOperation.UPDATE_LIST: "PUT",
        SyncOperation.DELETE_LIST: "DELETE",
    }
)

_FORMATTER = string.Formatter()


@dataclass(frozen=True, kw_only=True)
class SyncDefinition:
    """Operations, overrides and filter handling for one entity type.

    ``overrides`` map an operation to ``override(definition, operation,
    context, *args)``. ``callback(definition, operation, context, *args)``
    runs before every operation and returns the definition to use, which may
    be a modified copy.
    """

    entity: type[SyncEntity]
    operations: frozenset[SyncOperation] = frozenset()
    filter_policy: FilterPolicy | None = None
    overrides: Mapping[SyncOperation, Callable[..., Any]] = field(default_factory=dict)
    callback: Callable[..., SyncDefinition] | None = None

    def supported_filters(self, operation: SyncOperation) -> frozenset[str]:
        return frozenset()

    def prepare(self, operation: SyncOperation, context: SyncContext, *args: Any) -> SyncDefinition:
        if self.callback is None:
            return self
        return self.callback(self, operation, context, *args)

    def get_override(self, operation: SyncOperation) -> OperationClosure | None:
        override = self.overrides.get(operation)
        if override is None:
            return None

        def closure(context: SyncContext, *args: Any) -> Any:
            definition = self.prepare(operation, context, *args)
            return override(definition, operation, context, *args)

        return closure

    def get_closure(self, operation: SyncOperation) -> OperationClosure | None:
        if operation not in self.operations:
            return None

        def closure(context: SyncContext, *args: Any) -> Any:
            definition = self.prepare(operation, context, *args)
            return definition.execute(operation, context, *args)

        return closure

    def execute(self, operation: SyncOperation, context: SyncContext, *args: Any) -> Any:
        raise UnsupportedOperation(
            f"{type(self).__name__} has no generic implementation",
            entity=self.entity,
            operation=operation,
        )


def _placeholders(template: str) -> tuple[str, ...]:
    return tuple(name for _, name, _, _ in _FORMATTER.parse(template) if name)


@dataclass(frozen=True, kw_only=True)
class HttpSyncDefinition(SyncDefinition):
    """Map entity operations onto HTTP endpoints.

    ``path`` is a template or a list of templates with ``{name}``
    placeholders filled from the filter (``"/users/{user}/posts"``). The
    first template whose placeholders are all present in the filter is used.
    Lists and CREATE go to the path itself; READ, UPDATE and DELETE go to
    ``<path>/<id>``. Filter keys listed in ``query_filters`` are sent as query
    parameters.
    """

    provider: HttpSyncProvider
    operations: frozenset[SyncOperation] = frozenset({SyncOperation.READ, SyncOperation.READ_LIST})
    path: str | Sequence[str] = ""
    query: Mapping[str, Any] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)
    pager: Pager | None = None
    query_filters: Iterable[str] = ()
    path_filters: Iterable[str] | None = None
    method_map: Mapping[SyncOperation, str] = field(default_factory=lambda: DEFAULT_METHODS)
    sync_one_entity_per_request: bool = False
    write_rules: SerializeRules | None = None

    @property
    def templates(self) -> tuple[str, ...]:
        if isinstance(self.path, str):
            return (self.path or f"/{self.entity.plural_name()}",)
        return tuple(self.path)

    def supported_filters(self, operation: SyncOperation) -> frozenset[str]:
        if self.path_filters is not None:
            path_filters = frozenset(self.path_filters)
        else:
            path_filters = frozenset(name for template in self.templates for name in _placeholders(template))
        return frozenset(self.query_filters) | path_filters

    def route(
        self,
        operation: SyncOperation,
        criteria: Mapping[str, Any],
        entity_id: Any = None,
    ) -> tuple[str, frozenset[str]]:
        """Return the endpoint for ``operation`` and the filter keys it consumed."""

        for template in self.templates:
            names = _placeholders(template)
            if all(criteria.get(name) is not None for name in names):
                url = template.format(**{name: quote(str(criteria[name]), safe="") for name in names})
                if entity_id is not None:
                    url = f"{url.rstrip('/')}/{quote(str(entity_id), safe='')}"
                return url, frozenset(names)
        raise UnsupportedOperation(
            f"No path template can be filled from filter keys {sorted(criteria)}",
            entity=self.entity,
            operation=operation,
        )

    def payload(self, entity: SyncEntity) -> Any:
        rules = self.write_rules or SerializeRules(ids_only=tuple(entity.relationships()))
        return serialize(entity, rules)

    def execute(self, operation: SyncOperation, context: SyncContext, *args: Any) -> Any:
        transport = self.provider.transport
        method = self.method_map.get(operation, DEFAULT_METHODS[operation])
        headers = {**self.provider.headers(), **self.headers} or None
        criteria = context.filter

        if operation is SyncOperation.READ:
            url, _ = self.route(operation, criteria, entity_id=args[0])
            return transport.issue_request(method, url, headers=headers, params=self.query or None).body

        if operation is SyncOperation.READ_LIST:
            url, consumed = self.route(operation, criteria)
            allowed = frozenset(self.query_filters) - consumed
            params = {**self.query, **{key: value for key, value in criteria.items() if key in allowed}}
            request = PageRequest(method=method, url=url, params=params or None, headers=headers)
            return Paginator().collect(transport, request, self.pager or self.provider.default_pager())

        if operation.is_list():
            entities = list(args[0])
            if self.sync_one_entity_per_request:
                return [self.execute(operation.single(), context, entity) for entity in entities]
            url, _ = self.route(operation, criteria)
            body = [self.payload(entity) for entity in entities]
            result = transport.issue_request(method, url, headers=headers, body=body).body
            return result if isinstance(result, list) and result else entities

        entity = args[0]
        entity_id = None if operation is SyncOperation.CREATE else entity.id
        url, _ = self.route(operation, criteria, entity_id=entity_id)
        body = None if operation is SyncOperation.DELETE else self.payload(entity)
        result = transport.issue_request(method, url, headers=headers, body=body).body
        return result if isinstance(result, Mapping) and result else entity
