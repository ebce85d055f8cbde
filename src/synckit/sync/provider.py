"""Provider contract: perform operations and materialize their results."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from functools import cached_property
from typing import TYPE_CHECKING, Any, TypeVar

from synckit.core.hashing import hash_provider_identity
from synckit.core.http import TransportError
from synckit.core.logging import LogEvents, UnifiedLogger

from .catalog import FilterPolicy, HydrationFlag, SyncOperation
from .context import SyncContext
from .definition import OperationClosure, SyncDefinition
from .entity import HasOne, SyncEntity, get_entity_type
from .exceptions import (
    EntityNotFound,
    FilterPolicyViolation,
    SyncError,
    TransportFailure,
    UnsupportedOperation,
)
from .hydration import HydrationEngine, HydrationPolicy
from .naming import to_snake_case
from .store import SyncStore

if TYPE_CHECKING:
    from .resolver import SyncEntityFuzzyResolver, SyncEntityResolver

__all__ = ["SyncEntityProvider", "SyncProvider", "claim_filters"]

_F = TypeVar("_F", bound=Callable[..., Any])


def claim_filters(*keys: str) -> Callable[[_F], _F]:
    """Declare the filter keys a provider method applies itself.

    >>> class Api(SyncProvider):
    ...     @claim_filters("user")
    ...     def get_posts(self, context): ...
    """

    def decorator(func: _F) -> _F:
        func.__claim_filters__ = frozenset(to_snake_case(key) for key in keys)  # type: ignore[attr-defined]
        return func

    return decorator


class SyncProvider(ABC):
    """Base class for backends that serve sync entities.

    Operations are dispatched, in order, to a definition override, a provider
    method named ``<verb>_<entity>`` (``get_user``, ``get_users``,
    ``create_user``, ``delete_users``, ...) called as ``method(context,
    *args)``, or the definition's generic implementation.
    """

    filter_policy: FilterPolicy = FilterPolicy.FAIL

    def __init__(
        self,
        store: SyncStore | None = None,
        *,
        hydration: HydrationPolicy | None = None,
    ) -> None:
        self._store = store if store is not None else SyncStore()
        self._hydration = hydration or HydrationPolicy()
        self._engine = HydrationEngine()
        self._definitions: dict[type[SyncEntity], SyncDefinition] = {}
        self._log = UnifiedLogger.get(__name__).bind(component="sync.provider", provider=type(self).__name__)

    @abstractmethod
    def backend_identifier(self) -> tuple[Any, ...]:
        """Values that identify the backend instance, such as its base URL."""

    @cached_property
    def provider_hash(self) -> str:
        return hash_provider_identity(type(self).__name__, self.backend_identifier())

    @property
    def store(self) -> SyncStore:
        return self._store

    def get_context(self) -> SyncContext:
        self._store.register_provider(self)
        return SyncContext(store=self._store, hydration=self._hydration)

    def get_definition(self, entity_type: type[SyncEntity] | str) -> SyncDefinition:
        entity_type = get_entity_type(entity_type)
        definition = self._definitions.get(entity_type)
        if definition is None:
            definition = self.build_definition(entity_type)
            self._definitions[entity_type] = definition
        return definition

    def build_definition(self, entity_type: type[SyncEntity]) -> SyncDefinition:
        return SyncDefinition(entity=entity_type)

    def with_(
        self,
        entity_type: type[SyncEntity] | str,
        context: SyncContext | None = None,
    ) -> SyncEntityProvider:
        return SyncEntityProvider(self, get_entity_type(entity_type), context or self.get_context())

    # Dispatch

    def _method_name(self, operation: SyncOperation, entity_type: type[SyncEntity]) -> str:
        noun = entity_type.plural_name() if operation.is_list() else to_snake_case(entity_type.__name__)
        return f"{operation.verb}_{noun}"

    def _resolve_closure(
        self,
        definition: SyncDefinition,
        operation: SyncOperation,
        entity_type: type[SyncEntity],
    ) -> tuple[OperationClosure | None, frozenset[str]]:
        supported = definition.supported_filters(operation)
        override = definition.get_override(operation)
        if override is not None:
            return override, supported
        name = self._method_name(operation, entity_type)
        method = None if hasattr(SyncProvider, name) else getattr(self, name, None)
        if callable(method):
            return method, supported | getattr(method, "__claim_filters__", frozenset())
        return definition.get_closure(operation), supported

    def perform(
        self,
        operation: SyncOperation,
        entity_type: type[SyncEntity] | str,
        context: SyncContext,
        *args: Any,
    ) -> Any:
        """Run ``operation`` and return materialized entities."""

        entity_type = get_entity_type(entity_type)
        context = context.with_operation(operation)
        log = self._log.bind(entity=entity_type.__name__, operation=operation.value, depth=context.depth)
        log.debug(LogEvents.SYNC_OPERATION_START)
        try:
            definition = self.get_definition(entity_type)
            closure, supported = self._resolve_closure(definition, operation, entity_type)
            if closure is None:
                raise UnsupportedOperation(
                    f"{type(self).__name__} does not implement {operation.value}",
                    entity=entity_type,
                    operation=operation,
                )
            policy = definition.filter_policy or self.filter_policy
            context, local_filter, skip = self._apply_filter_policy(
                policy, supported, entity_type, context, log
            )
            raw = [] if skip else closure(context, *args)
            result = self._process_result(operation, entity_type, context, raw, args)
            if local_filter:
                result = [entity for entity in result if _matches(entity, local_filter)]
        except SyncError as exc:
            exc.fill_context(entity=entity_type, operation=operation)
            log.warning(LogEvents.SYNC_OPERATION_ERROR, error=str(exc), error_type=type(exc).__name__)
            raise
        except TransportError as exc:
            log.warning(LogEvents.SYNC_OPERATION_ERROR, error=str(exc), status_code=exc.status_code)
            if exc.status_code == 404 and operation is SyncOperation.READ:
                raise EntityNotFound(
                    entity=entity_type,
                    operation=operation,
                    entity_id=args[0] if args else None,
                ) from exc
            raise TransportFailure(
                str(exc),
                entity=entity_type,
                operation=operation,
                status_code=exc.status_code,
            ) from exc
        log.debug(
            LogEvents.SYNC_OPERATION_FINISH,
            count=len(result) if isinstance(result, list) else int(result is not None),
        )
        return result

    def _apply_filter_policy(
        self,
        policy: FilterPolicy,
        supported: frozenset[str],
        entity_type: type[SyncEntity],
        context: SyncContext,
        log: Any,
    ) -> tuple[SyncContext, dict[str, Any], bool]:
        unsupported = {key: value for key, value in context.filter.items() if key not in supported}
        if not unsupported:
            return context, {}, False
        operation = context.operation
        if policy is FilterPolicy.IGNORE:
            log.info(LogEvents.SYNC_FILTER_IGNORED, filters=sorted(unsupported))
            return context.with_filter(_without(context.filter, unsupported)), {}, False
        if policy is FilterPolicy.RETURN_EMPTY and operation is not None and operation.is_list():
            log.info(LogEvents.SYNC_FILTER_REJECTED, filters=sorted(unsupported), policy=policy.value)
            return context, {}, True
        if policy is FilterPolicy.FILTER_LOCALLY and operation is SyncOperation.READ_LIST:
            return context.with_filter(_without(context.filter, unsupported)), unsupported, False
        log.info(LogEvents.SYNC_FILTER_REJECTED, filters=sorted(unsupported), policy=policy.value)
        raise FilterPolicyViolation(unsupported, entity=entity_type, operation=operation)

    # Materialization

    def materialize(
        self,
        entity_type: type[SyncEntity],
        data: Mapping[str, Any] | SyncEntity,
        context: SyncContext,
    ) -> SyncEntity:
        """Turn backend data into the store's instance for it, hydrating new entities."""

        if isinstance(data, SyncEntity):
            entity = data
            if entity.provider is None:
                entity.provider = self
            if entity.context is None:
                entity.context = context
        elif isinstance(data, Mapping):
            entity = entity_type.provide(data, self, context)
        else:
            raise SyncError(
                f"Cannot materialize {type(data).__name__} as an entity",
                entity=entity_type,
                operation=context.operation,
            )
        key = entity.identity_key()
        is_new = key is None or key not in context.store
        entity = context.store.materialize(key, entity)
        if is_new:
            self._engine.hydrate(entity, context)
        return entity

    def _process_result(
        self,
        operation: SyncOperation,
        entity_type: type[SyncEntity],
        context: SyncContext,
        raw: Any,
        args: tuple[Any, ...],
    ) -> Any:
        if operation is SyncOperation.READ:
            if isinstance(raw, list):
                raw = raw[0] if raw else None
            if raw is None:
                raise EntityNotFound(entity=entity_type, operation=operation, entity_id=args[0] if args else None)
            return self.materialize(entity_type, raw, context)

        if operation is SyncOperation.DELETE:
            return self._evict(entity_type, context, raw if raw is not None else args[0])

        if operation is SyncOperation.DELETE_LIST:
            items = list(raw) if raw is not None else list(args[0])
            return [self._evict(entity_type, context, item) for item in items]

        if operation.is_list():
            if raw is None:
                return []
            if isinstance(raw, (Mapping, SyncEntity)):
                raw = [raw]
            return [self.materialize(entity_type, item, context) for item in raw]

        if raw is None:
            raw = args[0]
        return self.materialize(entity_type, raw, context)

    def _evict(self, entity_type: type[SyncEntity], context: SyncContext, item: Any) -> SyncEntity:
        if isinstance(item, SyncEntity):
            entity = item
        else:
            entity = entity_type.provide(item, self, context)
        context.store.evict(entity.identity_key())
        return entity


def _without(criteria: Mapping[str, Any], keys: Iterable[str]) -> dict[str, Any]:
    drop = set(keys)
    return {key: value for key, value in criteria.items() if key not in drop}


def _matches(entity: SyncEntity, criteria: Mapping[str, Any]) -> bool:
    relationships = entity.relationships()
    for key, expected in criteria.items():
        if key in entity.fields():
            actual = getattr(entity, key)
        elif isinstance(relationships.get(key), HasOne):
            actual = entity.related_id(key)
        elif key in entity.meta:
            actual = entity.meta[key]
        else:
            return False
        if isinstance(expected, (list, tuple, set, frozenset)):
            if actual not in expected and str(actual) not in {str(item) for item in expected}:
                return False
        elif actual != expected and str(actual) != str(expected):
            return False
    return True


class SyncEntityProvider:
    """A provider bound to one entity type and one context."""

    def __init__(self, provider: SyncProvider, entity_type: type[SyncEntity], context: SyncContext) -> None:
        self.provider = provider
        self.entity_type = entity_type
        self.context = context

    def __repr__(self) -> str:
        return f"<SyncEntityProvider {type(self.provider).__name__}:{self.entity_type.__name__}>"

    def with_hydration(
        self,
        flags: HydrationFlag | Iterable[str],
        replace: bool = True,
        entity: type[SyncEntity] | str | None = None,
        depth: int | None = None,
    ) -> SyncEntityProvider:
        return SyncEntityProvider(
            self.provider,
            self.entity_type,
            self.context.with_hydration(flags, replace, entity, depth),
        )

    def run(self, operation: SyncOperation, *args: Any) -> Any:
        return self.provider.perform(operation, self.entity_type, self.context, *args)

    def create(self, entity: SyncEntity) -> SyncEntity:
        return self.run(SyncOperation.CREATE, entity)

    def get(self, entity_id: int | str) -> SyncEntity:
        return self.run(SyncOperation.READ, entity_id)

    def update(self, entity: SyncEntity) -> SyncEntity:
        return self.run(SyncOperation.UPDATE, entity)

    def delete(self, entity: SyncEntity) -> SyncEntity:
        return self.run(SyncOperation.DELETE, entity)

    def get_list(self, filter: Mapping[str, Any] | None = None, **criteria: Any) -> list[SyncEntity]:
        merged = {**(filter or {}), **criteria}
        context = self.context.with_filter(merged)
        return self.provider.perform(SyncOperation.READ_LIST, self.entity_type, context)

    def create_list(self, entities: Iterable[SyncEntity]) -> list[SyncEntity]:
        return self.run(SyncOperation.CREATE_LIST, list(entities))

    def update_list(self, entities: Iterable[SyncEntity]) -> list[SyncEntity]:
        return self.run(SyncOperation.UPDATE_LIST, list(entities))

    def delete_list(self, entities: Iterable[SyncEntity]) -> list[SyncEntity]:
        return self.run(SyncOperation.DELETE_LIST, list(entities))

    # Name resolution

    def get_resolver(
        self,
        name_field: str,
        *,
        fuzzy: bool = False,
        weight_field: str | None = None,
        algorithm: str | None = None,
        uncertainty_threshold: float | None = None,
        require_one_match: bool = False,
    ) -> SyncEntityResolver | SyncEntityFuzzyResolver:
        from .resolver import SyncEntityFuzzyResolver, SyncEntityResolver

        if not fuzzy:
            return SyncEntityResolver(self, name_field)
        return SyncEntityFuzzyResolver(
            self,
            name_field,
            weight_field=weight_field,
            algorithm=algorithm,
            uncertainty_threshold=uncertainty_threshold,
            require_one_match=require_one_match,
        )

    def id_from_name_or_id(
        self,
        value: int | str,
        name_field: str,
        *,
        fuzzy: bool = False,
        uncertainty_threshold: float | None = None,
        require_one_match: bool = False,
    ) -> int | str:
        """Return ``value`` if it is an id, otherwise the id of the entity named ``value``."""

        if isinstance(value, int) or (isinstance(value, str) and value.strip().isdigit()):
            return value
        resolver = self.get_resolver(
            name_field,
            fuzzy=fuzzy,
            uncertainty_threshold=uncertainty_threshold,
            require_one_match=require_one_match,
        )
        match = resolver.get_by_name(value)
        entity = match[0] if isinstance(match, tuple) else match
        if entity is None or entity.id is None:
            raise EntityNotFound(
                f"No {self.entity_type.__name__} named {value!r}",
                entity=self.entity_type,
                operation=SyncOperation.READ_LIST,
                entity_id=value,
            )
        return entity.id

