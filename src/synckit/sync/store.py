"""Session-scoped identity map for materialized entities."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, NamedTuple

from synckit.core.logging import LogEvents, UnifiedLogger

if TYPE_CHECKING:
    from .entity import SyncEntity
    from .provider import SyncProvider

__all__ = ["IdentityKey", "SyncStore"]


class IdentityKey(NamedTuple):
    """``(backend, entity_type, entity_id)``; ``backend`` is a provider hash."""

    backend: str
    entity_type: str
    entity_id: int | str


class SyncStore:
    """Map identity keys to the single entity instance materialized for them.

    The store holds strong references for the lifetime of a session and is
    not safe for concurrent mutation; use one store per session and mutate
    it only through :meth:`materialize` and :meth:`evict`.
    """

    def __init__(self) -> None:
        self._entities: dict[IdentityKey, SyncEntity] = {}
        self._providers: dict[str, SyncProvider] = {}
        self._log = UnifiedLogger.get(__name__).bind(component="sync.store")

    def __contains__(self, key: object) -> bool:
        return key in self._entities

    def __len__(self) -> int:
        return len(self._entities)

    def get(self, key: IdentityKey) -> SyncEntity | None:
        return self._entities.get(key)

    def materialize(
        self,
        key: IdentityKey | None,
        entity: SyncEntity,
        *,
        rehydrate: bool = False,
    ) -> SyncEntity:
        """Register ``entity`` or fold it into the instance already held for ``key``.

        An existing instance has its scalar fields and ``meta`` updated in
        place; relationship fields are only replaced when ``rehydrate`` is set.
        Entities without a key are returned unregistered.
        """

        if key is None:
            return entity
        existing = self._entities.get(key)
        if existing is None:
            self._entities[key] = entity
            self._log.debug(LogEvents.SYNC_STORE_REGISTERED, key=_render_key(key))
            return entity
        if existing is not entity:
            existing.merge_from(entity, relationships=rehydrate)
        self._log.debug(LogEvents.SYNC_STORE_REUSED, key=_render_key(key), rehydrate=rehydrate)
        return existing

    def evict(self, key: IdentityKey | None) -> bool:
        if key is None or key not in self._entities:
            return False
        del self._entities[key]
        self._log.debug(LogEvents.SYNC_STORE_EVICTED, key=_render_key(key))
        return True

    def clear(self) -> None:
        self._entities.clear()

    def register_provider(self, provider: SyncProvider) -> str:
        """Record ``provider`` under its hash and return the hash.

        Raises:
            ValueError: a different provider instance already owns the hash.
        """

        provider_hash = provider.provider_hash
        current = self._providers.get(provider_hash)
        if current is not None and current is not provider:
            msg = (
                f"Provider {type(provider).__name__} shares backend hash {provider_hash[:12]} "
                f"with an already registered instance"
            )
            raise ValueError(msg)
        self._providers[provider_hash] = provider
        return provider_hash

    def get_provider(self, provider_hash: str) -> SyncProvider | None:
        return self._providers.get(provider_hash)


def _render_key(key: IdentityKey) -> dict[str, Any]:
    return {"backend": key.backend[:12], "entity_type": key.entity_type, "entity_id": key.entity_id}
