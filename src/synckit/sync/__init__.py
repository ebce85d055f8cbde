"""Sync entities, providers, hydration and serialization."""

from .catalog import DeferredMode, FilterPolicy, HydrationFlag, KeyCase, RelationshipType, SyncOperation
from .context import SyncContext
from .deferred import DeferredEntity, DeferredRelationship
from .definition import HttpSyncDefinition, SyncDefinition
from .entity import (
    UNSET,
    Deferred,
    HasMany,
    HasOne,
    Resolved,
    SyncEntity,
    Unset,
    get_entity_type,
    register_entity_type,
)
from .exceptions import (
    EntityNotFound,
    FilterPolicyViolation,
    SerializationDepthExceeded,
    SyncEntityRegistryError,
    SyncError,
    TransportFailure,
    UnsupportedOperation,
)
from .http_provider import ConfiguredHttpProvider, HttpSyncProvider
from .hydration import HydrationEngine, HydrationPolicy, HydrationRule
from .provider import SyncEntityProvider, SyncProvider, claim_filters
from .resolver import SyncEntityFuzzyResolver, SyncEntityResolver
from .serializer import SerializeRules, serialize
from .store import IdentityKey, SyncStore

__all__ = [
    "ConfiguredHttpProvider",
    "Deferred",
    "DeferredEntity",
    "DeferredMode",
    "DeferredRelationship",
    "EntityNotFound",
    "FilterPolicy",
    "FilterPolicyViolation",
    "HasMany",
    "HasOne",
    "HttpSyncDefinition",
    "HttpSyncProvider",
    "HydrationEngine",
    "HydrationFlag",
    "HydrationPolicy",
    "HydrationRule",
    "IdentityKey",
    "KeyCase",
    "RelationshipType",
    "Resolved",
    "SerializationDepthExceeded",
    "SerializeRules",
    "SyncContext",
    "SyncDefinition",
    "SyncEntity",
    "SyncEntityFuzzyResolver",
    "SyncEntityProvider",
    "SyncEntityRegistryError",
    "SyncEntityResolver",
    "SyncError",
    "SyncOperation",
    "SyncProvider",
    "SyncStore",
    "TransportFailure",
    "UNSET",
    "Unset",
    "UnsupportedOperation",
    "claim_filters",
    "get_entity_type",
    "register_entity_type",
    "serialize",
]
