"""Providers wired to the fake JSONPlaceholder backend."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from synckit.config.models import HTTPClientConfig, RetryConfig
from synckit.sync import (
    HttpSyncDefinition,
    HttpSyncProvider,
    SyncContext,
    SyncEntity,
    SyncOperation,
    SyncStore,
    claim_filters,
)

from .backend import BASE_URL
from .entities import Album, Comment, Photo, Post, Task, User

__all__ = ["JsonPlaceholderProvider", "http_config", "make_provider", "provider", "store"]

_ALL_OPERATIONS = frozenset(SyncOperation)


class JsonPlaceholderProvider(HttpSyncProvider):
    """HTTP definitions for every entity except tasks, which use provider methods."""

    def base_url(self) -> str:
        return BASE_URL

    def get_http_definition(self, entity_type: type[SyncEntity]) -> HttpSyncDefinition:
        if entity_type is User:
            return self.definition(User, query_filters=("username",))
        if entity_type is Post:
            return self.definition(
                Post,
                operations=_ALL_OPERATIONS,
                path=["/users/{user}/posts", "/posts"],
            )
        if entity_type is Comment:
            return self.definition(Comment, path=["/posts/{post}/comments", "/comments"])
        if entity_type is Album:
            return self.definition(Album, path=["/users/{user}/albums", "/albums"])
        if entity_type is Photo:
            return self.definition(Photo, path=["/albums/{album}/photos", "/photos"])
        return self.definition(entity_type)

    def get_task(self, context: SyncContext, entity_id: Any) -> Any:
        return self.fetch("GET", f"/todos/{entity_id}")

    @claim_filters("user")
    def get_todos(self, context: SyncContext) -> Any:
        user = context.filter.get("user")
        return self.fetch("GET", f"/users/{user}/todos" if user is not None else "/todos")


@pytest.fixture  # type: ignore[misc]
def http_config() -> HTTPClientConfig:
    """Transport settings without retries."""
    return HTTPClientConfig(retries=RetryConfig(total=0))


@pytest.fixture  # type: ignore[misc]
def store() -> SyncStore:
    return SyncStore()


@pytest.fixture  # type: ignore[misc]
def make_provider(store: SyncStore, http_config: HTTPClientConfig) -> Callable[..., JsonPlaceholderProvider]:
    """Factory for providers sharing the test store."""

    def factory(cls: type[JsonPlaceholderProvider] = JsonPlaceholderProvider, **kwargs: Any) -> Any:
        kwargs.setdefault("store", store)
        kwargs.setdefault("http_config", http_config)
        return cls(**kwargs)

    return factory


@pytest.fixture  # type: ignore[misc]
def provider(backend: Any, make_provider: Callable[..., JsonPlaceholderProvider]) -> JsonPlaceholderProvider:
    """A provider backed by the fake backend."""
    return make_provider()
