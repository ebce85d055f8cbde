"""Tests for configuration-driven HTTP providers and sync contexts."""

from __future__ import annotations

import pytest
import responses
from responses import matchers

from synckit.clients.http import LinkHeaderPager, PageMetaPager
from synckit.config import SyncConfig
from synckit.sync import (
    ConfiguredHttpProvider,
    FilterPolicy,
    HydrationFlag,
    SyncContext,
    SyncOperation,
    SyncStore,
    UnsupportedOperation,
)
from synckit.sync.context import normalise_filter
from tests.fixtures.backend import BASE_URL
from tests.fixtures.entities import Album, Comment, Post, User


@pytest.fixture()
def sync_config(config_payload) -> SyncConfig:
    return SyncConfig.model_validate(config_payload)


@pytest.mark.unit
class TestConfiguredHttpProvider:
    def test_from_config(self, sync_config):
        provider = ConfiguredHttpProvider.from_config(sync_config, "placeholder")

        assert provider.base_url() == BASE_URL
        assert provider.filter_policy is FilterPolicy.IGNORE
        assert isinstance(provider.default_pager(), LinkHeaderPager)
        assert provider.transport.base_url == BASE_URL
        assert provider.transport.config.headers == {"User-Agent": "pytest"}
        assert provider.get_context().hydration.mode_for(User, 1) is HydrationFlag.EAGER

    def test_unknown_provider(self, sync_config):
        with pytest.raises(KeyError, match="not configured"):
            ConfiguredHttpProvider.from_config(sync_config, "missing")

    def test_unregistered_entity(self, sync_config):
        provider = ConfiguredHttpProvider.from_config(sync_config, "placeholder")

        with pytest.raises(UnsupportedOperation, match="no definition for Album") as excinfo:
            provider.with_(Album).get(1)

        assert excinfo.value.entity == "Album"
        assert excinfo.value.operation is SyncOperation.READ
        assert str(excinfo.value).endswith("[entity=Album, operation=read]")

    @responses.activate
    def test_paginated_listing_across_three_pages(self, sync_config):
        for page, (items, link) in enumerate(
            [
                ([{"id": 1, "postId": 7}, {"id": 2, "postId": 7}], f'<{BASE_URL}/comments?page=2>; rel="next"'),
                ([{"id": 3, "postId": 8}], f'<{BASE_URL}/comments?page=3>; rel="next"'),
                ([{"id": 4, "postId": 7}], None),
            ],
            start=1,
        ):
            params = {"page": str(page)} if page > 1 else {"post": "7"}
            responses.add(
                responses.GET,
                f"{BASE_URL}/comments",
                json=items,
                headers={"Link": link} if link else {},
                match=[matchers.query_param_matcher(params)],
            )
        provider = ConfiguredHttpProvider.from_config(sync_config, "placeholder").register(
            Comment, query_filters=("post",)
        )

        comments = provider.with_(Comment).get_list(post=7, email="ignored@example.test")

        assert [comment.id for comment in comments] == [1, 2, 3, 4]
        assert len(responses.calls) == 3
        assert comments[0].related_id("post") == 7

    @responses.activate
    def test_fetch_raw(self, sync_config):
        responses.add(responses.GET, f"{BASE_URL}/users/1", json={"id": 1})
        provider = ConfiguredHttpProvider.from_config(sync_config, "placeholder")

        assert provider.fetch("GET", "/users/1") == {"id": 1}

    @responses.activate
    def test_page_meta_definition_override(self, sync_config):
        responses.add(
            responses.GET,
            f"{BASE_URL}/users",
            json={"users": [{"id": 1}], "page_meta": {"next": "/users?offset=1&limit=1"}},
            match=[matchers.query_param_matcher({"limit": "1"})],
        )
        responses.add(
            responses.GET,
            f"{BASE_URL}/users",
            json={"users": [{"id": 2}], "page_meta": {"next": None}},
            match=[matchers.query_param_matcher({"offset": "1", "limit": "1"})],
        )
        provider = ConfiguredHttpProvider(
            "chembl",
            sync_config.provider("placeholder"),
            definitions={User: {"pager": PageMetaPager(page_size=1)}},
        )

        users = provider.with_(User).with_hydration(HydrationFlag.SUPPRESS).get_list()

        assert [user.id for user in users] == [1, 2]

    def test_register_replaces_cached_definition(self, sync_config):
        provider = ConfiguredHttpProvider.from_config(sync_config, "placeholder")
        provider.register(Post, path="/a")
        assert provider.get_definition(Post).templates == ("/a",)

        provider.register(Post, path="/b")

        assert provider.get_definition(Post).templates == ("/b",)


@pytest.mark.unit
class TestSyncContext:
    def test_builders_return_new_contexts(self):
        context = SyncContext(store=SyncStore())

        filtered = context.with_filter({"userId": 1})
        hydrated = filtered.with_hydration(["eager"], entity="Post", depth=2)
        operated = hydrated.with_operation(SyncOperation.READ_LIST)

        assert context.filter == {}
        assert filtered.filter == {"user_id": 1}
        assert hydrated.hydration.mode_for(Post, 2) is HydrationFlag.EAGER
        assert context.hydration.mode_for(Post, 2) is HydrationFlag.LAZY
        assert operated.operation is SyncOperation.READ_LIST
        assert hydrated.operation is None

    def test_push_tracks_depth_and_clears_filter(self):
        user = User(id=1)
        context = SyncContext(store=SyncStore()).with_filter({"user": 1}).with_operation(SyncOperation.READ_LIST)

        child = context.push(user)

        assert child.depth == 1
        assert child.parent is user
        assert child.filter == {}
        assert child.operation is None
        assert context.depth == 0
        assert context.parent is None

    def test_filter_is_read_only(self):
        context = SyncContext(store=SyncStore()).with_filter({"a": 1})

        with pytest.raises(TypeError):
            context.filter["a"] = 2  # type: ignore[index]

    def test_normalise_filter(self):
        assert normalise_filter({"PostId": User(id=3), "title": "x"}) == {"post_id": 3, "title": "x"}
        assert normalise_filter(None) == {}
