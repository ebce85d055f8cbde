"""Provider dispatch, filter policies, errors and write operations."""

from __future__ import annotations

from typing import Any

import pytest

from synckit.config.models import HTTPClientConfig, RetryConfig
from synckit.core.http import TransportHTTPError
from synckit.sync import (
    EntityNotFound,
    FilterPolicy,
    FilterPolicyViolation,
    HttpSyncDefinition,
    SyncContext,
    SyncDefinition,
    SyncEntity,
    SyncOperation,
    SyncProvider,
    TransportFailure,
    UnsupportedOperation,
)
from tests.fixtures.entities import Album, Comment, Post, Task, User
from tests.fixtures.providers import JsonPlaceholderProvider


class InMemoryProvider(SyncProvider):
    """Provider serving users from a dict through provider methods."""

    def __init__(self, rows: dict[int, dict[str, Any]], **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.rows = rows
        self.calls: list[str] = []

    def backend_identifier(self) -> tuple[Any, ...]:
        return ("memory", id(self.rows))

    def get_user(self, context: SyncContext, entity_id: Any) -> Any:
        self.calls.append("get_user")
        return self.rows.get(entity_id)

    def get_users(self, context: SyncContext) -> Any:
        self.calls.append("get_users")
        return list(self.rows.values())


@pytest.mark.unit
class TestDispatch:
    def test_provider_methods(self):
        provider = InMemoryProvider({1: {"id": 1, "name": "Ada"}, 2: {"id": 2, "name": "Grace"}})

        user = provider.with_(User).get(1)
        users = provider.with_("User").get_list()

        assert user.name == "Ada"
        assert users[0] is user
        assert provider.calls == ["get_user", "get_users"]

    def test_missing_operation_is_unsupported(self):
        provider = InMemoryProvider({})

        with pytest.raises(UnsupportedOperation) as excinfo:
            provider.with_(User).create(User(name="x"))

        assert excinfo.value.entity == "User"
        assert excinfo.value.operation is SyncOperation.CREATE

    def test_override_beats_provider_method(self):
        seen: list[tuple[SyncOperation, tuple[Any, ...]]] = []

        class Overridden(InMemoryProvider):
            def build_definition(self, entity_type):
                def read(definition, operation, context, *args):
                    seen.append((operation, args))
                    return {"id": args[0], "name": "from override"}

                return SyncDefinition(entity=entity_type, overrides={SyncOperation.READ: read})

        provider = Overridden({1: {"id": 1, "name": "Ada"}})

        assert provider.with_(User).get(1).name == "from override"
        assert provider.calls == []
        assert seen == [(SyncOperation.READ, (1,))]

    def test_callback_can_swap_definition(self, provider, backend):
        def use_todos_path(definition, operation, context, *args):
            return HttpSyncDefinition(entity=definition.entity, provider=definition.provider, path="/todos")

        definition = HttpSyncDefinition(entity=Album, provider=provider, path="/nowhere", callback=use_todos_path)
        provider._definitions[Album] = definition

        album = provider.with_(Album).get(11)

        assert album.title == "delectus aut autem"
        assert backend.calls == {"/todos/11": 1}

    def test_reserved_names_are_not_dispatched(self):
        class Definition(SyncEntity):
            pass

        provider = InMemoryProvider({})

        with pytest.raises(UnsupportedOperation):
            provider.with_(Definition).get(1)


@pytest.mark.unit
class TestFilterPolicies:
    def test_supported_filter_is_routed(self, provider, backend):
        posts = provider.with_(Post).get_list(user=2)

        assert [post.id for post in posts] == [201]
        assert backend.calls == {"/users/2/posts": 1}

    def test_entity_values_become_ids(self, provider, backend):
        user = User.provide({"id": 1})

        posts = provider.with_(Post).get_list({"user": user})

        assert [post.id for post in posts] == [101, 102]

    def test_query_filters_are_sent(self, provider, backend):
        users = provider.with_(User).get_list(username="Antonette")

        assert [user.id for user in users] == [2]
        assert backend.requests[-1][2] == {"username": ["Antonette"]}

    def test_claimed_filters_reach_provider_methods(self, provider, backend):
        tasks = provider.with_(Task).get_list(user=2)

        assert [task.id for task in tasks] == [21]

    def test_fail_policy_raises_before_any_call(self, provider, backend):
        with pytest.raises(FilterPolicyViolation) as excinfo:
            provider.with_(Post).get_list(title="qui est esse", user=1)

        assert excinfo.value.filters == ("title",)
        assert excinfo.value.entity == "Post"
        assert excinfo.value.operation is SyncOperation.READ_LIST
        assert backend.total_get_calls == 0

    def test_ignore_policy_drops_unsupported(self, provider, backend):
        provider.filter_policy = FilterPolicy.IGNORE

        posts = provider.with_(Post).get_list(title="qui est esse", user=1)

        assert [post.id for post in posts] == [101, 102]
        assert backend.calls == {"/users/1/posts": 1}

    def test_return_empty_policy_skips_call(self, provider, backend):
        provider.filter_policy = FilterPolicy.RETURN_EMPTY

        assert provider.with_(Post).get_list(title="qui est esse") == []
        assert backend.total_get_calls == 0

    def test_filter_locally(self, provider, backend):
        provider.filter_policy = FilterPolicy.FILTER_LOCALLY

        posts = provider.with_(Post).get_list(title="qui est esse", user=1)

        assert [post.id for post in posts] == [102]
        assert backend.calls == {"/users/1/posts": 1}

    def test_filter_locally_matches_any_listed_value(self, provider, backend):
        provider.filter_policy = FilterPolicy.FILTER_LOCALLY

        comments = provider.with_(Comment).get_list(post=101, email=["jayne@sydney.com", "x@y.z"])

        assert [comment.id for comment in comments] == [1002]

    def test_definition_policy_beats_provider_policy(self, provider, backend):
        provider._definitions[Post] = HttpSyncDefinition(
            entity=Post,
            provider=provider,
            path=["/users/{user}/posts", "/posts"],
            filter_policy=FilterPolicy.IGNORE,
        )

        posts = provider.with_(Post).get_list(title="ignored")

        assert len(posts) == 3


@pytest.mark.unit
class TestErrors:
    def test_http_404_is_not_found(self, provider, backend):
        with pytest.raises(EntityNotFound) as excinfo:
            provider.with_(User).get(99)

        assert excinfo.value.entity_id == 99
        assert isinstance(excinfo.value.__cause__, TransportHTTPError)
        assert "User(99)" in str(excinfo.value)

    def test_empty_result_is_not_found(self):
        provider = InMemoryProvider({})

        with pytest.raises(EntityNotFound, match=r"\[entity=User, operation=read\]"):
            provider.with_(User).get(1)

    def test_deferred_failure_surfaces_on_access(self, provider, backend):
        backend.tables["users"] = [row for row in backend.tables["users"] if row["id"] != 2]
        post = provider.with_(Post).get(201)

        with pytest.raises(EntityNotFound):
            _ = post.user

    def test_server_error_is_transport_failure(self, make_provider, backend, monkeypatch):
        provider = make_provider(http_config=HTTPClientConfig(retries=RetryConfig(total=1)))

        monkeypatch.setattr(backend, "_get", lambda parts, query: (500, {}, "{}"))

        with pytest.raises(TransportFailure) as excinfo:
            provider.with_(Post).get_list(user=1)

        assert excinfo.value.status_code == 500
        assert excinfo.value.operation is SyncOperation.READ_LIST
        assert isinstance(excinfo.value.__cause__, TransportHTTPError)
        assert backend.calls["/users/1/posts"] == 2

    def test_unfillable_path(self, provider, backend):
        provider._definitions[Comment] = HttpSyncDefinition(
            entity=Comment, provider=provider, path="/posts/{post}/comments"
        )

        with pytest.raises(UnsupportedOperation, match="No path template"):
            provider.with_(Comment).get_list()


@pytest.mark.unit
class TestWrites:
    def test_create_posts_payload_and_materializes(self, provider, backend):
        author = provider.with_(User).get(1)
        draft = Post(title="new", body="text", user=author)

        created = provider.with_(Post).create(draft)

        method, path, _, body = backend.requests[-1]
        assert (method, path) == ("POST", "/posts")
        assert body == {"id": None, "title": "new", "body": "text", "published_at": None, "user": 1, "comments": None}
        assert created.id == 901
        assert created.user is author
        assert created.identity_key() in provider.store

    def test_update_returns_store_instance(self, provider, backend):
        post = provider.with_(Post).get(101)
        post.title = "edited"

        updated = provider.with_(Post).update(post)

        assert updated is post
        assert backend.requests[-1][:2] == ("PUT", "/posts/101")
        assert backend.tables["posts"][0]["title"] == "edited"

    def test_delete_evicts(self, provider, backend):
        post = provider.with_(Post).get(102)

        deleted = provider.with_(Post).delete(post)

        assert deleted is post
        assert post.identity_key() not in provider.store
        assert backend.requests[-1][:2] == ("DELETE", "/posts/102")

    def test_create_list_in_one_request(self, provider, backend):
        created = provider.with_(Post).create_list([Post(title="a"), Post(title="b")])

        assert [post.id for post in created] == [901, 902]
        assert [request[:2] for request in backend.requests] == [("POST", "/posts")]

    def test_delete_list_one_request_per_entity(self, provider, backend):
        provider._definitions[Post] = HttpSyncDefinition(
            entity=Post,
            provider=provider,
            operations=frozenset(SyncOperation),
            path="/posts",
            sync_one_entity_per_request=True,
        )
        posts = provider.with_(Post).get_list()

        provider.with_(Post).delete_list(posts[:2])

        assert [request[:2] for request in backend.requests[1:]] == [
            ("DELETE", "/posts/101"),
            ("DELETE", "/posts/102"),
        ]
        assert posts[2].identity_key() in provider.store
        assert posts[0].identity_key() not in provider.store

    def test_read_only_definition_rejects_writes(self, provider, backend):
        with pytest.raises(UnsupportedOperation):
            provider.with_(User).delete(User(id=1))


@pytest.mark.unit
def test_entity_provider_repr(provider):
    assert repr(provider.with_(User)) == "<SyncEntityProvider JsonPlaceholderProvider:User>"


@pytest.mark.unit
def test_provider_hash_includes_class_name(store):
    class Mirror(JsonPlaceholderProvider):
        pass

    assert Mirror(store=store).provider_hash != JsonPlaceholderProvider(store=store).provider_hash
