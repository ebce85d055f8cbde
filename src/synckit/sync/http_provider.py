"""Providers backed by an HTTP API."""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Mapping
from typing import Any

from synckit.clients.http import PageRequest, Pager, Paginator, SinglePagePager, build_pager
from synckit.config.models import HTTPClientConfig, ProviderConfig, SyncConfig
from synckit.core.http import HttpTransport

from .catalog import FilterPolicy
from .definition import HttpSyncDefinition, SyncDefinition
from .entity import SyncEntity
from .exceptions import UnsupportedOperation
from .hydration import HydrationPolicy
from .provider import SyncProvider
from .store import SyncStore

__all__ = ["ConfiguredHttpProvider", "HttpSyncProvider"]


class HttpSyncProvider(SyncProvider):
    """Base class for providers that talk to one HTTP base URL.

    Subclasses implement :meth:`base_url` and :meth:`get_http_definition`
    and may override :meth:`headers` and :meth:`default_pager`. Provider
    methods named after operations (``get_users`` and so on) take precedence
    over the definition's generic HTTP mapping.
    """

    def __init__(
        self,
        transport: HttpTransport | None = None,
        store: SyncStore | None = None,
        *,
        http_config: HTTPClientConfig | None = None,
        hydration: HydrationPolicy | None = None,
    ) -> None:
        super().__init__(store, hydration=hydration)
        self._transport = transport
        self._http_config = http_config

    @abstractmethod
    def base_url(self) -> str:
        """Root URL every endpoint path is relative to."""

    @abstractmethod
    def get_http_definition(self, entity_type: type[SyncEntity]) -> HttpSyncDefinition:
        """Describe how ``entity_type`` maps onto the API."""

    def headers(self) -> Mapping[str, str]:
        return {}

    def default_pager(self) -> Pager:
        return SinglePagePager()

    def backend_identifier(self) -> tuple[Any, ...]:
        return (self.base_url(),)

    @property
    def transport(self) -> HttpTransport:
        if self._transport is None:
            self._transport = HttpTransport(
                self._http_config,
                base_url=self.base_url(),
                name=type(self).__name__,
            )
        return self._transport

    def build_definition(self, entity_type: type[SyncEntity]) -> SyncDefinition:
        return self.get_http_definition(entity_type)

    def definition(self, entity_type: type[SyncEntity], **options: Any) -> HttpSyncDefinition:
        """Shortcut for an :class:`HttpSyncDefinition` bound to this provider."""

        return HttpSyncDefinition(entity=entity_type, provider=self, **options)

    def fetch(
        self,
        method: str,
        path: str,
        *,
        query: Mapping[str, Any] | None = None,
        body: Any = None,
        paginate: bool = False,
        pager: Pager | None = None,
    ) -> Any:
        """Issue a raw request and return the decoded body.

        With ``paginate`` every page is requested and the extracted entity
        payloads are returned as one list.
        """

        if paginate:
            request = PageRequest(method=method.upper(), url=path, params=query or None, body=body)
            return Paginator().collect(self.transport, request, pager or self.default_pager())
        return self.transport.issue_request(method, path, params=query, body=body).body


class ConfiguredHttpProvider(HttpSyncProvider):
    """An HTTP provider described entirely by a ``providers.<name>`` config section.

    Entity definitions are registered with :meth:`register`; operations on
    unregistered entity types raise :class:`UnsupportedOperation`.
    """

    def __init__(
        self,
        name: str,
        config: ProviderConfig,
        *,
        http_config: HTTPClientConfig | None = None,
        transport: HttpTransport | None = None,
        store: SyncStore | None = None,
        hydration: HydrationPolicy | None = None,
        definitions: Mapping[type[SyncEntity], Mapping[str, Any]] | None = None,
    ) -> None:
        self.name = name
        self.config = config
        super().__init__(
            transport,
            store,
            http_config=http_config or config.http,
            hydration=hydration,
        )
        self.filter_policy = FilterPolicy(config.filter_policy)
        self._pager = build_pager(config.pager)
        self._definition_options: dict[type[SyncEntity], dict[str, Any]] = {
            entity_type: dict(options) for entity_type, options in (definitions or {}).items()
        }

    @classmethod
    def from_config(
        cls,
        config: SyncConfig,
        name: str,
        *,
        store: SyncStore | None = None,
        transport: HttpTransport | None = None,
    ) -> ConfiguredHttpProvider:
        return cls(
            name,
            config.provider(name),
            http_config=config.http_for(name),
            transport=transport,
            store=store,
            hydration=HydrationPolicy.from_config(config.hydration),
        )

    def base_url(self) -> str:
        return self.config.base_url

    def headers(self) -> Mapping[str, str]:
        return dict(self.config.headers)

    def default_pager(self) -> Pager:
        return self._pager

    def register(self, entity_type: type[SyncEntity], **options: Any) -> ConfiguredHttpProvider:
        self._definition_options[entity_type] = options
        self._definitions.pop(entity_type, None)
        return self

    def get_http_definition(self, entity_type: type[SyncEntity]) -> HttpSyncDefinition:
        options = self._definition_options.get(entity_type)
        if options is None:
            raise UnsupportedOperation(
                f"Provider '{self.name}' has no definition for {entity_type.__name__}",
                entity=entity_type,
            )
        return self.definition(entity_type, **options)
