"""Configuration models for providers, hydration and serialization."""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator

from ..helpers import deep_merge
from .http import HTTPClientConfig

__all__ = [
    "PagerConfig",
    "HydrationRuleConfig",
    "HydrationConfig",
    "SerializeConfig",
    "ProviderConfig",
    "LoggingSection",
    "SyncConfig",
]

HydrationFlagName = Literal["lazy", "eager", "suppress"]


class PagerConfig(BaseModel):
    """Pagination strategy for a provider's endpoints."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["none", "odata", "link_header", "page_meta"] = Field(
        default="none",
        description="Pagination convention used by the backend.",
    )
    max_page_size: PositiveInt | None = Field(
        default=None,
        description="Requested page size, sent once before the first page.",
    )
    prefix: str | None = Field(
        default=None,
        description="OData annotation prefix; derived from the OData-Version header when unset.",
    )
    items_key: str | None = Field(
        default=None,
        description="Payload key holding the page entities.",
    )
    limit_param: str = Field(
        default="limit",
        description="Query parameter carrying the page size for page_meta pagination.",
    )


class HydrationRuleConfig(BaseModel):
    """One hydration override, optionally bound to an entity type and depth."""

    model_config = ConfigDict(extra="forbid")

    flags: tuple[HydrationFlagName, ...]
    entity: str | None = Field(default=None, description="Entity class name the rule applies to.")
    depth: Annotated[int, Field(ge=1)] | None = Field(
        default=None,
        description="Deepest relationship level the rule applies to.",
    )


class HydrationConfig(BaseModel):
    """Default hydration policy for new sync contexts."""

    model_config = ConfigDict(extra="forbid")

    default: tuple[HydrationFlagName, ...] = ("lazy",)
    rules: tuple[HydrationRuleConfig, ...] = ()


class SerializeConfig(BaseModel):
    """Defaults for entity serialization."""

    model_config = ConfigDict(extra="forbid")

    key_case: Literal["snake", "camel", "pascal"] = "snake"
    sort_keys: bool = False
    deferred: Literal["resolve", "null", "link"] = "null"
    include_meta: bool = False
    max_depth: PositiveInt | None = None


class ProviderConfig(BaseModel):
    """A backend reachable over HTTP."""

    model_config = ConfigDict(extra="forbid")

    base_url: str
    http: HTTPClientConfig | None = Field(
        default=None,
        description="Transport settings; falls back to the top-level http section.",
    )
    pager: PagerConfig = Field(default_factory=PagerConfig)
    filter_policy: Literal["ignore", "fail", "return_empty", "filter_locally"] = "fail"
    headers: Mapping[str, str] = Field(default_factory=dict)

    @field_validator("base_url")
    @classmethod
    def _strip_base_url(cls, value: str) -> str:
        stripped = value.strip().rstrip("/")
        if not stripped.startswith(("http://", "https://")):
            msg = f"base_url must be an absolute http(s) URL, got {value!r}"
            raise ValueError(msg)
        return stripped


class LoggingSection(BaseModel):
    """Logging options applied by entry points."""

    model_config = ConfigDict(extra="forbid")

    level: str = "INFO"
    format: Literal["json", "key_value"] = "json"


class SyncConfig(BaseModel):
    """Top-level synckit configuration document."""

    model_config = ConfigDict(extra="forbid")

    http: HTTPClientConfig = Field(default_factory=HTTPClientConfig)
    providers: MutableMapping[str, ProviderConfig] = Field(default_factory=dict)
    hydration: HydrationConfig = Field(default_factory=HydrationConfig)
    serialization: SerializeConfig = Field(default_factory=SerializeConfig)
    logging: LoggingSection = Field(default_factory=LoggingSection)

    def provider(self, name: str) -> ProviderConfig:
        try:
            return self.providers[name]
        except KeyError as exc:
            known = ", ".join(sorted(self.providers)) or "none"
            msg = f"Provider '{name}' is not configured (known: {known})"
            raise KeyError(msg) from exc

    def http_for(self, name: str) -> HTTPClientConfig:
        """Return the transport settings for provider ``name``."""

        provider = self.provider(name)
        if provider.http is None:
            return self.http
        merged = deep_merge(self.http.model_dump(), provider.http.model_dump(exclude_unset=True))
        return HTTPClientConfig.model_validate(merged)
