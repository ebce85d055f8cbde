"""HTTP transport configuration models."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, PositiveFloat

StatusCode = Annotated[int, Field(ge=100, le=599)]


class RetryConfig(BaseModel):
    """Retry policy applied by the transport, never by the sync core."""

    model_config = ConfigDict(extra="forbid")

    total: Annotated[int, Field(ge=0)] = Field(
        default=3,
        description="Total number of retry attempts (excluding the first call).",
    )
    backoff_multiplier: PositiveFloat = Field(
        default=2.0,
        description="Multiplier applied between retry attempts for exponential backoff.",
    )
    backoff_max: PositiveFloat = Field(
        default=30.0,
        description="Maximum delay in seconds between retry attempts.",
    )
    statuses: tuple[StatusCode, ...] = Field(
        default=(408, 429, 500, 502, 503, 504),
        description="HTTP status codes that should trigger a retry.",
    )


class HTTPClientConfig(BaseModel):
    """Configuration for a single HTTP transport."""

    model_config = ConfigDict(extra="forbid")

    timeout_sec: PositiveFloat = Field(default=60.0, description="Total request timeout in seconds.")
    connect_timeout_sec: PositiveFloat = Field(
        default=15.0,
        description="Connection timeout in seconds.",
    )
    read_timeout_sec: PositiveFloat = Field(
        default=60.0,
        description="Socket read timeout in seconds.",
    )
    retries: RetryConfig = Field(default_factory=RetryConfig)
    headers: Mapping[str, str] = Field(
        default_factory=lambda: {
            "User-Agent": "synckit/0.4 (HttpTransport)",
            "Accept": "application/json",
        },
        description="Default headers that will be sent with each request.",
    )
