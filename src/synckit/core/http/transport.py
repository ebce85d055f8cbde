"""HTTP transport with retries and timeouts.

The sync core never retries on its own: every backend call goes through
:meth:`HttpTransport.issue_request`, which owns retry and timeout policy and
reports failures as :class:`TransportError` subclasses that distinguish
network errors from non-2xx responses.
"""

from __future__ import annotations

import random
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any
from urllib.parse import urljoin
from uuid import uuid4

import requests
from requests import Response
from requests.exceptions import RequestException
from requests.structures import CaseInsensitiveDict

from synckit.config.models.http import HTTPClientConfig
from synckit.core.logging import LogEvents, UnifiedLogger
from synckit.core.runtime.errors import SynckitError

__all__ = [
    "HttpTransport",
    "TransportConnectionError",
    "TransportError",
    "TransportHTTPError",
    "TransportResponse",
]


class TransportError(SynckitError):
    """Raised when a backend call fails.

    ``status_code`` is ``None`` for network failures and the HTTP status for
    non-2xx responses.
    """

    def __init__(
        self,
        message: str,
        *,
        method: str,
        url: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.method = method
        self.url = url
        self.status_code = status_code


class TransportConnectionError(TransportError):
    """The request never produced an HTTP response."""


class TransportHTTPError(TransportError):
    """The backend answered with a non-2xx status."""

    def __init__(self, message: str, *, method: str, url: str, status_code: int, body: Any = None) -> None:
        super().__init__(message, method=method, url=url, status_code=status_code)
        self.body = body


@dataclass(slots=True, frozen=True)
class TransportResponse:
    """Decoded result of one backend call."""

    status_code: int
    url: str
    headers: CaseInsensitiveDict[str] = field(default_factory=CaseInsensitiveDict)
    body: Any = None

    def header(self, name: str, default: str | None = None) -> str | None:
        return self.headers.get(name, default)


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    value = value.strip()
    if value.isdigit():
        return float(value)
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    delta = (parsed - datetime.now(timezone.utc)).total_seconds()
    return max(delta, 0.0)


def _decode_body(response: Response) -> Any:
    if response.status_code == 204 or not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class HttpTransport:
    """Issue HTTP requests for sync providers."""

    def __init__(
        self,
        config: HTTPClientConfig | None = None,
        *,
        base_url: str | None = None,
        name: str | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.config = config or HTTPClientConfig()
        self.base_url = base_url.rstrip("/") if base_url else ""
        self.name = name or "default"
        self._session = session or requests.Session()
        self._session.headers.update(dict(self.config.headers))
        self._timeout = self._derive_timeout(self.config)
        self._retry_total = int(self.config.retries.total)
        self._retry_statuses = set(self.config.retries.statuses)
        self._backoff_multiplier = float(self.config.retries.backoff_multiplier)
        self._backoff_max = float(self.config.retries.backoff_max)
        self._logger = UnifiedLogger.get(__name__).bind(
            component="http_transport",
            transport=self.name,
        )

    @staticmethod
    def _derive_timeout(config: HTTPClientConfig) -> tuple[float, float]:
        connect = min(config.connect_timeout_sec, config.timeout_sec)
        read = min(config.read_timeout_sec, config.timeout_sec)
        return (connect, read)

    def close(self) -> None:
        self._session.close()

    def resolve_url(self, endpoint: str) -> str:
        if endpoint.startswith(("http://", "https://")) or not self.base_url:
            return endpoint
        return urljoin(self.base_url + "/", endpoint.lstrip("/"))

    def issue_request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        params: Mapping[str, Any] | None = None,
    ) -> TransportResponse:
        """Send one request, retrying transient failures, and decode the reply."""

        method = method.upper()
        resolved = self.resolve_url(url)
        request_id = str(uuid4())
        max_attempts = self._retry_total + 1
        payload_kwargs: dict[str, Any] = {}
        if isinstance(body, (str, bytes)):
            payload_kwargs["data"] = body
        elif body is not None:
            payload_kwargs["json"] = body

        attempt = 0
        while True:
            attempt += 1
            start = time.perf_counter()
            try:
                response = self._session.request(
                    method,
                    resolved,
                    params=dict(params) if params else None,
                    headers=dict(headers) if headers else None,
                    timeout=self._timeout,
                    **payload_kwargs,
                )
            except RequestException as exc:
                duration_ms = (time.perf_counter() - start) * 1000
                self._logger.warning(
                    LogEvents.HTTP_REQUEST_EXCEPTION,
                    method=method,
                    endpoint=resolved,
                    attempt=attempt,
                    duration_ms=duration_ms,
                    request_id=request_id,
                    error=str(exc),
                )
                if attempt >= max_attempts:
                    raise TransportConnectionError(
                        f"{method} {resolved} failed after {attempt} attempt(s): {exc}",
                        method=method,
                        url=resolved,
                    ) from exc
                self._sleep(self._compute_backoff(attempt, None))
                continue

            duration_ms = (time.perf_counter() - start) * 1000
            status_code = response.status_code
            if status_code in self._retry_statuses and attempt < max_attempts:
                retry_after = _parse_retry_after(response.headers.get("Retry-After"))
                self._logger.warning(
                    LogEvents.HTTP_REQUEST_RETRY,
                    method=method,
                    endpoint=resolved,
                    attempt=attempt,
                    duration_ms=duration_ms,
                    status_code=status_code,
                    retry_after=retry_after,
                    request_id=request_id,
                )
                self._sleep(self._compute_backoff(attempt, retry_after))
                continue

            body_out = _decode_body(response)
            if status_code >= 400:
                self._logger.error(
                    LogEvents.HTTP_REQUEST_FAILED,
                    method=method,
                    endpoint=resolved,
                    attempt=attempt,
                    duration_ms=duration_ms,
                    status_code=status_code,
                    request_id=request_id,
                )
                raise TransportHTTPError(
                    f"{method} {resolved} returned HTTP {status_code}",
                    method=method,
                    url=resolved,
                    status_code=status_code,
                    body=body_out,
                )

            self._logger.info(
                LogEvents.HTTP_REQUEST_COMPLETED,
                method=method,
                endpoint=resolved,
                attempt=attempt,
                duration_ms=duration_ms,
                status_code=status_code,
                request_id=request_id,
            )
            return TransportResponse(
                status_code=status_code,
                url=response.url or resolved,
                headers=CaseInsensitiveDict(response.headers),
                body=body_out,
            )

    def _compute_backoff(self, attempt: int, retry_after: float | None) -> float:
        if retry_after is not None:
            return min(retry_after, self._backoff_max)
        delay = self._backoff_multiplier ** max(attempt - 1, 0)
        delay = min(delay, self._backoff_max)
        return delay + random.uniform(0.0, min(delay, 1.0))

    @staticmethod
    def _sleep(duration: float) -> None:
        if duration <= 0:
            return
        time.sleep(duration)
