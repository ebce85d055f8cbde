"""HTTP transport used by sync providers."""

from .transport import (
    HttpTransport,
    TransportConnectionError,
    TransportError,
    TransportHTTPError,
    TransportResponse,
)

__all__ = [
    "HttpTransport",
    "TransportConnectionError",
    "TransportError",
    "TransportHTTPError",
    "TransportResponse",
]
