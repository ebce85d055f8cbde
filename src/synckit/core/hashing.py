"""Deterministic hashing helpers.

Hashes are SHA256 over a canonical JSON rendering (sorted keys, compact
separators, ISO 8601 datetimes) so equal inputs hash equally across runs.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable
from datetime import date, datetime
from typing import Any

__all__ = ["canonical_json", "hash_provider_identity", "hash_value"]


def _canonicalize_value(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _canonicalize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_canonicalize_value(v) for v in value]
    if isinstance(value, float):
        return f"{value:.6f}"
    return value


def canonical_json(value: Any) -> str:
    return json.dumps(_canonicalize_value(value), sort_keys=True, separators=(",", ":"))


def hash_value(value: Any) -> str:
    """Return the SHA256 hex digest of ``value``'s canonical JSON form."""

    return hashlib.sha256(canonical_json(value).encode("utf-8")).hexdigest()


def hash_provider_identity(class_name: str, backend_identifier: Iterable[Any]) -> str:
    """Hash a provider class name together with its backend identifier.

    Two provider instances talking to the same backend through the same class
    share a hash, and therefore share identity keys.

    >>> a = hash_provider_identity("JsonApi", ["https://api.example.org"])
    >>> b = hash_provider_identity("JsonApi", ("https://api.example.org",))
    >>> a == b and len(a) == 64
    True
    """

    return hash_value([class_name, list(backend_identifier)])
