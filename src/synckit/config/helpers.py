"""Shared helper functions for configuration modules."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, MutableMapping
from typing import Any, Sequence


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``base`` with ``override`` merged on top, recursing into mappings."""

    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        existing = merged.get(key)
        if isinstance(existing, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(existing, value)
        else:
            merged[key] = value
    return merged


def build_overrides(pairs: Iterable[tuple[Sequence[str], Any]]) -> dict[str, Any]:
    """Construct a nested mapping from ``pairs`` of path segments and values."""

    tree: dict[str, Any] = {}

    for raw_parts, value in pairs:
        parts = tuple(str(part) for part in raw_parts)
        if not parts:
            continue

        current: MutableMapping[str, Any] = tree
        for part in parts[:-1]:
            existing = current.get(part)
            if isinstance(existing, MutableMapping):
                current = existing
            else:
                next_level: dict[str, Any] = {}
                current[part] = next_level
                current = next_level

        current[parts[-1]] = value

    return tree


__all__ = ["build_overrides", "deep_merge"]
