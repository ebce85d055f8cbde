"""Configuration loading utilities.

Layers are applied in this order: the YAML file (after resolving its
``extends`` chain), ``SYNCKIT__*`` environment overrides, then explicit
dotted ``key=value`` overrides. The merged payload is validated once, at the
end, into :class:`~synckit.config.models.SyncConfig`.
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import yaml

from synckit.core.logging import LogEvents, UnifiedLogger

from .environment import coerce_env_value, collect_env_overrides
from .helpers import build_overrides, deep_merge
from .models import SyncConfig

__all__ = ["load_config", "load_raw_config", "parse_overrides"]

_log = UnifiedLogger.get(__name__)


def load_raw_config(path: Path) -> dict[str, Any]:
    """Load a configuration file with support for ``extends``."""

    return _load_with_extends(path, stack=())


def load_config(
    config_path: str | Path,
    *,
    overrides: Mapping[str, Any] | None = None,
    env: Mapping[str, str] | None = None,
) -> SyncConfig:
    """Load, merge, and validate a synckit configuration file."""

    path = _resolve_config_path(config_path)
    merged = load_raw_config(path)

    env_overrides = collect_env_overrides(os.environ if env is None else env)
    if env_overrides:
        merged = deep_merge(merged, env_overrides)
        _log.debug(LogEvents.CONFIG_ENV_APPLIED, component="config.loader", sections=sorted(env_overrides))

    if overrides:
        merged = deep_merge(merged, parse_overrides(overrides))

    return SyncConfig.model_validate(merged)


def parse_overrides(overrides: Mapping[str, Any]) -> dict[str, Any]:
    """Turn ``{"a.b": "1"}`` style overrides into a nested mapping."""

    pairs: list[tuple[tuple[str, ...], Any]] = []
    for dotted_key, raw_value in overrides.items():
        value = coerce_env_value(raw_value) if isinstance(raw_value, str) else raw_value
        pairs.append((tuple(dotted_key.split(".")), value))
    return build_overrides(pairs)


def _resolve_config_path(config_path: str | Path) -> Path:
    candidate = Path(config_path).expanduser()
    path = candidate.resolve()
    if not path.exists():
        msg = f"Configuration file not found: {path}"
        raise FileNotFoundError(msg)
    return path


def _load_yaml(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle)


def _ensure_mapping(data: Any, path: Path) -> dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        msg = f"Configuration root must be a mapping: {path}"
        raise TypeError(msg)
    return dict(data)


def _load_with_extends(path: Path, *, stack: Iterable[Path]) -> dict[str, Any]:
    """Load a YAML file and merge any declared ``extends`` recursively."""

    resolved = path.resolve()
    lineage = list(stack)
    if resolved in lineage:
        cycle = " -> ".join(str(p) for p in (*lineage, resolved))
        msg = f"Circular extends detected: {cycle}"
        raise ValueError(msg)

    data = _ensure_mapping(_load_yaml(resolved), resolved)
    extends = data.pop("extends", ())
    if isinstance(extends, (str, Path)):
        extends = (extends,)

    merged: dict[str, Any] = {}
    for reference in extends or ():
        reference_path = Path(reference)
        if not reference_path.is_absolute():
            reference_path = resolved.parent / reference_path
        merged = deep_merge(merged, _load_with_extends(reference_path, stack=(*lineage, resolved)))

    _log.debug(LogEvents.CONFIG_LAYER_LOADED, component="config.loader", path=str(resolved), depth=len(lineage))
    return deep_merge(merged, data)
