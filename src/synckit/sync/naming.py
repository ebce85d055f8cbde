"""Identifier case conversion used by entity normalisation and serialization."""

from __future__ import annotations

import re

__all__ = ["normalise_name", "pluralise", "to_camel_case", "to_pascal_case", "to_snake_case"]

_CASE_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_NON_WORD = re.compile(r"[^0-9A-Za-z]+")
_WHITESPACE = re.compile(r"\s+")


def to_snake_case(value: str) -> str:
    """Convert ``userId``, ``UserID``, ``USER_ID`` or ``user-id`` to ``user_id``."""

    text = _CASE_BOUNDARY.sub("_", value.strip())
    return _NON_WORD.sub("_", text).strip("_").lower()


def to_camel_case(value: str) -> str:
    first, *rest = to_snake_case(value).split("_")
    return first + "".join(part.capitalize() for part in rest)


def to_pascal_case(value: str) -> str:
    return "".join(part.capitalize() for part in to_snake_case(value).split("_"))


def pluralise(word: str) -> str:
    if word.endswith("y") and len(word) > 1 and word[-2] not in "aeiou":
        return word[:-1] + "ies"
    if word.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    return word + "s"


def normalise_name(value: str) -> str:
    """Fold case and collapse whitespace for name comparisons."""

    return _WHITESPACE.sub(" ", value).strip().casefold()
