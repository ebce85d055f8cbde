"""Look up entities by name instead of id."""

from __future__ import annotations

import difflib
from typing import TYPE_CHECKING, Any

from synckit.core.logging import LogEvents, UnifiedLogger

from .entity import SyncEntity
from .naming import normalise_name

if TYPE_CHECKING:
    from .provider import SyncEntityProvider

__all__ = [
    "ALGORITHM_LEVENSHTEIN",
    "ALGORITHM_SIMILARITY",
    "SyncEntityFuzzyResolver",
    "SyncEntityResolver",
    "levenshtein",
]

ALGORITHM_LEVENSHTEIN = "levenshtein"
ALGORITHM_SIMILARITY = "similarity"


def levenshtein(s1: str, s2: str) -> int:
    if len(s1) < len(s2):
        return levenshtein(s2, s1)
    if len(s2) == 0:
        return len(s1)
    previous_row = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        current_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)
            current_row.append(min(insertions, deletions, substitutions))
        previous_row = current_row
    return previous_row[-1]


def _uncertainty(algorithm: str, name: str, candidate: str) -> float:
    """Return 0.0 for identical strings up to 1.0 for nothing in common."""

    if algorithm == ALGORITHM_SIMILARITY:
        return 1.0 - difflib.SequenceMatcher(None, name, candidate).ratio()
    longest = max(len(name), len(candidate))
    if longest == 0:
        return 0.0
    return levenshtein(name, candidate) / longest


class SyncEntityResolver:
    """Exact, case- and whitespace-insensitive lookup on ``name_field``."""

    def __init__(self, entity_provider: SyncEntityProvider, name_field: str) -> None:
        self.entity_provider = entity_provider
        self.name_field = name_field

    def _name_of(self, entity: SyncEntity) -> str:
        value = getattr(entity, self.name_field, None)
        if value is None:
            value = entity.meta.get(self.name_field)
        return normalise_name(str(value)) if value is not None else ""

    def get_by_name(self, name: str) -> SyncEntity | None:
        wanted = normalise_name(name)
        for entity in self.entity_provider.get_list():
            if self._name_of(entity) == wanted:
                return entity
        return None


class SyncEntityFuzzyResolver(SyncEntityResolver):
    """Closest-name lookup.

    Candidates are ranked by uncertainty (normalised Levenshtein distance by
    default, or ``1 - difflib`` similarity), ties going to the higher
    ``weight_field`` value. A best match whose uncertainty reaches
    ``uncertainty_threshold`` is rejected. Entities are listed once and
    results are cached per normalised name.
    """

    def __init__(
        self,
        entity_provider: SyncEntityProvider,
        name_field: str,
        *,
        weight_field: str | None = None,
        algorithm: str | None = None,
        uncertainty_threshold: float | None = None,
        require_one_match: bool = False,
    ) -> None:
        super().__init__(entity_provider, name_field)
        self.weight_field = weight_field
        self.algorithm = algorithm or ALGORITHM_LEVENSHTEIN
        if self.algorithm not in (ALGORITHM_LEVENSHTEIN, ALGORITHM_SIMILARITY):
            msg = f"Unknown resolver algorithm: {self.algorithm!r}"
            raise ValueError(msg)
        self.uncertainty_threshold = uncertainty_threshold
        self.require_one_match = require_one_match
        self._entities: list[tuple[SyncEntity, str]] | None = None
        self._cache: dict[str, tuple[SyncEntity | None, float | None]] = {}
        self._log = UnifiedLogger.get(__name__).bind(component="sync.resolver")

    def _load(self) -> list[tuple[SyncEntity, str]]:
        if self._entities is None:
            self._entities = [(entity, self._name_of(entity)) for entity in self.entity_provider.get_list()]
        return self._entities

    def _weight(self, entity: SyncEntity) -> Any:
        if self.weight_field is None:
            return 0
        value = getattr(entity, self.weight_field, None)
        if value is None:
            value = entity.meta.get(self.weight_field)
        return value if value is not None else 0

    def get_by_name(self, name: str) -> tuple[SyncEntity | None, float | None]:  # type: ignore[override]
        wanted = normalise_name(name)
        if wanted in self._cache:
            return self._cache[wanted]

        ranked = sorted(
            ((entity, _uncertainty(self.algorithm, wanted, candidate)) for entity, candidate in self._load()),
            key=lambda item: (item[1], -self._weight(item[0])),
        )
        result: tuple[SyncEntity | None, float | None] = (None, None)
        if ranked:
            entity, uncertainty = ranked[0]
            ambiguous = (
                self.require_one_match
                and len(ranked) > 1
                and ranked[1][1] == uncertainty
                and self._weight(ranked[1][0]) == self._weight(entity)
            )
            exceeded = self.uncertainty_threshold is not None and uncertainty >= self.uncertainty_threshold
            if exceeded or ambiguous:
                self._log.debug(
                    LogEvents.SYNC_RESOLVER_THRESHOLD_EXCEEDED,
                    name=name,
                    candidate=getattr(entity, self.name_field, None),
                    uncertainty=round(uncertainty, 4),
                    threshold=self.uncertainty_threshold,
                    ambiguous=ambiguous,
                )
            else:
                result = (entity, uncertainty)
        self._cache[wanted] = result
        return result
