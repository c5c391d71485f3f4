# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Fuzzy name search over library entries."""

import logging
from dataclasses import dataclass
from typing import Callable, Generic, Iterable, TypeVar

import Levenshtein

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class FuzzyHit(Generic[T]):
    """Represent one search hit.

    Attributes:
        item: Matched item.
        score: Distance in [0.0, 1.0]; 0.0 is identical.
        matched_key: Key text of ``item`` that produced ``score``.
    """

    item: T
    score: float
    matched_key: str


def distance(left: str, right: str) -> float:
    """Compute a case-insensitive normalized distance between two strings."""
    return 1.0 - float(Levenshtein.ratio(left.casefold(), right.casefold()))


class FuzzyIndex(Generic[T]):
    """Search items by the best distance across their key strings."""

    def __init__(
        self,
        items: Iterable[T],
        keys: Callable[[T], Iterable[str]],
        max_score: float = 1.0,
    ) -> None:
        """Initialize the index.

        Args:
            items: Items to search; order breaks score ties.
            keys: Key strings for one item, e.g. name and aliases.
            max_score: Inclusive distance cutoff for returned hits.

        Raises:
            ValueError: If ``max_score`` is outside [0.0, 1.0].
        """
        if max_score < 0.0 or max_score > 1.0:
            raise ValueError("max_score must be between 0.0 and 1.0.")
        self._items = list(items)
        self._keys = keys
        self._max_score = max_score

    def search(self, query: str) -> list[FuzzyHit[T]]:
        """Return hits ordered by ascending distance.

        Args:
            query: Text to search for.

        Returns:
            Hits with ``score <= max_score``, best first.
        """
        hits: list[FuzzyHit[T]] = []
        for item in self._items:
            best: FuzzyHit[T] | None = None
            for key in self._keys(item):
                if not key:
                    continue
                score = distance(query, key)
                if best is None or score < best.score:
                    best = FuzzyHit(item=item, score=score, matched_key=key)
            if best is not None and best.score <= self._max_score:
                hits.append(best)
        hits.sort(key=lambda hit: hit.score)
        return hits
