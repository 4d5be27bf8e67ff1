"""
Match scoring for AI mode.

There is no real relevance model yet. RandomMatchScoring hands out a
pseudo-random score in [60, 100) so the AI view has something to rank by;
swap in a real ScoringStrategy when one exists.
"""

import random
from typing import List, Optional, Protocol

from .models import Creator, SortDirection


class ScoringStrategy(Protocol):
    def score(self, creator: Creator) -> int:
        ...


class RandomMatchScoring:
    """Placeholder strategy: uniform integer in [low, high)."""

    def __init__(self, low: int = 60, high: int = 100, rng: Optional[random.Random] = None):
        if high <= low:
            raise ValueError(f"high ({high}) must be greater than low ({low})")
        self.low = low
        self.high = high
        self._rng = rng or random.Random()

    def score(self, creator: Creator) -> int:
        return self._rng.randrange(self.low, self.high)


def assign_match_scores(creators: List[Creator], strategy: ScoringStrategy) -> List[Creator]:
    """Copies of creators with match_score set by strategy."""
    return [c.model_copy(update={"match_score": strategy.score(c)}) for c in creators]


def sort_by_match_score(creators: List[Creator], direction: str = SortDirection.DESC.value) -> List[Creator]:
    return sorted(
        creators,
        key=lambda c: c.match_score or 0,
        reverse=direction == SortDirection.DESC,
    )
