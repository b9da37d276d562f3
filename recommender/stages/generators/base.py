"""
Candidate generator protocol and helpers shared by the generators.
"""

import math
from typing import AbstractSet, Dict, Iterable, List, Protocol

from ...models.recommendation import RecommendationReason
from ...models.scoring import ScoredCandidate


class CandidateGenerator(Protocol):
    """
    Strategy producing scored candidates for one user.

    name identifies the generator in result status maps; share is the fraction
    of the requested limit it fills. generate must never return an item in
    exclusion and every score must be in [0, 1].
    """

    name: str
    reason: RecommendationReason
    share: float

    async def generate(
        self, user_id: str, exclusion: AbstractSet[str], count: int
    ) -> List[ScoredCandidate]:
        ...


def target_count(limit: int, share: float) -> int:
    """floor(limit * share), never negative."""
    return max(int(math.floor(limit * share + 1e-9)), 0)


def keep_best(candidates: Iterable[ScoredCandidate]) -> Dict[str, ScoredCandidate]:
    """Dedup by item_id keeping the highest score; first occurrence wins ties."""
    best: Dict[str, ScoredCandidate] = {}
    for c in candidates:
        current = best.get(c.item_id)
        if current is None or c.score > current.score:
            best[c.item_id] = c
    return best


def top_by_score(candidates: Iterable[ScoredCandidate], count: int) -> List[ScoredCandidate]:
    """Deduplicated candidates sorted by score desc (stable), truncated to count."""
    ranked = sorted(keep_best(candidates).values(), key=lambda c: c.score, reverse=True)
    return ranked[: max(count, 0)]
