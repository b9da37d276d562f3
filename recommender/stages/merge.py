"""
Merge & rank: combine generator outputs into the final list.

Drops excluded ids, dedups by item_id keeping the highest score (before
truncation), sorts by score desc and truncates. Never pads.
"""

from typing import AbstractSet, Iterable, List

from ..models.recommendation import RecommendationItem
from ..models.scoring import ScoredCandidate
from .generators.base import top_by_score


def merge_candidates(
    candidate_lists: Iterable[List[ScoredCandidate]],
    exclusion: AbstractSet[str],
    limit: int,
) -> List[RecommendationItem]:
    eligible = (
        c for candidates in candidate_lists for c in candidates if c.item_id not in exclusion
    )
    return [
        RecommendationItem(
            item_id=c.item_id,
            type=c.type,
            snapshot=c.snapshot,
            score=c.score,
            reason=c.reason,
            metadata=dict(c.metadata),
        )
        for c in top_by_score(eligible, limit)
    ]
