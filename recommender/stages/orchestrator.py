"""
Pipeline orchestrator: builds the exclusion set, runs the candidate generators
concurrently, then merges their outputs into a RecommendationResult.

The main entry point is create_recommendations. Each generator runs under its
own timeout and the whole set under refresh_timeout_seconds; a generator that
fails or times out contributes nothing. Only when every generator that ran
fails is the result empty with reason "all_generators_failed".
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import AbstractSet, List, Optional, Sequence

from ..models.config import RecommenderConfig, resolve_config
from ..models.recommendation import (
    REASON_ALL_GENERATORS_FAILED,
    REASON_EXCLUSION_UNAVAILABLE,
    REASON_NO_CANDIDATES,
    RecommendationResult,
)
from ..models.scoring import ScoredCandidate
from ..sources import FavoritesSource, HistorySource, InteractionSource
from ..utils.time import Clock, utcnow
from .exclusion import build_exclusion_set
from .generators.base import CandidateGenerator, target_count
from .merge import merge_candidates

logger = logging.getLogger(__name__)


@dataclass
class GeneratorOutcome:
    name: str
    status: str
    candidates: List[ScoredCandidate] = field(default_factory=list)


async def _run_generator(
    generator: CandidateGenerator,
    user_id: str,
    exclusion: AbstractSet[str],
    count: int,
    timeout: float,
) -> GeneratorOutcome:
    if count <= 0:
        return GeneratorOutcome(generator.name, "skipped")
    try:
        candidates = await asyncio.wait_for(
            generator.generate(user_id, exclusion, count), timeout=timeout
        )
    except asyncio.TimeoutError:
        logger.warning("[engine] generator %s timed out after %.1fs", generator.name, timeout)
        return GeneratorOutcome(generator.name, "timeout")
    except Exception as e:
        logger.warning("[engine] generator %s failed: %s", generator.name, e)
        return GeneratorOutcome(generator.name, "failed")
    return GeneratorOutcome(generator.name, "ok", list(candidates)[:count])


async def run_generators(
    generators: Sequence[CandidateGenerator],
    user_id: str,
    exclusion: AbstractSet[str],
    limit: int,
    config: Optional[RecommenderConfig] = None,
) -> List[GeneratorOutcome]:
    """Run all generators concurrently; outcomes are returned in generator order."""
    config = resolve_config(config)
    tasks = [
        asyncio.create_task(
            _run_generator(
                g,
                user_id,
                exclusion,
                target_count(limit, g.share),
                config.generator_timeout_seconds,
            )
        )
        for g in generators
    ]
    if not tasks:
        return []
    try:
        done, _ = await asyncio.wait(tasks, timeout=config.refresh_timeout_seconds)
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()

    outcomes = []
    for generator, task in zip(generators, tasks):
        if task in done:
            outcomes.append(task.result())
        else:
            logger.warning("[engine] generator %s exceeded the refresh budget", generator.name)
            outcomes.append(GeneratorOutcome(generator.name, "timeout"))
    return outcomes


def build_result(
    user_id: str,
    outcomes: List[GeneratorOutcome],
    exclusion: AbstractSet[str],
    limit: int,
    as_of,
) -> RecommendationResult:
    """Merge successful outcomes and describe how the list was produced."""
    ran = [o for o in outcomes if o.status != "skipped"]
    succeeded = [o for o in ran if o.status == "ok"]
    items = merge_candidates([o.candidates for o in succeeded], exclusion, limit)

    reason = None
    if ran and not succeeded:
        reason = REASON_ALL_GENERATORS_FAILED
    elif not items:
        reason = REASON_NO_CANDIDATES

    return RecommendationResult(
        user_id=user_id,
        items=items,
        as_of=as_of,
        partial=len(succeeded) < len(ran),
        reason=reason,
        generators={o.name: o.status for o in outcomes},
    )


async def create_recommendations(
    user_id: str,
    limit: int,
    generators: Sequence[CandidateGenerator],
    history: HistorySource,
    favorites: FavoritesSource,
    interactions: InteractionSource,
    config: Optional[RecommenderConfig] = None,
    clock: Clock = utcnow,
) -> RecommendationResult:
    """
    Compute a fresh recommendation list for user_id.

    Returns:
        RecommendationResult with at most limit items, none of them in the
        user's exclusion set. Never raises for source or generator failures.
    """
    config = resolve_config(config)
    as_of = clock()

    # No exclusion set, no recommendations
    try:
        exclusion = await asyncio.wait_for(
            build_exclusion_set(user_id, history, favorites, interactions),
            timeout=config.generator_timeout_seconds,
        )
    except Exception as e:
        logger.warning("[engine] exclusion set unavailable for %s: %s", user_id, e)
        return RecommendationResult(
            user_id=user_id,
            as_of=as_of,
            partial=True,
            reason=REASON_EXCLUSION_UNAVAILABLE,
            generators={g.name: "skipped" for g in generators},
        )

    outcomes = await run_generators(generators, user_id, exclusion, limit, config)
    result = build_result(user_id, outcomes, exclusion, limit, as_of)
    logger.info(
        "[engine] user=%s limit=%d items=%d generators=%s",
        user_id, limit, len(result.items), result.generators,
    )
    return result
