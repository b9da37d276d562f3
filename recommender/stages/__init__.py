"""Recommendation pipeline stages: exclusion, generators, merge and orchestration."""

from .exclusion import build_exclusion_set
from .generators import (
    CandidateGenerator,
    CollaborativeGenerator,
    ContentBasedGenerator,
    TrendingGenerator,
    target_count,
)
from .merge import merge_candidates
from .orchestrator import GeneratorOutcome, build_result, create_recommendations, run_generators

__all__ = [
    "CandidateGenerator",
    "CollaborativeGenerator",
    "ContentBasedGenerator",
    "GeneratorOutcome",
    "TrendingGenerator",
    "build_exclusion_set",
    "build_result",
    "create_recommendations",
    "merge_candidates",
    "run_generators",
    "target_count",
]
