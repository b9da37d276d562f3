"""Candidate generators: trending, content-based and collaborative."""

from .base import CandidateGenerator, keep_best, target_count, top_by_score
from .collaborative import CollaborativeGenerator
from .content_based import ContentBasedGenerator
from .trending import TrendingGenerator

__all__ = [
    "CandidateGenerator",
    "CollaborativeGenerator",
    "ContentBasedGenerator",
    "TrendingGenerator",
    "keep_best",
    "target_count",
    "top_by_score",
]
