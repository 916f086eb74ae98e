"""Evaluators module for examforge.

This module provides heuristic quality scoring for generated exams.
"""

from __future__ import annotations

from examforge.evaluators.models import (
    QualityConfig,
    QualityMetrics,
    QualityWeights,
    QuestionQuality,
)
from examforge.evaluators.quality import (
    QualityScorer,
    detect_difficulty,
    jaccard_similarity,
)

__all__ = [
    "QualityConfig",
    "QualityMetrics",
    "QualityScorer",
    "QualityWeights",
    "QuestionQuality",
    "detect_difficulty",
    "jaccard_similarity",
]
