"""examforge: AI exam generation and validation from study material."""

from __future__ import annotations

from examforge.core.draft import ExamDraft, fingerprint
from examforge.core.generate import (
    ExamGenerationService,
    GenerationConfig,
    GenerationProgress,
    GenerationResult,
)
from examforge.core.types import DifficultyLevel, Exam, ExamRequest, Question, QuestionType, SourceFile
from examforge.evaluators.quality import QualityScorer
from examforge.generators.parsing import ExamParser

__version__ = "0.1.0"

__all__ = [
    # Generation
    "ExamDraft",
    "ExamGenerationService",
    "GenerationConfig",
    "GenerationProgress",
    "GenerationResult",
    "fingerprint",
    # Parsing and scoring
    "ExamParser",
    "QualityScorer",
    # Types
    "DifficultyLevel",
    "Exam",
    "ExamRequest",
    "Question",
    "QuestionType",
    "SourceFile",
    # Version
    "__version__",
]
