"""Core module for examforge.

This module contains the fundamental types, protocols, exceptions,
and configuration used throughout the library.
"""

from __future__ import annotations

from examforge.core.batch import Batch, BatchPlanner, BatchRequest
from examforge.core.config import Settings
from examforge.core.exceptions import (
    ConfigurationError,
    ExamForgeError,
    ExtractionError,
    GenerationError,
    GenerationErrorKind,
    LLMConnectionError,
    LLMRateLimitError,
    ParseError,
    QuotaExceededError,
)
from examforge.core.protocols import (
    ExamGeneratorProtocol,
    LLMProtocol,
    TextExtractorProtocol,
)
from examforge.core.rate_limiter import RateLimitDecision, RateLimiter
from examforge.core.types import (
    DifficultyLevel,
    Exam,
    ExamMetadata,
    ExamRequest,
    ExtractedText,
    Question,
    QuestionType,
    SourceFile,
)

__all__ = [
    "Batch",
    "BatchPlanner",
    "BatchRequest",
    "ConfigurationError",
    "DifficultyLevel",
    "Exam",
    "ExamForgeError",
    "ExamGeneratorProtocol",
    "ExamMetadata",
    "ExamRequest",
    "ExtractedText",
    "ExtractionError",
    "GenerationError",
    "GenerationErrorKind",
    "LLMConnectionError",
    "LLMProtocol",
    "LLMRateLimitError",
    "ParseError",
    "Question",
    "QuestionType",
    "QuotaExceededError",
    "RateLimitDecision",
    "RateLimiter",
    "Settings",
    "SourceFile",
    "TextExtractorProtocol",
]
