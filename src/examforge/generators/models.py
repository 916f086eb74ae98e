"""Data models for exam generation.

This module contains the models exchanged with the generation
collaborator and produced by the text parser.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from examforge.core.types import Question
from examforge.evaluators.models import QualityMetrics


class GenerationOutput(BaseModel):
    """What the generation collaborator returns for one batch.

    Attributes:
        raw_text: The raw generated exam text.
        questions: Pre-structured questions, preferred over parsing raw_text.
        quality: Quality metrics computed by the collaborator, if any.
    """

    model_config = {"frozen": True}

    raw_text: str = Field(default="", description="Raw generated text")
    questions: list[Question] | None = Field(default=None, description="Pre-structured questions")
    quality: QualityMetrics | None = Field(default=None, description="Collaborator quality metrics")


class ParsedExam(BaseModel):
    """Structured result of parsing one generated exam text.

    Attributes:
        topic: The general topic line, or a default.
        questions: Questions in document order, answers attached.
        strategy: Which section-location strategy matched.
    """

    model_config = {"frozen": True}

    topic: str
    questions: list[Question]
    strategy: str
