"""Core type definitions for examforge.

This module defines the fundamental data structures used throughout
the library for questions, source files, generation requests and exams.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator
from typing_extensions import Self


class QuestionType(str, Enum):
    """Closed set of exam question types."""

    MULTIPLE_CHOICE = "multipleChoice"
    TRUE_FALSE = "trueFalse"
    FILL_IN_BLANK = "fillInBlank"
    SHORT_ANSWER = "shortAnswer"
    ESSAY = "essay"
    MATCHING = "matching"
    IDENTIFICATION = "identification"


class DifficultyLevel(str, Enum):
    """Difficulty levels, declared from easiest to hardest."""

    VERY_EASY = "veryEasy"
    EASY = "easy"
    MODERATE = "moderate"
    HARD = "hard"
    VERY_HARD = "veryHard"


class Question(BaseModel):
    """A single exam item.

    Attributes:
        id: Identifier, unique within one exam.
        type: The question type.
        difficulty: Difficulty assigned from the request quota.
        prompt: The question text.
        options: Answer options, only for multiple choice questions. The
            quality scorer flags multiple choice questions without exactly 4.
        answer: Answer text, or a list of parts for matching questions.
        explanation: Optional explanation of the answer.
        needs_review: True for placeholder questions created when parsing failed.

    Example:
        >>> q = Question(
        ...     id="q-1",
        ...     type=QuestionType.MULTIPLE_CHOICE,
        ...     prompt="What is photosynthesis?",
        ...     options=["Making food", "Breathing", "Reproduction", "Growth"],
        ...     answer="A",
        ... )
    """

    model_config = {"frozen": True}

    id: str = Field(..., min_length=1, description="Question identifier")
    type: QuestionType = Field(..., description="Question type")
    difficulty: DifficultyLevel = Field(default=DifficultyLevel.MODERATE, description="Assigned difficulty")
    prompt: str = Field(..., min_length=1, description="Question text")
    options: list[str] = Field(default_factory=list, description="Multiple choice options in letter order")
    answer: str | list[str] = Field(default="", description="Answer text or ordered answer parts")
    explanation: str = Field(default="", description="Optional answer explanation")
    needs_review: bool = Field(default=False, description="Placeholder needing manual review")

    @model_validator(mode="after")
    def _options_only_for_multiple_choice(self) -> Self:
        # The four-option rule is a quality finding, not a construction error.
        if self.options and self.type is not QuestionType.MULTIPLE_CHOICE:
            msg = f"Only multiple choice questions take options, got {self.type.value}"
            raise ValueError(msg)
        return self

    @property
    def answer_text(self) -> str:
        """Answer as a single string."""
        if isinstance(self.answer, list):
            return " ".join(self.answer)
        return self.answer

    @property
    def has_answer(self) -> bool:
        """Whether an answer was attached."""
        return bool(self.answer_text.strip())


class SourceFile(BaseModel):
    """A study document to generate questions from.

    Attributes:
        path: Location of the file on disk.
        name: Display name, defaults to the file name.
    """

    model_config = {"frozen": True}

    path: Path = Field(..., description="Path to the source file")
    name: str = Field(default="", description="Display name of the file")

    @model_validator(mode="before")
    @classmethod
    def _default_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("name") and data.get("path"):
            data = {**data, "name": Path(data["path"]).name}
        return data


class ExtractedText(BaseModel):
    """Text extracted from a source file.

    Attributes:
        text: Cleaned text content.
        word_count: Number of whitespace-separated words.
        file_type: File type the text was extracted from.
        char_count: Number of characters.
    """

    model_config = {"frozen": True}

    text: str
    word_count: int = Field(default=0, ge=0)
    file_type: str = Field(default="txt")
    char_count: int = Field(default=0, ge=0)


class ExamRequest(BaseModel):
    """A request to generate an exam.

    Attributes:
        files: Source files, processed in order.
        question_types: Requested count per question type.
        difficulty_distribution: Requested count per difficulty level.
        total_questions: Total questions wanted. Zero is rejected at run time.

    Example:
        >>> request = ExamRequest(
        ...     files=[SourceFile(path=Path("biology.txt"))],
        ...     question_types={QuestionType.MULTIPLE_CHOICE: 10},
        ...     difficulty_distribution={DifficultyLevel.EASY: 5, DifficultyLevel.HARD: 5},
        ...     total_questions=10,
        ... )
    """

    model_config = {"frozen": True}

    files: list[SourceFile] = Field(default_factory=list)
    question_types: dict[QuestionType, int] = Field(default_factory=dict)
    difficulty_distribution: dict[DifficultyLevel, int] = Field(default_factory=dict)
    total_questions: int = Field(default=0, ge=0)


class ExamMetadata(BaseModel):
    """Bookkeeping attached to a generated exam."""

    model_config = {"frozen": True}

    source_files: list[str] = Field(default_factory=list)
    generation_time_ms: float = Field(default=0.0, ge=0.0)
    batches_planned: int = Field(default=0, ge=0)
    batches_failed: int = Field(default=0, ge=0)
    placeholder_questions: int = Field(default=0, ge=0)


class Exam(BaseModel):
    """A generated exam with its answer key embedded in the questions.

    Attributes:
        id: Exam identifier.
        topic: General topic detected in the generated text.
        questions: Questions in file, batch and parse order.
        total_questions: Number of questions.
        created_at: Creation time (UTC).
        metadata: Generation bookkeeping.
    """

    model_config = {"frozen": True}

    id: str = Field(default_factory=lambda: f"exam-{uuid.uuid4().hex[:12]}")
    topic: str = Field(default="Generated Exam")
    questions: list[Question] = Field(default_factory=list)
    total_questions: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: ExamMetadata = Field(default_factory=ExamMetadata)

    @model_validator(mode="after")
    def _unique_ids(self) -> Self:
        ids = [q.id for q in self.questions]
        if len(ids) != len(set(ids)):
            msg = "Question ids must be unique within an exam"
            raise ValueError(msg)
        return self

    def needs_review(self) -> list[Question]:
        """Return placeholder questions that need manual review."""
        return [q for q in self.questions if q.needs_review]
