"""Batch planning for large exam requests.

This module splits a question request into independently generated batches
and gives each batch a proportional share of the question-type and
difficulty quotas.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import TypeVar

from pydantic import BaseModel, Field, model_validator
from typing_extensions import Self

from examforge.core.types import DifficultyLevel, QuestionType

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Enum)

DEFAULT_SPLIT_THRESHOLD = 10
DEFAULT_OPTIMAL_BATCH_SIZE = 8


class BatchRequest(BaseModel):
    """What the generation collaborator is asked to produce for one batch."""

    model_config = {"frozen": True}

    question_type_quota: dict[QuestionType, int] = Field(default_factory=dict)
    difficulty_quota: dict[DifficultyLevel, int] = Field(default_factory=dict)
    total_questions: int = Field(..., ge=0)


class Batch(BaseModel):
    """A unit of independent generation work.

    Attributes:
        source_text: Text the questions are generated from.
        file_name: Name of the source file.
        batch_index: Position of this batch in its plan (0-based).
        total_batches: Number of batches in the plan.
        questions_requested: Questions this batch should yield.
        question_type_quota: Count per question type, summing to questions_requested.
        difficulty_quota: Count per difficulty level, summing to questions_requested.
    """

    model_config = {"frozen": True}

    source_text: str
    file_name: str
    batch_index: int = Field(..., ge=0)
    total_batches: int = Field(..., ge=1)
    questions_requested: int = Field(..., ge=1)
    question_type_quota: dict[QuestionType, int]
    difficulty_quota: dict[DifficultyLevel, int]

    @model_validator(mode="after")
    def _quotas_sum_to_request(self) -> Self:
        if sum(self.question_type_quota.values()) != self.questions_requested:
            msg = (
                f"Question type quota sums to {sum(self.question_type_quota.values())}, "
                f"expected {self.questions_requested}"
            )
            raise ValueError(msg)
        if sum(self.difficulty_quota.values()) != self.questions_requested:
            msg = (
                f"Difficulty quota sums to {sum(self.difficulty_quota.values())}, "
                f"expected {self.questions_requested}"
            )
            raise ValueError(msg)
        return self

    @property
    def batch_id(self) -> str:
        """Identifier unique within one generation run."""
        return f"{self.file_name}#{self.batch_index + 1}/{self.total_batches}"

    @property
    def request(self) -> BatchRequest:
        """The batch's scaled configuration for the generation collaborator."""
        return BatchRequest(
            question_type_quota=dict(self.question_type_quota),
            difficulty_quota=dict(self.difficulty_quota),
            total_questions=self.questions_requested,
        )


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def distribute_quota(weights: dict[K, int], count: int, default: K) -> dict[K, int]:
    """Scale a weighted quota down to exactly `count` items.

    Each bucket receives its proportional share rounded to the nearest
    integer. A shortfall is added to the most heavily weighted bucket and a
    surplus is taken from the largest assigned buckets, so the result always
    sums to `count`. If every bucket rounds to zero the whole count goes to
    `default`.

    Args:
        weights: Requested count per bucket.
        count: Number of items to distribute.
        default: Bucket used when proportional scaling assigns nothing.

    Returns:
        Mapping with only positive counts, summing to `count`.

    Example:
        >>> quota = distribute_quota({QuestionType.ESSAY: 6, QuestionType.MATCHING: 2}, 3, QuestionType.ESSAY)
        >>> quota[QuestionType.ESSAY], quota[QuestionType.MATCHING]
        (2, 1)
    """
    if count <= 0:
        return {}

    positive = {key: value for key, value in weights.items() if value > 0}
    total_weight = sum(positive.values())
    if total_weight == 0:
        return {default: count}

    scaled = {key: _round_half_up(value * count / total_weight) for key, value in positive.items()}
    if not any(scaled.values()):
        return {default: count}

    diff = count - sum(scaled.values())
    if diff > 0:
        heaviest = max(positive, key=lambda key: positive[key])
        scaled[heaviest] += diff
    while diff < 0:
        largest = max(scaled, key=lambda key: scaled[key])
        taken = min(scaled[largest], -diff)
        scaled[largest] -= taken
        diff += taken

    return {key: value for key, value in scaled.items() if value > 0}


class BatchPlanner:
    """Decides how a request is split into batches.

    Small requests are generated in one batch: splitting them would only
    produce tiny, low-quality batches. Larger requests are split into
    batches of `optimal_batch_size`, the last batch taking the remainder.

    Example:
        >>> planner = BatchPlanner()
        >>> batches = planner.plan(
        ...     40,
        ...     {QuestionType.MULTIPLE_CHOICE: 40},
        ...     {DifficultyLevel.MODERATE: 40},
        ...     source_text="...",
        ...     file_name="notes.txt",
        ... )
        >>> [b.questions_requested for b in batches]
        [8, 8, 8, 8, 8]
    """

    def __init__(
        self,
        split_threshold: int = DEFAULT_SPLIT_THRESHOLD,
        optimal_batch_size: int = DEFAULT_OPTIMAL_BATCH_SIZE,
    ) -> None:
        """Initialize BatchPlanner.

        Args:
            split_threshold: Requests at or below this size stay in one batch.
            optimal_batch_size: Questions per batch when splitting.

        Raises:
            ValueError: If either value is not positive.
        """
        if split_threshold < 1 or optimal_batch_size < 1:
            msg = "split_threshold and optimal_batch_size must be positive"
            raise ValueError(msg)
        self.split_threshold = split_threshold
        self.optimal_batch_size = optimal_batch_size

    def batch_sizes(self, total_questions: int) -> list[int]:
        """Compute the number of questions in each batch.

        Args:
            total_questions: Questions to generate.

        Returns:
            Batch sizes in order; empty when nothing is requested.
        """
        if total_questions <= 0:
            return []
        if total_questions <= self.split_threshold:
            return [total_questions]

        batch_size = min(self.optimal_batch_size, total_questions)
        num_batches = math.ceil(total_questions / batch_size)
        sizes = [batch_size] * num_batches
        sizes[-1] = total_questions - batch_size * (num_batches - 1)
        return sizes

    def plan(
        self,
        total_questions: int,
        question_type_totals: dict[QuestionType, int],
        difficulty_totals: dict[DifficultyLevel, int],
        source_text: str,
        file_name: str,
    ) -> list[Batch]:
        """Plan the batches for one source file.

        Quotas are handed out from what remains unassigned, so across the
        whole plan the totals follow the requested distribution as closely
        as integer rounding allows, and each batch's quotas sum exactly to
        its size.

        Args:
            total_questions: Questions to generate from this file.
            question_type_totals: Requested count per question type.
            difficulty_totals: Requested count per difficulty level.
            source_text: Text the questions are generated from.
            file_name: Name of the source file.

        Returns:
            Ordered list of batches.
        """
        sizes = self.batch_sizes(total_questions)
        remaining_types = {key: value for key, value in question_type_totals.items() if value > 0}
        remaining_levels = {key: value for key, value in difficulty_totals.items() if value > 0}

        batches: list[Batch] = []
        for index, size in enumerate(sizes):
            type_quota = distribute_quota(remaining_types, size, QuestionType.MULTIPLE_CHOICE)
            level_quota = distribute_quota(remaining_levels, size, DifficultyLevel.MODERATE)
            consume_quota(remaining_types, type_quota)
            consume_quota(remaining_levels, level_quota)

            batches.append(
                Batch(
                    source_text=source_text,
                    file_name=file_name,
                    batch_index=index,
                    total_batches=len(sizes),
                    questions_requested=size,
                    question_type_quota=type_quota,
                    difficulty_quota=level_quota,
                )
            )

        if len(batches) > 1:
            logger.info(f"Split {total_questions} questions from {file_name} into {len(batches)} batches")
        return batches


def consume_quota(remaining: dict[K, int], used: dict[K, int]) -> None:
    """Subtract used counts from the remaining totals, never below zero."""
    for key, value in used.items():
        if key in remaining:
            remaining[key] = max(0, remaining[key] - value)
