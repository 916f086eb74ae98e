"""Run-scoped accumulator for generated questions.

An ExamDraft is owned by exactly one generation run. Batches are added to it
strictly in sequence, so its fingerprint set needs no locking.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from examforge.core.types import Question
    from examforge.evaluators.models import QualityMetrics

logger = logging.getLogger(__name__)

FINGERPRINT_WORDS = 8

_PUNCTUATION = re.compile(r"[^\w\s]")


def fingerprint(question: Question) -> str:
    """Reduce a question to a dedup key.

    Lower-cases the prompt, strips punctuation, collapses whitespace, keeps
    the first eight words and prefixes the question type, so questions of
    different types sharing wording are not merged.

    Example:
        >>> fingerprint(Question(id="q-1", type=QuestionType.ESSAY, prompt="What,  is DNA?"))
        'essay:what is dna'
    """
    words = _PUNCTUATION.sub("", question.prompt.lower()).split()
    return f"{question.type.value}:{' '.join(words[:FINGERPRINT_WORDS])}"


@dataclass
class ExamDraft:
    """Questions accepted so far in one generation run.

    Attributes:
        accepted_questions: Accepted questions in file, batch and parse order.
        seen_fingerprints: Fingerprints of every accepted question.
        batch_quality_records: Quality metrics supplied by the collaborator.
    """

    accepted_questions: list[Question] = field(default_factory=list)
    seen_fingerprints: set[str] = field(default_factory=set)
    batch_quality_records: list[QualityMetrics] = field(default_factory=list)
    _used_ids: set[str] = field(default_factory=set, repr=False)

    @property
    def count(self) -> int:
        """Number of accepted questions."""
        return len(self.accepted_questions)

    def add(self, question: Question) -> bool:
        """Accept a question unless its fingerprint was already seen.

        A question whose id collides with an accepted one is re-keyed, since
        every batch numbers its questions from 1. Placeholders flagged
        `needs_review` share their wording across batches and skip the
        fingerprint check.

        Returns:
            True if the question was accepted, False if it was a duplicate.
        """
        key = fingerprint(question)
        if not question.needs_review:
            if key in self.seen_fingerprints:
                logger.debug(f"Dropped duplicate question {question.id}")
                return False
            self.seen_fingerprints.add(key)

        if question.id in self._used_ids:
            question = question.model_copy(update={"id": self._next_id(question.id)})

        self._used_ids.add(question.id)
        self.accepted_questions.append(question)
        return True

    def add_all(self, questions: Iterable[Question], limit: int | None = None) -> int:
        """Add questions in order until `limit` accepted questions are held.

        Args:
            questions: Questions to add.
            limit: Total accepted count at which to stop, or None.

        Returns:
            Number of questions accepted by this call.
        """
        added = 0
        for question in questions:
            if limit is not None and self.count >= limit:
                break
            if self.add(question):
                added += 1
        return added

    def record_quality(self, metrics: QualityMetrics) -> None:
        """Keep quality metrics supplied for a batch."""
        self.batch_quality_records.append(metrics)

    def _next_id(self, base: str) -> str:
        suffix = 2
        while f"{base}-{suffix}" in self._used_ids:
            suffix += 1
        return f"{base}-{suffix}"
