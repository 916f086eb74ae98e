"""Heuristic quality scoring for generated exams.

This module scores an exam for uniqueness, source fidelity, difficulty
accuracy and topic coverage, and derives accept/regenerate recommendations.
All checks are lexical: no LLM calls are made.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Sequence
from functools import lru_cache
from statistics import fmean
from typing import TYPE_CHECKING

from examforge.core.types import DifficultyLevel, Exam, Question, QuestionType
from examforge.evaluators.models import (
    DifficultyMismatch,
    QualityConfig,
    QualityMetrics,
    QuestionIssues,
    QuestionQuality,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

STOP_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
        "is", "are", "was", "were", "be", "been", "have", "has", "had", "do", "does", "did",
        "will", "would", "could", "should", "may", "might", "can", "this", "that", "these", "those",
    }
)  # fmt: skip

_PUNCTUATION = re.compile(r"[^\w\s]")

# Keyword groups and their weight towards a harder difficulty.
DIFFICULTY_KEYWORDS: tuple[tuple[tuple[str, ...], int], ...] = (
    (("what is", "define", "list", "name", "identify"), 1),
    (("explain", "describe", "compare", "how does"), 2),
    (("analyze", "evaluate", "synthesize", "predict", "justify"), 3),
    (("create", "design", "formulate", "critique", "develop"), 4),
)

TYPE_DIFFICULTY_WEIGHTS: dict[QuestionType, int] = {
    QuestionType.MULTIPLE_CHOICE: 1,
    QuestionType.ESSAY: 3,
}

LONG_QUESTION_WORDS = 15
MAX_DIFFICULTY_SCORE = 8

MIN_PROMPT_LENGTH = 10
MAX_PROMPT_LENGTH = 200
BLANK_MARKER = "___"

DUPLICATE_PENALTY = 0.5
SOURCE_PENALTY = 0.3
DIFFICULTY_PENALTY = 0.2
QUALITY_ISSUE_PENALTY = 0.1


@lru_cache(maxsize=4096)
def extract_words(text: str) -> tuple[str, ...]:
    """Extract meaningful words from text.

    Lower-cases, replaces punctuation with spaces, and keeps tokens longer
    than two characters that are not stop words, in order of appearance.

    Example:
        >>> extract_words("What is the capital of France?")
        ('what', 'capital', 'france')
    """
    cleaned = _PUNCTUATION.sub(" ", text.lower())
    return tuple(word for word in cleaned.split() if len(word) > 2 and word not in STOP_WORDS)


def jaccard_similarity(words1: Iterable[str], words2: Iterable[str]) -> float:
    """Jaccard similarity of two word collections, 0.0 when both are empty."""
    set1 = set(words1)
    set2 = set(words2)
    union = set1 | set2
    if not union:
        return 0.0
    return len(set1 & set2) / len(union)


def detect_difficulty(question: Question) -> tuple[DifficultyLevel, float]:
    """Re-derive a question's difficulty from linguistic cues.

    Sums keyword weights (recall verbs weigh little, evaluation and
    creation verbs weigh most), a per-type weight, and one point for long
    prompts, then buckets the score.

    Returns:
        Detected level and a confidence between 0.0 and 1.0.
    """
    text = question.prompt.lower()
    score = sum(weight for keywords, weight in DIFFICULTY_KEYWORDS if any(kw in text for kw in keywords))
    score += TYPE_DIFFICULTY_WEIGHTS.get(question.type, 0)
    if len(question.prompt.split()) > LONG_QUESTION_WORDS:
        score += 1

    if score <= 2:
        level = DifficultyLevel.EASY
    elif score <= 4:
        level = DifficultyLevel.MODERATE
    elif score <= 6:
        level = DifficultyLevel.HARD
    else:
        level = DifficultyLevel.VERY_HARD

    return level, min(1.0, score / MAX_DIFFICULTY_SCORE)


def check_question_format(question: Question) -> list[str]:
    """Generic format checks for a single question.

    Returns:
        Human-readable issues; empty when the question looks well formed.
    """
    issues: list[str] = []
    prompt = question.prompt.strip()

    if len(prompt) < MIN_PROMPT_LENGTH:
        issues.append("Question too short")
    if len(prompt) > MAX_PROMPT_LENGTH:
        issues.append("Question too long")

    if not prompt.endswith("?") and BLANK_MARKER not in prompt:
        issues.append("Question does not end with proper punctuation")

    if question.type is QuestionType.MULTIPLE_CHOICE:
        if len(question.options) != 4:
            issues.append("Multiple choice question must have exactly 4 options")

        if question.options:
            unique_options = {option.lower().strip() for option in question.options}
            if len(unique_options) != len(question.options):
                issues.append("Multiple choice options contain duplicates")

            avg_length = sum(len(option) for option in question.options) / len(question.options)
            if any(abs(len(option) - avg_length) > avg_length * 0.8 for option in question.options):
                issues.append("Multiple choice options have inconsistent lengths")

    if not question.has_answer:
        issues.append("Missing or empty answer")

    return issues


class QualityScorer:
    """Scores exams for uniqueness, accuracy, difficulty and coverage.

    Attributes:
        config: Scoring configuration.

    Example:
        >>> scorer = QualityScorer(QualityConfig(minimum_quality_score=0.75))
        >>> metrics = scorer.score(exam, source_text)
        >>> if metrics.should_regenerate:
        ...     print(metrics.recommendations)
    """

    def __init__(self, config: QualityConfig | None = None) -> None:
        """Initialize QualityScorer.

        Args:
            config: Optional scoring configuration.
        """
        self.config = config or QualityConfig()

    def score(self, exam: Exam | Sequence[Question], source_text: str) -> QualityMetrics:
        """Score a whole exam.

        Args:
            exam: The exam, or its questions.
            source_text: The study material the exam was generated from.

        Returns:
            QualityMetrics for the exam.
        """
        questions = list(exam.questions if isinstance(exam, Exam) else exam)
        source_words = frozenset(extract_words(source_text))

        if not questions:
            return self._empty_metrics()

        results = [
            self.score_question(question, questions[:index], source_text, source_words=source_words)
            for index, question in enumerate(questions)
        ]

        metrics = self._build_metrics(results, self.coverage_score(questions))

        logger.info(
            f"Scored {metrics.total_questions} questions: {metrics.overall_score:.3f} "
            f"({metrics.duplicates_found + metrics.source_issues + metrics.difficulty_issues} issues)"
        )
        return metrics

    def score_question(
        self,
        question: Question,
        earlier: Sequence[Question],
        source_text: str,
        *,
        source_words: frozenset[str] | None = None,
    ) -> QuestionQuality:
        """Score one question against the questions before it and the source.

        Args:
            question: The question to score.
            earlier: Questions preceding it in the exam.
            source_text: The study material.
            source_words: Pre-extracted source words, to avoid recomputation.

        Returns:
            QuestionQuality with penalties applied.
        """
        if source_words is None:
            source_words = frozenset(extract_words(source_text))

        is_valid = True
        score = 1.0
        is_duplicate = False
        duplicate_of: str | None = None
        source_issue: str | None = None
        mismatch: DifficultyMismatch | None = None
        quality_issues: list[str] = []

        if self.config.check_duplicates:
            duplicate_of = self._find_duplicate(question, earlier)
            if duplicate_of is not None:
                is_duplicate = True
                is_valid = False
                score -= DUPLICATE_PENALTY

        if self.config.source_verification_enabled:
            source_issue = self._verify_against_source(question, source_text, source_words)
            if source_issue:
                is_valid = False
                score -= SOURCE_PENALTY

        if self.config.difficulty_validation_enabled:
            detected, confidence = detect_difficulty(question)
            if detected is not question.difficulty:
                mismatch = DifficultyMismatch(
                    expected=question.difficulty.value,
                    detected=detected.value,
                    confidence=confidence,
                )
                score -= DIFFICULTY_PENALTY

        if self.config.quality_checks_enabled:
            quality_issues = check_question_format(question)
            score -= QUALITY_ISSUE_PENALTY * len(quality_issues)

        return QuestionQuality(
            question_id=question.id,
            is_valid=is_valid,
            issues=QuestionIssues(
                is_duplicate=is_duplicate,
                duplicate_of=duplicate_of,
                source_issue=source_issue,
                difficulty_mismatch=mismatch,
                quality_issues=quality_issues,
            ),
            quality_score=max(0.0, score),
        )

    def coverage_score(self, questions: Sequence[Question]) -> float:
        """Distinct topic signals relative to the expected topic count.

        The first meaningful word of each prompt serves as its topic signal;
        roughly one topic per three questions is expected.
        """
        concepts = set()
        for question in questions:
            words = extract_words(question.prompt)
            if words:
                concepts.add(words[0])

        expected = max(1, math.ceil(len(questions) / 3))
        return min(1.0, len(concepts) / expected)

    def aggregate(self, metrics: Sequence[QualityMetrics]) -> QualityMetrics:
        """Combine per-batch reports into one.

        Sub-scores and the overall score are averaged, issue counts summed.

        Args:
            metrics: Reports to combine.

        Returns:
            Aggregated QualityMetrics without per-question results.

        Raises:
            ValueError: If no reports are given.
        """
        if not metrics:
            msg = "Cannot aggregate an empty list of quality metrics"
            raise ValueError(msg)

        overall = fmean(m.overall_score for m in metrics)
        recommendations = list(dict.fromkeys(r for m in metrics for r in m.recommendations))
        prompt_changes = list(dict.fromkeys(p for m in metrics for p in m.prompt_changes))

        return QualityMetrics(
            overall_score=overall,
            uniqueness=fmean(m.uniqueness for m in metrics),
            accuracy=fmean(m.accuracy for m in metrics),
            difficulty_accuracy=fmean(m.difficulty_accuracy for m in metrics),
            coverage=fmean(m.coverage for m in metrics),
            is_valid=overall >= self.config.minimum_quality_score,
            recommendations=recommendations,
            prompt_changes=prompt_changes,
            should_regenerate=self.config.retry_on_low_quality and overall < self.config.minimum_quality_score,
            total_questions=sum(m.total_questions for m in metrics),
            valid_questions=sum(m.valid_questions for m in metrics),
            duplicates_found=sum(m.duplicates_found for m in metrics),
            source_issues=sum(m.source_issues for m in metrics),
            difficulty_issues=sum(m.difficulty_issues for m in metrics),
        )

    def _find_duplicate(self, question: Question, earlier: Sequence[Question]) -> str | None:
        words = extract_words(question.prompt)
        for other in earlier:
            if jaccard_similarity(words, extract_words(other.prompt)) > self.config.duplicate_threshold:
                return other.id
        return None

    def _verify_against_source(self, question: Question, source_text: str, source_words: frozenset[str]) -> str | None:
        overlap = jaccard_similarity(extract_words(question.prompt), source_words)
        if overlap < self.config.source_overlap_floor:
            return "Question appears to reference concepts not found in source material"

        if self.config.strict_source_checking:
            answer_prefix = question.answer_text.lower()[:20]
            if answer_prefix not in source_text.lower():
                return "Answer not found in source material"

        return None

    def _build_metrics(self, results: list[QuestionQuality], coverage: float) -> QualityMetrics:
        total = len(results)
        duplicates = sum(1 for r in results if r.issues.is_duplicate)
        source_issues = sum(1 for r in results if r.issues.source_issue)
        difficulty_issues = sum(1 for r in results if r.issues.difficulty_mismatch)

        uniqueness = 1 - duplicates / total
        accuracy = 1 - source_issues / total
        difficulty_accuracy = 1 - difficulty_issues / total

        weights = self.config.weights
        overall = (
            uniqueness * weights.uniqueness
            + accuracy * weights.accuracy
            + difficulty_accuracy * weights.difficulty
            + coverage * weights.coverage
        )
        overall = min(1.0, max(0.0, overall))
        recommendations, prompt_changes = self._recommend(uniqueness, accuracy, difficulty_accuracy, coverage)

        return QualityMetrics(
            overall_score=overall,
            uniqueness=uniqueness,
            accuracy=accuracy,
            difficulty_accuracy=difficulty_accuracy,
            coverage=coverage,
            is_valid=overall >= self.config.minimum_quality_score,
            recommendations=recommendations,
            prompt_changes=prompt_changes,
            should_regenerate=self.config.retry_on_low_quality and overall < self.config.minimum_quality_score,
            total_questions=total,
            valid_questions=sum(1 for r in results if r.is_valid),
            duplicates_found=duplicates,
            source_issues=source_issues,
            difficulty_issues=difficulty_issues,
            question_results=results,
        )

    def _recommend(
        self,
        uniqueness: float,
        accuracy: float,
        difficulty_accuracy: float,
        coverage: float,
    ) -> tuple[list[str], list[str]]:
        improvements: list[str] = []
        prompt_changes: list[str] = []
        threshold = self.config.secondary_threshold

        if uniqueness < threshold:
            improvements.append("Reduce question repetition: many questions test similar concepts")
            prompt_changes.append("Add stronger uniqueness requirements to prompt")

        if accuracy < threshold:
            improvements.append("Improve source fidelity: questions should stick closer to source material")
            prompt_changes.append("Emphasize strict adherence to source material in prompt")

        if difficulty_accuracy < threshold:
            improvements.append("Improve difficulty accuracy: questions do not match requested difficulty levels")
            prompt_changes.append("Add clearer difficulty level definitions to prompt")

        if coverage < self.config.coverage_threshold:
            improvements.append("Improve topic coverage: questions are too concentrated on few topics")
            prompt_changes.append("Add requirements for broader topic distribution")

        return improvements, prompt_changes

    def _empty_metrics(self) -> QualityMetrics:
        return QualityMetrics(
            overall_score=0.0,
            uniqueness=0.0,
            accuracy=0.0,
            difficulty_accuracy=0.0,
            coverage=0.0,
            is_valid=False,
            recommendations=["No questions to score"],
            should_regenerate=self.config.retry_on_low_quality,
        )
