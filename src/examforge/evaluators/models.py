"""Data models for exam quality scoring.

This module contains Pydantic models for scorer configuration and the
per-question and whole-exam quality results.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class QualityWeights(BaseModel):
    """Weights of the sub-scores in the overall quality score."""

    model_config = {"frozen": True}

    uniqueness: float = Field(default=0.3, ge=0.0, le=1.0)
    accuracy: float = Field(default=0.4, ge=0.0, le=1.0)
    difficulty: float = Field(default=0.2, ge=0.0, le=1.0)
    coverage: float = Field(default=0.1, ge=0.0, le=1.0)


class QualityConfig(BaseModel):
    """Configuration for exam quality scoring.

    The defaults are tuning values, not derived optima.

    Attributes:
        duplicate_threshold: Similarity above which a question duplicates an earlier one.
        source_overlap_floor: Minimum word overlap between question and source.
        check_duplicates: Run the duplicate check.
        source_verification_enabled: Run the source-fidelity check.
        strict_source_checking: Also require the answer to appear in the source.
        difficulty_validation_enabled: Run the difficulty-accuracy check.
        quality_checks_enabled: Run the generic format checks.
        minimum_quality_score: Overall score required for a valid exam.
        retry_on_low_quality: Recommend regeneration below the minimum score.
        weights: Sub-score weights for the overall score.
        secondary_threshold: Uniqueness/accuracy/difficulty level below which a
            recommendation is made.
        coverage_threshold: Coverage level below which a recommendation is made.
    """

    model_config = {"frozen": True}

    duplicate_threshold: float = Field(default=0.85, ge=0.0, le=1.0)
    source_overlap_floor: float = Field(default=0.3, ge=0.0, le=1.0)
    check_duplicates: bool = True
    source_verification_enabled: bool = True
    strict_source_checking: bool = False
    difficulty_validation_enabled: bool = True
    quality_checks_enabled: bool = True
    minimum_quality_score: float = Field(default=0.7, ge=0.0, le=1.0)
    retry_on_low_quality: bool = True
    weights: QualityWeights = Field(default_factory=QualityWeights)
    secondary_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    coverage_threshold: float = Field(default=0.7, ge=0.0, le=1.0)


class DifficultyMismatch(BaseModel):
    """A declared difficulty that disagrees with the re-derived one."""

    model_config = {"frozen": True}

    expected: str
    detected: str
    confidence: float = Field(..., ge=0.0, le=1.0)


class QuestionIssues(BaseModel):
    """Issues found for a single question."""

    model_config = {"frozen": True}

    is_duplicate: bool = False
    duplicate_of: str | None = None
    source_issue: str | None = None
    difficulty_mismatch: DifficultyMismatch | None = None
    quality_issues: list[str] = Field(default_factory=list)


class QuestionQuality(BaseModel):
    """Quality result for a single question.

    Attributes:
        question_id: ID of the scored question.
        is_valid: False when the question is a duplicate or strays from the source.
        issues: Detailed findings.
        quality_score: Score between 0.0 and 1.0 after penalties.
    """

    model_config = {"frozen": True}

    question_id: str
    is_valid: bool = True
    issues: QuestionIssues = Field(default_factory=QuestionIssues)
    quality_score: float = Field(default=1.0, ge=0.0, le=1.0)


class QualityMetrics(BaseModel):
    """Quality report for an exam or a batch.

    Attributes:
        overall_score: Weighted sum of the four sub-scores.
        uniqueness: Share of questions that are not duplicates.
        accuracy: Share of questions without source issues.
        difficulty_accuracy: Share of questions whose difficulty was confirmed.
        coverage: Distinct topics relative to the expected topic count.
        is_valid: Whether overall_score meets the configured minimum.
        recommendations: Human-readable improvement suggestions.
        prompt_changes: Suggested prompt adjustments for a retry.
        should_regenerate: Whether regenerating the exam is recommended.
        total_questions: Number of questions scored.
        valid_questions: Questions without duplicate or source issues.
        duplicates_found: Number of duplicate questions.
        source_issues: Number of questions with source issues.
        difficulty_issues: Number of difficulty mismatches.
        question_results: Per-question results.
    """

    model_config = {"frozen": True}

    overall_score: float = Field(..., ge=0.0, le=1.0)
    uniqueness: float = Field(..., ge=0.0, le=1.0)
    accuracy: float = Field(..., ge=0.0, le=1.0)
    difficulty_accuracy: float = Field(..., ge=0.0, le=1.0)
    coverage: float = Field(..., ge=0.0, le=1.0)
    is_valid: bool
    recommendations: list[str] = Field(default_factory=list)
    prompt_changes: list[str] = Field(default_factory=list)
    should_regenerate: bool = False
    total_questions: int = Field(default=0, ge=0)
    valid_questions: int = Field(default=0, ge=0)
    duplicates_found: int = Field(default=0, ge=0)
    source_issues: int = Field(default=0, ge=0)
    difficulty_issues: int = Field(default=0, ge=0)
    question_results: list[QuestionQuality] = Field(default_factory=list)

    def summary(self) -> str:
        """One-line summary of the report."""
        status = "valid" if self.is_valid else "invalid"
        return (
            f"quality={self.overall_score:.3f} ({status}) "
            f"uniqueness={self.uniqueness:.2f} accuracy={self.accuracy:.2f} "
            f"difficulty={self.difficulty_accuracy:.2f} coverage={self.coverage:.2f}"
        )
