"""Exam generation pipeline.

This module drives a generation run: it walks the source files in order,
plans batches, calls the generation collaborator with retries, parses and
deduplicates the results, and scores the final exam.

Batches are processed strictly one after another. The run's ExamDraft is
mutated after every batch, and concurrent batches would race on its
fingerprint set.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from examforge.core.batch import BatchPlanner, consume_quota
from examforge.core.draft import ExamDraft
from examforge.core.exceptions import (
    ConfigurationError,
    ExamForgeError,
    ExtractionError,
    GenerationError,
    ParseError,
)
from examforge.core.types import DifficultyLevel, Exam, ExamMetadata
from examforge.evaluators.quality import QualityScorer
from examforge.generators.parsing import DEFAULT_TOPIC, ExamParser, create_placeholder_questions

if TYPE_CHECKING:
    from examforge.core.batch import Batch
    from examforge.core.config import Settings
    from examforge.core.protocols import ExamGeneratorProtocol, TextExtractorProtocol
    from examforge.core.types import ExamRequest, Question
    from examforge.evaluators.models import QualityMetrics

logger = logging.getLogger(__name__)


@dataclass
class GenerationConfig:
    """Retry and pacing settings for a generation run.

    Attributes:
        max_attempts: Attempts per batch, including the first.
        retry_base_delay: Backoff before the second attempt in seconds, doubled each attempt.
        batch_stagger_delay: Pause between consecutive batches in seconds.
        score_exam: Score the final exam against the source text.
    """

    max_attempts: int = 3
    retry_base_delay: float = 1.0
    batch_stagger_delay: float = 0.2
    score_exam: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> GenerationConfig:
        """Build a config from application settings."""
        return cls(
            max_attempts=settings.max_attempts,
            retry_base_delay=settings.retry_base_delay,
            batch_stagger_delay=settings.batch_stagger_delay,
        )

    def backoff(self, attempt: int) -> float:
        """Delay in seconds after the given failed attempt (1-based)."""
        return float(self.retry_base_delay * 2 ** (attempt - 1))


@dataclass
class BatchInfo:
    """Position of the batch about to be generated."""

    current_batch: int
    total_batches: int
    questions_in_batch: int


@dataclass
class GenerationProgress:
    """Progress information for callbacks."""

    current_file: str
    current_file_index: int
    total_files: int
    questions_generated: int
    total_questions_needed: int
    batch_info: BatchInfo | None = None
    completed: bool = False


# Type alias for progress callback, sync or async
ProgressCallback = Callable[[GenerationProgress], Any]


@dataclass
class GenerationResult:
    """Outcome of a generation run.

    Either `exam` is set, or `error` holds the terminal error of the run.
    """

    exam: Exam | None = None
    quality: QualityMetrics | None = None
    batch_quality: QualityMetrics | None = None
    error: ExamForgeError | None = None
    failed_batches: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Whether the run produced an exam."""
        return self.exam is not None and self.error is None


@dataclass
class _RunState:
    draft: ExamDraft = field(default_factory=ExamDraft)
    topic: str | None = None
    source_names: list[str] = field(default_factory=list)
    source_texts: list[str] = field(default_factory=list)
    batches_planned: int = 0
    failed_batches: list[str] = field(default_factory=list)
    batches_started: int = 0


def assign_difficulties(questions: list[Question], difficulty_quota: dict[DifficultyLevel, int]) -> list[Question]:
    """Assign difficulties from a quota to questions in order.

    Levels are handed out from easiest to hardest. Questions beyond the
    quota keep their difficulty.
    """
    levels = [level for level in DifficultyLevel for _ in range(difficulty_quota.get(level, 0))]
    return [
        question.model_copy(update={"difficulty": levels[i]}) if i < len(levels) else question
        for i, question in enumerate(questions)
    ]


class ExamGenerationService:
    """Generates exams from study files.

    Each call to `generate()` owns a fresh ExamDraft, so independent runs
    may share one service. The generator usually shares a RateLimiter with
    every other generator drawing on the same provider budget.

    Example:
        >>> async with GroqLLM() as llm:
        ...     service = ExamGenerationService(
        ...         LLMExamGenerator(llm, rate_limiter=RateLimiter()),
        ...         FileTextExtractor(),
        ...     )
        ...     result = await service.generate(request)
        >>> result.exam.total_questions
        20
    """

    def __init__(
        self,
        generator: ExamGeneratorProtocol,
        extractor: TextExtractorProtocol,
        *,
        planner: BatchPlanner | None = None,
        parser: ExamParser | None = None,
        scorer: QualityScorer | None = None,
        config: GenerationConfig | None = None,
    ) -> None:
        """Initialize ExamGenerationService.

        Args:
            generator: Collaborator producing exam text for one batch.
            extractor: Collaborator extracting text from source files.
            planner: Batch planner. Defaults to BatchPlanner().
            parser: Parser for generated text. Defaults to ExamParser().
            scorer: Quality scorer. Defaults to QualityScorer().
            config: Retry and pacing settings. Defaults to GenerationConfig().
        """
        self.generator = generator
        self.extractor = extractor
        self.planner = planner or BatchPlanner()
        self.parser = parser or ExamParser()
        self.scorer = scorer or QualityScorer()
        self.config = config or GenerationConfig()

    async def generate(
        self,
        request: ExamRequest,
        on_progress: ProgressCallback | None = None,
    ) -> GenerationResult:
        """Run the generation pipeline for a request.

        Structural failures (invalid request, unreadable file) end the run.
        Batch failures are logged and the run continues without the batch.

        Args:
            request: Files and question quotas to generate.
            on_progress: Optional callback invoked at file start, before each
                batch, and once at completion.

        Returns:
            GenerationResult with the exam and its quality report, or the
            terminal error. Never raises for pipeline errors.
        """
        start_time = time.perf_counter()

        try:
            self._validate(request)
        except ConfigurationError as e:
            logger.error(f"Invalid generation request: {e}")
            return GenerationResult(error=e)

        state = _RunState()
        total = request.total_questions
        per_file_share = math.ceil(total / len(request.files))
        remaining_types = dict(request.question_types)
        remaining_levels = dict(request.difficulty_distribution)

        try:
            for file_index, source in enumerate(request.files):
                owed = min(per_file_share, total - state.draft.count)
                if owed <= 0:
                    logger.debug(f"Skipping {source.name}: question total already reached")
                    continue

                await self._notify(on_progress, self._progress(request, file_index, state))

                extracted = self.extractor.extract(source)
                state.source_names.append(source.name)
                state.source_texts.append(extracted.text)
                logger.info(f"Extracted {extracted.word_count} words from {source.name}, generating {owed} questions")

                batches = self.planner.plan(owed, remaining_types, remaining_levels, extracted.text, source.name)
                state.batches_planned += len(batches)
                for batch in batches:
                    consume_quota(remaining_types, batch.question_type_quota)
                    consume_quota(remaining_levels, batch.difficulty_quota)

                for batch in batches:
                    if state.draft.count >= total:
                        break
                    if state.batches_started and self.config.batch_stagger_delay > 0:
                        await asyncio.sleep(self.config.batch_stagger_delay)
                    state.batches_started += 1

                    batch_info = BatchInfo(
                        current_batch=batch.batch_index + 1,
                        total_batches=batch.total_batches,
                        questions_in_batch=batch.questions_requested,
                    )
                    await self._notify(on_progress, self._progress(request, file_index, state, batch_info))
                    await self._run_batch(batch, state, total)

                if state.draft.count >= total:
                    logger.debug(f"Reached {total} questions after {source.name}")
                    break
        except ExtractionError as e:
            logger.error(f"Generation aborted: {e}")
            return GenerationResult(error=e, failed_batches=state.failed_batches)

        result = self._finish(state, start_time)
        await self._notify(
            on_progress,
            GenerationProgress(
                current_file=state.source_names[-1] if state.source_names else "",
                current_file_index=len(request.files) - 1,
                total_files=len(request.files),
                questions_generated=state.draft.count,
                total_questions_needed=total,
                completed=True,
            ),
        )
        return result

    def _validate(self, request: ExamRequest) -> None:
        if not request.files:
            msg = "No files provided for generation"
            raise ConfigurationError(msg)
        if request.total_questions <= 0:
            msg = "Total questions must be greater than zero"
            raise ConfigurationError(msg)

    async def _run_batch(self, batch: Batch, state: _RunState, total: int) -> None:
        """Generate one batch with retries, adding its questions to the draft."""
        max_attempts = self.config.max_attempts
        last_error: GenerationError | None = None

        for attempt in range(1, max_attempts + 1):
            try:
                questions, quality = await self._attempt(batch, state)
            except GenerationError as e:
                if not e.retryable:
                    logger.warning(f"Batch {batch.batch_id} skipped, quota exceeded: {e}")
                    state.failed_batches.append(batch.batch_id)
                    return
                last_error = e
            else:
                added = state.draft.add_all(questions, limit=total)
                if quality is not None:
                    state.draft.record_quality(quality)
                logger.info(
                    f"Batch {batch.batch_id}: accepted {added} of {len(questions)} questions "
                    f"({state.draft.count}/{total} total)"
                )
                return

            if attempt < max_attempts:
                delay = self.config.backoff(attempt)
                logger.warning(
                    f"Batch {batch.batch_id} attempt {attempt}/{max_attempts} failed: {last_error}. "
                    f"Retrying in {delay:.1f}s"
                )
                await asyncio.sleep(delay)

        logger.error(f"Batch {batch.batch_id} abandoned after {max_attempts} attempts: {last_error}")
        state.failed_batches.append(batch.batch_id)

    async def _attempt(self, batch: Batch, state: _RunState) -> tuple[list[Question], QualityMetrics | None]:
        """Run one collaborator call and turn its output into questions.

        Raises:
            GenerationError: If the call fails or yields no questions.
        """
        output = await self.generator.generate(batch.request, batch.source_text)

        if output.questions:
            questions = list(output.questions)
        else:
            try:
                parsed = self.parser.parse_document(output.raw_text)
            except ParseError as e:
                questions = create_placeholder_questions(output.raw_text, batch.questions_requested)
                logger.warning(
                    f"Batch {batch.batch_id} response could not be parsed ({e}), "
                    f"created {len(questions)} placeholder questions"
                )
            else:
                questions = assign_difficulties(parsed.questions, batch.difficulty_quota)
                if state.topic is None and parsed.topic != DEFAULT_TOPIC:
                    state.topic = parsed.topic

        if not questions:
            msg = f"Batch {batch.batch_id} yielded no questions"
            raise GenerationError(msg)

        return questions[: batch.questions_requested], output.quality

    def _finish(self, state: _RunState, start_time: float) -> GenerationResult:
        draft = state.draft
        batch_quality = self.scorer.aggregate(draft.batch_quality_records) if draft.batch_quality_records else None

        if not draft.accepted_questions:
            error = GenerationError("No questions could be generated from the provided files")
            logger.error(str(error))
            return GenerationResult(error=error, batch_quality=batch_quality, failed_batches=state.failed_batches)

        exam = Exam(
            topic=state.topic or DEFAULT_TOPIC,
            questions=draft.accepted_questions,
            total_questions=draft.count,
            metadata=ExamMetadata(
                source_files=state.source_names,
                generation_time_ms=(time.perf_counter() - start_time) * 1000,
                batches_planned=state.batches_planned,
                batches_failed=len(state.failed_batches),
                placeholder_questions=sum(1 for q in draft.accepted_questions if q.needs_review),
            ),
        )

        quality = None
        if self.config.score_exam:
            quality = self.scorer.score(exam, "\n\n".join(state.source_texts))
            logger.info(f"Exam {exam.id}: {quality.summary()}")

        if state.failed_batches:
            logger.warning(f"{len(state.failed_batches)} batch(es) failed: {', '.join(state.failed_batches)}")

        return GenerationResult(
            exam=exam,
            quality=quality,
            batch_quality=batch_quality,
            failed_batches=state.failed_batches,
        )

    @staticmethod
    def _progress(
        request: ExamRequest,
        file_index: int,
        state: _RunState,
        batch_info: BatchInfo | None = None,
    ) -> GenerationProgress:
        return GenerationProgress(
            current_file=request.files[file_index].name,
            current_file_index=file_index,
            total_files=len(request.files),
            questions_generated=state.draft.count,
            total_questions_needed=request.total_questions,
            batch_info=batch_info,
        )

    @staticmethod
    async def _notify(on_progress: ProgressCallback | None, info: GenerationProgress) -> None:
        if on_progress:
            callback_result = on_progress(info)
            if asyncio.iscoroutine(callback_result):
                await callback_result


