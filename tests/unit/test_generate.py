"""Unit tests for the exam generation pipeline."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from examforge.core.batch import BatchRequest
from examforge.core.exceptions import (
    ConfigurationError,
    ExtractionError,
    GenerationError,
    QuotaExceededError,
)
from examforge.core.generate import (
    ExamGenerationService,
    GenerationConfig,
    GenerationProgress,
    assign_difficulties,
)
from examforge.core.types import (
    DifficultyLevel,
    ExamRequest,
    ExtractedText,
    Question,
    QuestionType,
    SourceFile,
)
from examforge.evaluators.models import QualityMetrics
from examforge.generators.models import GenerationOutput

SOURCE_TEXT = "Cells contain mitochondria which produce energy. The nucleus stores genetic material."

NO_DELAYS = GenerationConfig(retry_base_delay=0.0, batch_stagger_delay=0.0)


# ============================================================================
# Fixtures
# ============================================================================


def exam_text(prompts: list[str], topic: str = "Cell Biology") -> str:
    """Build a well-formed multiple choice response."""
    lines = [f"General Topic: {topic}", "", "----Exam Content----", "", "Multiple Choice:"]
    for number, prompt in enumerate(prompts, start=1):
        lines += [f"{number}. {prompt}", "   A. Energy", "   B. Storage", "   C. Defense", "   D. Support"]
    lines += ["", "----Answer Key----"]
    lines += [f"{number}. A" for number in range(1, len(prompts) + 1)]
    return "\n".join(lines)


def prompts_for(call: int, count: int) -> list[str]:
    return [f"What is concept {call} {i} in cells?" for i in range(1, count + 1)]


class FakeGenerator:
    """Generation collaborator replaying scripted responses.

    Each item is a raw response string, a GenerationOutput, or an exception
    to raise. The last item repeats once the script is exhausted.
    """

    def __init__(self, *responses: str | GenerationOutput | Exception) -> None:
        self.responses = list(responses)
        self.requests: list[BatchRequest] = []

    async def generate(self, request: BatchRequest, source_text: str) -> GenerationOutput:
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        if isinstance(response, GenerationOutput):
            return response
        return GenerationOutput(raw_text=response)


class CountingGenerator:
    """Generation collaborator producing fresh questions on every call."""

    def __init__(self) -> None:
        self.requests: list[BatchRequest] = []

    async def generate(self, request: BatchRequest, source_text: str) -> GenerationOutput:
        self.requests.append(request)
        return GenerationOutput(raw_text=exam_text(prompts_for(len(self.requests), request.total_questions)))


class FakeExtractor:
    """Text extractor returning fixed text, optionally failing for one file."""

    def __init__(self, fail_on: str | None = None) -> None:
        self.fail_on = fail_on
        self.calls: list[str] = []

    def extract(self, source: SourceFile) -> ExtractedText:
        self.calls.append(source.name)
        if source.name == self.fail_on:
            msg = f"File {source.name} appears to be empty"
            raise ExtractionError(msg)
        return ExtractedText(text=SOURCE_TEXT, word_count=len(SOURCE_TEXT.split()), char_count=len(SOURCE_TEXT))


def make_request(
    total: int,
    files: tuple[str, ...] = ("notes.txt",),
    question_types: dict[QuestionType, int] | None = None,
    difficulties: dict[DifficultyLevel, int] | None = None,
) -> ExamRequest:
    return ExamRequest(
        files=[SourceFile(path=Path(name)) for name in files],
        question_types=question_types or {QuestionType.MULTIPLE_CHOICE: total},
        difficulty_distribution=difficulties or {DifficultyLevel.MODERATE: total},
        total_questions=total,
    )


# ============================================================================
# Configuration Tests
# ============================================================================


class TestGenerationConfig:
    """Tests for GenerationConfig."""

    def test_defaults(self) -> None:
        """Test default retry and pacing values."""
        config = GenerationConfig()
        assert config.max_attempts == 3
        assert config.retry_base_delay == 1.0
        assert config.batch_stagger_delay == 0.2

    def test_backoff_doubles(self) -> None:
        """Test exponential backoff."""
        config = GenerationConfig(retry_base_delay=1.0)
        assert [config.backoff(attempt) for attempt in (1, 2, 3)] == [1.0, 2.0, 4.0]


class TestAssignDifficulties:
    """Tests for difficulty assignment."""

    def test_levels_in_order(self) -> None:
        """Test that levels are handed out from easiest to hardest."""
        questions = [Question(id=f"q-{i}", type=QuestionType.ESSAY, prompt=f"Prompt {i}?") for i in range(4)]

        assigned = assign_difficulties(questions, {DifficultyLevel.HARD: 1, DifficultyLevel.EASY: 2})

        assert [q.difficulty for q in assigned] == [
            DifficultyLevel.EASY,
            DifficultyLevel.EASY,
            DifficultyLevel.HARD,
            DifficultyLevel.MODERATE,
        ]


# ============================================================================
# Request Validation Tests
# ============================================================================


class TestValidation:
    """Tests for structurally invalid requests."""

    @pytest.mark.asyncio
    async def test_no_files(self) -> None:
        """Test that a request without files fails with ConfigurationError."""
        generator = FakeGenerator(exam_text(prompts_for(1, 3)))
        service = ExamGenerationService(generator, FakeExtractor(), config=NO_DELAYS)

        result = await service.generate(make_request(3, files=()))

        assert isinstance(result.error, ConfigurationError)
        assert result.exam is None
        assert result.success is False
        assert generator.requests == []

    @pytest.mark.asyncio
    async def test_zero_questions(self) -> None:
        """Test that zero requested questions fails with ConfigurationError."""
        request = ExamRequest(files=[SourceFile(path=Path("notes.txt"))], total_questions=0)
        service = ExamGenerationService(FakeGenerator("unused"), FakeExtractor(), config=NO_DELAYS)

        result = await service.generate(request)

        assert isinstance(result.error, ConfigurationError)


# ============================================================================
# Generation Tests
# ============================================================================


class TestGenerate:
    """Tests for successful generation runs."""

    @pytest.mark.asyncio
    async def test_single_batch(self) -> None:
        """Test a small request generated in one batch."""
        generator = FakeGenerator(exam_text(prompts_for(1, 5)))
        service = ExamGenerationService(generator, FakeExtractor(), config=NO_DELAYS)

        result = await service.generate(
            make_request(5, difficulties={DifficultyLevel.EASY: 2, DifficultyLevel.HARD: 3})
        )

        assert result.success is True
        assert result.exam is not None
        assert result.exam.total_questions == 5
        assert result.exam.topic == "Cell Biology"
        assert [q.answer for q in result.exam.questions] == ["A"] * 5
        assert [q.difficulty for q in result.exam.questions] == [DifficultyLevel.EASY] * 2 + [DifficultyLevel.HARD] * 3
        assert result.quality is not None
        assert result.quality.total_questions == 5
        assert result.exam.metadata.source_files == ["notes.txt"]
        assert result.exam.metadata.batches_planned == 1
        assert len(generator.requests) == 1
        assert generator.requests[0].difficulty_quota == {DifficultyLevel.EASY: 2, DifficultyLevel.HARD: 3}

    @pytest.mark.asyncio
    async def test_large_request_split_into_batches(self) -> None:
        """Test that a large request is generated in sequential batches."""
        generator = CountingGenerator()
        service = ExamGenerationService(generator, FakeExtractor(), config=NO_DELAYS)

        result = await service.generate(make_request(40))

        assert result.exam is not None
        assert result.exam.total_questions == 40
        assert [r.total_questions for r in generator.requests] == [8, 8, 8, 8, 8]
        assert len({q.id for q in result.exam.questions}) == 40
        assert result.exam.metadata.batches_planned == 5

    @pytest.mark.asyncio
    async def test_output_capped_at_batch_request(self) -> None:
        """Test that extra questions in a response are dropped."""
        service = ExamGenerationService(FakeGenerator(exam_text(prompts_for(1, 9))), FakeExtractor(), config=NO_DELAYS)

        result = await service.generate(make_request(4))

        assert result.exam is not None
        assert result.exam.total_questions == 4

    @pytest.mark.asyncio
    async def test_duplicates_across_batches_dropped(self) -> None:
        """Test that a batch repeating earlier questions adds nothing."""
        generator = FakeGenerator(exam_text(prompts_for(1, 8)))
        service = ExamGenerationService(generator, FakeExtractor(), config=NO_DELAYS)

        result = await service.generate(make_request(16))

        assert len(generator.requests) == 2
        assert result.exam is not None
        assert result.exam.total_questions == 8
        assert result.failed_batches == []

    @pytest.mark.asyncio
    async def test_multiple_files_share_the_total(self) -> None:
        """Test per-file shares and id re-keying across files."""
        generator = CountingGenerator()
        extractor = FakeExtractor()
        service = ExamGenerationService(generator, extractor, config=NO_DELAYS)

        result = await service.generate(make_request(5, files=("ch1.txt", "ch2.txt")))

        assert extractor.calls == ["ch1.txt", "ch2.txt"]
        assert [r.total_questions for r in generator.requests] == [3, 2]
        assert result.exam is not None
        assert [q.id for q in result.exam.questions] == ["q-1", "q-2", "q-3", "q-1-2", "q-2-2"]
        assert result.exam.metadata.source_files == ["ch1.txt", "ch2.txt"]

    @pytest.mark.asyncio
    async def test_global_quota_consumed_across_files(self) -> None:
        """Test that later files receive what earlier files left of each quota."""
        generator = CountingGenerator()
        service = ExamGenerationService(generator, FakeExtractor(), config=NO_DELAYS)
        request = make_request(
            4,
            files=("ch1.txt", "ch2.txt"),
            question_types={QuestionType.MULTIPLE_CHOICE: 2, QuestionType.TRUE_FALSE: 2},
        )

        await service.generate(request)

        combined: dict[QuestionType, int] = {}
        for batch_request in generator.requests:
            for question_type, count in batch_request.question_type_quota.items():
                combined[question_type] = combined.get(question_type, 0) + count
        assert combined == {QuestionType.MULTIPLE_CHOICE: 2, QuestionType.TRUE_FALSE: 2}

    @pytest.mark.asyncio
    async def test_structured_questions_preferred(self) -> None:
        """Test that collaborator questions are used without parsing."""
        questions = [
            Question(
                id="s-1",
                type=QuestionType.ESSAY,
                difficulty=DifficultyLevel.VERY_HARD,
                prompt="Explain how mitochondria produce energy?",
                answer="Through cellular respiration",
            )
        ]
        quality = QualityMetrics(
            overall_score=0.9,
            uniqueness=1.0,
            accuracy=0.9,
            difficulty_accuracy=0.8,
            coverage=1.0,
            is_valid=True,
            total_questions=1,
        )
        generator = FakeGenerator(GenerationOutput(raw_text="unparseable", questions=questions, quality=quality))
        service = ExamGenerationService(generator, FakeExtractor(), config=NO_DELAYS)

        result = await service.generate(make_request(1))

        assert result.exam is not None
        assert result.exam.questions == questions
        assert result.batch_quality is not None
        assert result.batch_quality.overall_score == pytest.approx(0.9)

    @pytest.mark.asyncio
    async def test_scoring_disabled(self) -> None:
        """Test that the final exam is not scored when disabled."""
        config = GenerationConfig(retry_base_delay=0.0, batch_stagger_delay=0.0, score_exam=False)
        service = ExamGenerationService(FakeGenerator(exam_text(prompts_for(1, 2))), FakeExtractor(), config=config)

        result = await service.generate(make_request(2))

        assert result.exam is not None
        assert result.quality is None


# ============================================================================
# Failure Handling Tests
# ============================================================================


class TestFailureHandling:
    """Tests for retries, skipped batches and fatal errors."""

    @pytest.mark.asyncio
    async def test_retry_then_success(self) -> None:
        """Test that a transient failure is retried."""
        generator = FakeGenerator(GenerationError("timeout"), exam_text(prompts_for(1, 3)))
        service = ExamGenerationService(generator, FakeExtractor(), config=NO_DELAYS)

        result = await service.generate(make_request(3))

        assert len(generator.requests) == 2
        assert result.exam is not None
        assert result.exam.total_questions == 3
        assert result.failed_batches == []

    @pytest.mark.asyncio
    async def test_retries_exhausted_batch_dropped(self) -> None:
        """Test that a batch failing every attempt is dropped and the run continues."""
        error = GenerationError("upstream error")
        generator = FakeGenerator(error, error, error, exam_text(prompts_for(1, 8)))
        service = ExamGenerationService(generator, FakeExtractor(), config=NO_DELAYS)

        result = await service.generate(make_request(16))

        assert len(generator.requests) == 4
        assert result.failed_batches == ["notes.txt#1/2"]
        assert result.exam is not None
        assert result.exam.total_questions == 8
        assert result.exam.metadata.batches_failed == 1

    @pytest.mark.asyncio
    async def test_quota_error_not_retried(self) -> None:
        """Test that a quota failure skips the batch without retrying."""
        generator = FakeGenerator(QuotaExceededError("Rate limit reached", retry_after_ms=30_000))
        service = ExamGenerationService(generator, FakeExtractor(), config=NO_DELAYS)

        result = await service.generate(make_request(3))

        assert len(generator.requests) == 1
        assert result.failed_batches == ["notes.txt#1/1"]
        assert isinstance(result.error, GenerationError)
        assert result.exam is None

    @pytest.mark.asyncio
    async def test_all_batches_failed(self) -> None:
        """Test that an empty exam is reported as an error."""
        generator = FakeGenerator(GenerationError("upstream error"))
        service = ExamGenerationService(generator, FakeExtractor(), config=NO_DELAYS)

        result = await service.generate(make_request(3))

        assert len(generator.requests) == 3
        assert result.exam is None
        assert isinstance(result.error, GenerationError)
        assert "No questions could be generated" in str(result.error)

    @pytest.mark.asyncio
    async def test_extraction_error_is_fatal(self) -> None:
        """Test that an unreadable file ends the run."""
        generator = CountingGenerator()
        service = ExamGenerationService(generator, FakeExtractor(fail_on="ch2.txt"), config=NO_DELAYS)

        result = await service.generate(make_request(4, files=("ch1.txt", "ch2.txt")))

        assert isinstance(result.error, ExtractionError)
        assert result.exam is None
        assert len(generator.requests) == 1

    @pytest.mark.asyncio
    async def test_unparseable_response_gives_placeholders(self) -> None:
        """Test placeholder questions for a response that cannot be parsed."""
        response = "Here are your questions:\n1. Something about cells\n2. Something else\n"
        service = ExamGenerationService(FakeGenerator(response), FakeExtractor(), config=NO_DELAYS)

        result = await service.generate(make_request(5))

        assert result.exam is not None
        assert result.exam.total_questions == 2
        assert len(result.exam.needs_review()) == 2
        assert result.exam.metadata.placeholder_questions == 2

    @pytest.mark.asyncio
    async def test_placeholders_kept_for_every_batch(self) -> None:
        """Test that each unparseable batch contributes its own placeholders."""
        response = "Here are your questions:\n" + "\n".join(f"{n}. Something {n}" for n in range(1, 9))
        service = ExamGenerationService(FakeGenerator(response), FakeExtractor(), config=NO_DELAYS)

        result = await service.generate(make_request(24))

        assert result.exam is not None
        assert result.exam.total_questions == 24
        assert result.exam.metadata.placeholder_questions == 24
        assert len({q.id for q in result.exam.questions}) == 24
        assert result.failed_batches == []

    @pytest.mark.asyncio
    async def test_response_without_questions_is_retried(self) -> None:
        """Test that a response yielding no questions counts as a failed attempt."""
        generator = FakeGenerator("I cannot help with that.", exam_text(prompts_for(1, 2)))
        service = ExamGenerationService(generator, FakeExtractor(), config=NO_DELAYS)

        result = await service.generate(make_request(2))

        assert len(generator.requests) == 2
        assert result.exam is not None
        assert result.exam.total_questions == 2
        assert result.exam.needs_review() == []


# ============================================================================
# Pacing Tests
# ============================================================================


class TestPacing:
    """Tests for backoff and batch stagger delays."""

    @pytest.mark.asyncio
    async def test_backoff_between_attempts(self) -> None:
        """Test exponential backoff before each retry."""
        error = GenerationError("upstream error")
        generator = FakeGenerator(error, error, exam_text(prompts_for(1, 2)))
        service = ExamGenerationService(
            generator,
            FakeExtractor(),
            config=GenerationConfig(retry_base_delay=1.0, batch_stagger_delay=0.2),
        )

        with patch("examforge.core.generate.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await service.generate(make_request(2))

        assert [c.args[0] for c in mock_sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_stagger_between_batches(self) -> None:
        """Test the pause before every batch except the first."""
        service = ExamGenerationService(
            CountingGenerator(),
            FakeExtractor(),
            config=GenerationConfig(retry_base_delay=1.0, batch_stagger_delay=0.2),
        )

        with patch("examforge.core.generate.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await service.generate(make_request(24))

        assert [c.args[0] for c in mock_sleep.await_args_list] == [0.2, 0.2]


# ============================================================================
# Progress Callback Tests
# ============================================================================


class TestProgress:
    """Tests for progress reporting."""

    @pytest.mark.asyncio
    async def test_sync_callback(self) -> None:
        """Test file, batch and completion events."""
        events: list[GenerationProgress] = []
        service = ExamGenerationService(CountingGenerator(), FakeExtractor(), config=NO_DELAYS)

        await service.generate(make_request(16), on_progress=events.append)

        assert len(events) == 4
        assert events[0].batch_info is None
        assert events[0].current_file == "notes.txt"
        assert events[1].batch_info is not None
        assert events[1].batch_info.current_batch == 1
        assert events[1].batch_info.total_batches == 2
        assert events[2].questions_generated == 8
        assert events[3].completed is True
        assert events[3].questions_generated == 16
        assert events[3].total_questions_needed == 16

    @pytest.mark.asyncio
    async def test_async_callback(self) -> None:
        """Test that coroutine callbacks are awaited."""
        events: list[GenerationProgress] = []

        async def on_progress(progress: GenerationProgress) -> None:
            events.append(progress)

        service = ExamGenerationService(CountingGenerator(), FakeExtractor(), config=NO_DELAYS)

        await service.generate(make_request(3), on_progress=on_progress)

        assert len(events) == 3
        assert events[-1].completed is True
