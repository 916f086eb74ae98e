"""Unit tests for the LLM-backed exam generator."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from examforge.core.batch import BatchRequest
from examforge.core.exceptions import (
    GenerationError,
    LLMConnectionError,
    LLMRateLimitError,
    QuotaExceededError,
)
from examforge.core.rate_limiter import RateLimitDecision, RateLimiter
from examforge.core.types import DifficultyLevel, QuestionType
from examforge.generators.llm import LLMExamGenerator

REQUEST = BatchRequest(
    question_type_quota={QuestionType.MULTIPLE_CHOICE: 3},
    difficulty_quota={DifficultyLevel.EASY: 3},
    total_questions=3,
)


@pytest.fixture
def mock_llm() -> MagicMock:
    """Create a mock LLM returning a short exam."""
    llm = MagicMock()
    llm.is_local = False
    llm.generate = AsyncMock(return_value="General Topic: Cells\n----Exam Content----\n...")
    return llm


@pytest.fixture
def mock_limiter() -> MagicMock:
    """Create a mock rate limiter that always allows calls."""
    limiter = MagicMock(spec=RateLimiter)
    limiter.can_proceed.return_value = RateLimitDecision(allowed=True)
    return limiter


class TestLLMExamGenerator:
    """Tests for LLMExamGenerator."""

    @pytest.mark.asyncio
    async def test_generate_returns_raw_text(self, mock_llm: MagicMock) -> None:
        """Test that the response is returned unparsed."""
        output = await LLMExamGenerator(mock_llm).generate(REQUEST, "Cells are small.")

        assert output.raw_text.startswith("General Topic: Cells")
        assert output.questions is None
        prompt = mock_llm.generate.call_args.args[0]
        assert "Cells are small." in prompt
        assert "Total questions: 3" in prompt

    @pytest.mark.asyncio
    async def test_records_call_after_dispatch(self, mock_llm: MagicMock, mock_limiter: MagicMock) -> None:
        """Test that the limiter is checked before and recorded after the call."""
        await LLMExamGenerator(mock_llm, rate_limiter=mock_limiter).generate(REQUEST, "text")

        mock_limiter.can_proceed.assert_called_once()
        mock_limiter.record_call.assert_called_once()

    @pytest.mark.asyncio
    async def test_blocked_by_rate_limiter(self, mock_llm: MagicMock, mock_limiter: MagicMock) -> None:
        """Test that a refused check raises without calling the LLM."""
        mock_limiter.can_proceed.return_value = RateLimitDecision(
            allowed=False, retry_after_ms=12_000, reason="Minute limit reached (25/25)"
        )

        with pytest.raises(QuotaExceededError) as exc_info:
            await LLMExamGenerator(mock_llm, rate_limiter=mock_limiter).generate(REQUEST, "text")

        assert exc_info.value.retry_after_ms == 12_000
        assert exc_info.value.retryable is False
        mock_llm.generate.assert_not_called()
        mock_limiter.record_call.assert_not_called()

    @pytest.mark.asyncio
    async def test_real_limiter_consumed(self, mock_llm: MagicMock) -> None:
        """Test the generator against a real limiter."""
        limiter = RateLimiter(max_per_minute=1, max_per_day=10)
        generator = LLMExamGenerator(mock_llm, rate_limiter=limiter)

        await generator.generate(REQUEST, "text")
        with pytest.raises(QuotaExceededError):
            await generator.generate(REQUEST, "text")

        assert mock_llm.generate.await_count == 1

    @pytest.mark.asyncio
    async def test_provider_rate_limit(self, mock_llm: MagicMock, mock_limiter: MagicMock) -> None:
        """Test that a provider 429 becomes a quota error and is still recorded."""
        mock_llm.generate.side_effect = LLMRateLimitError("Groq rate limit exceeded")

        with pytest.raises(QuotaExceededError, match="Provider rate limit"):
            await LLMExamGenerator(mock_llm, rate_limiter=mock_limiter).generate(REQUEST, "text")

        mock_limiter.record_call.assert_called_once()

    @pytest.mark.asyncio
    async def test_connection_error_is_transient(self, mock_llm: MagicMock) -> None:
        """Test that connection failures are retryable generation errors."""
        mock_llm.generate.side_effect = LLMConnectionError("Groq request timed out")

        with pytest.raises(GenerationError) as exc_info:
            await LLMExamGenerator(mock_llm).generate(REQUEST, "text")

        assert exc_info.value.retryable is True
        assert not isinstance(exc_info.value, QuotaExceededError)

    @pytest.mark.asyncio
    async def test_undispatched_call_not_recorded(self, mock_llm: MagicMock, mock_limiter: MagicMock) -> None:
        """Test that a request which never reached the provider spends no budget."""
        mock_llm.generate.side_effect = LLMConnectionError("Connection refused", dispatched=False)

        with pytest.raises(GenerationError):
            await LLMExamGenerator(mock_llm, rate_limiter=mock_limiter).generate(REQUEST, "text")

        mock_limiter.record_call.assert_not_called()

    @pytest.mark.asyncio
    async def test_dispatched_failure_recorded(self, mock_llm: MagicMock, mock_limiter: MagicMock) -> None:
        """Test that a provider error after dispatch still counts against the budget."""
        mock_llm.generate.side_effect = LLMConnectionError("Groq API error: 500")

        with pytest.raises(GenerationError):
            await LLMExamGenerator(mock_llm, rate_limiter=mock_limiter).generate(REQUEST, "text")

        mock_limiter.record_call.assert_called_once()

    @pytest.mark.asyncio
    async def test_empty_response(self, mock_llm: MagicMock) -> None:
        """Test that a blank response is a generation error."""
        mock_llm.generate.return_value = "   \n"

        with pytest.raises(GenerationError, match="empty response"):
            await LLMExamGenerator(mock_llm).generate(REQUEST, "text")

    @pytest.mark.asyncio
    async def test_source_truncated(self, mock_llm: MagicMock) -> None:
        """Test that long study material is truncated in the prompt."""
        await LLMExamGenerator(mock_llm, max_source_chars=10).generate(REQUEST, "x" * 50)

        prompt = mock_llm.generate.call_args.args[0]
        assert "x" * 11 not in prompt
        assert "[... content truncated ...]" in prompt
