"""LLM-backed exam generator for examforge.

This module implements the generation collaborator on top of any
LLMProtocol provider, guarded by a shared RateLimiter.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from examforge.core.exceptions import (
    GenerationError,
    LLMConnectionError,
    LLMRateLimitError,
    QuotaExceededError,
)
from examforge.generators.models import GenerationOutput
from examforge.generators.prompts import MAX_SOURCE_CHARS, build_exam_prompt

if TYPE_CHECKING:
    from examforge.core.batch import BatchRequest
    from examforge.core.protocols import LLMProtocol
    from examforge.core.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class LLMExamGenerator:
    """Generates exam text for one batch with an LLM.

    The rate limiter is checked before every call and recorded only after a
    call was dispatched. A blocked check and a provider 429 both surface as
    QuotaExceededError; every other provider failure is a retryable
    GenerationError.

    Attributes:
        llm: The LLM provider for generation.
        rate_limiter: Shared call budget, or None for no limiting.
        max_source_chars: Study material beyond this length is truncated.

    Example:
        >>> async with GroqLLM() as llm:
        ...     generator = LLMExamGenerator(llm, rate_limiter=RateLimiter())
        ...     output = await generator.generate(batch.request, batch.source_text)
    """

    def __init__(
        self,
        llm: LLMProtocol,
        rate_limiter: RateLimiter | None = None,
        max_source_chars: int = MAX_SOURCE_CHARS,
    ) -> None:
        """Initialize LLMExamGenerator.

        Args:
            llm: The LLM provider implementing LLMProtocol.
            rate_limiter: Optional rate limiter shared across generators.
            max_source_chars: Maximum characters of study material per prompt.
        """
        self.llm = llm
        self.rate_limiter = rate_limiter
        self.max_source_chars = max_source_chars

    async def generate(self, request: BatchRequest, source_text: str) -> GenerationOutput:
        """Generate exam text for one batch.

        Args:
            request: Question type and difficulty quotas for the batch.
            source_text: Study material to generate from.

        Returns:
            GenerationOutput with the raw response text.

        Raises:
            QuotaExceededError: If the rate limiter or the provider refuses the call.
            GenerationError: If the provider fails or returns an empty response.
        """
        if self.rate_limiter is not None:
            decision = self.rate_limiter.can_proceed()
            if not decision.allowed:
                msg = f"Rate limit reached: {decision.reason}"
                raise QuotaExceededError(msg, retry_after_ms=decision.retry_after_ms)

        prompt = build_exam_prompt(request, source_text, self.max_source_chars)
        logger.debug(f"Requesting {request.total_questions} questions ({len(prompt)} prompt chars)")

        try:
            response = await self.llm.generate(prompt)
        except LLMRateLimitError as e:
            self._record_call()
            msg = f"Provider rate limit exceeded: {e}"
            raise QuotaExceededError(msg) from e
        except LLMConnectionError as e:
            # Requests that never reached the provider do not spend budget.
            if e.dispatched:
                self._record_call()
            msg = f"Exam generation failed: {e}"
            raise GenerationError(msg) from e
        self._record_call()

        if not response.strip():
            msg = "LLM returned an empty response"
            raise GenerationError(msg)

        return GenerationOutput(raw_text=response)

    def _record_call(self) -> None:
        if self.rate_limiter is not None:
            self.rate_limiter.record_call()
