"""Protocol definitions for examforge.

This module defines the interfaces of the external collaborators the
generation pipeline consumes. Using protocols enables duck typing and
loose coupling: tests and alternative providers need no base class.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from examforge.core.batch import BatchRequest
    from examforge.core.types import ExtractedText, SourceFile
    from examforge.generators.models import GenerationOutput


@runtime_checkable
class LLMProtocol(Protocol):
    """Protocol for LLM providers.

    Attributes:
        is_local: Whether the LLM runs locally (no data leaves the network).

    Example:
        >>> class MyLLM:
        ...     is_local: bool = True
        ...
        ...     async def generate(self, prompt: str) -> str:
        ...         return "General Topic: Biology"
        ...
        >>> assert isinstance(MyLLM(), LLMProtocol)
    """

    is_local: bool

    async def generate(self, prompt: str) -> str:
        """Generate text from a prompt.

        Args:
            prompt: The input prompt for text generation.

        Returns:
            The generated text response.

        Raises:
            LLMConnectionError: If the LLM provider is unreachable.
            LLMRateLimitError: If the provider rejected the call for rate limits.
        """
        ...


@runtime_checkable
class ExamGeneratorProtocol(Protocol):
    """Protocol for the generation collaborator.

    Implementations turn one batch request into generated exam text, and may
    also return pre-structured questions and quality metrics, which the
    orchestrator prefers over re-parsing the raw text.
    """

    async def generate(self, request: BatchRequest, source_text: str) -> GenerationOutput:
        """Generate questions for one batch.

        Args:
            request: Question type and difficulty quotas for the batch.
            source_text: Study material to generate from.

        Returns:
            GenerationOutput with the raw response text.

        Raises:
            QuotaExceededError: If a rate or quota limit blocks the call.
            GenerationError: For any other (retryable) failure.
        """
        ...


@runtime_checkable
class TextExtractorProtocol(Protocol):
    """Protocol for file text extraction."""

    def extract(self, source: SourceFile) -> ExtractedText:
        """Extract text from a source file.

        Args:
            source: The file to read.

        Returns:
            ExtractedText with cleaned text and word count.

        Raises:
            ExtractionError: If the file is missing, unsupported or empty.
        """
        ...
