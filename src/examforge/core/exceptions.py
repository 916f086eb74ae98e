"""Custom exceptions for examforge.

This module defines the exception hierarchy used throughout the library.
All exceptions inherit from ExamForgeError for easy catching.
"""

from __future__ import annotations

from enum import Enum


class ExamForgeError(Exception):
    """Base exception for all examforge errors.

    Example:
        >>> try:
        ...     # examforge operations
        ...     pass
        ... except ExamForgeError as e:
        ...     print(f"examforge error: {e}")
    """


class ConfigurationError(ExamForgeError):
    """Raised when a generation request is structurally invalid.

    No files, zero questions requested, or invalid settings. Never retried.

    Example:
        >>> raise ConfigurationError("No files provided for generation")
    """


class ExtractionError(ExamForgeError):
    """Raised when text cannot be extracted from a source file.

    Fatal for the whole run: file access failures indicate a misconfigured
    input rather than a transient condition.

    Example:
        >>> raise ExtractionError("File notes.txt appears to be empty")
    """


class GenerationErrorKind(str, Enum):
    """Kinds of generation failure."""

    QUOTA = "quota"
    TRANSIENT = "transient"


class GenerationError(ExamForgeError):
    """Raised when the generation collaborator fails for a batch.

    Attributes:
        kind: QUOTA errors are never retried; TRANSIENT errors are.

    Example:
        >>> raise GenerationError("Groq returned empty response")
    """

    def __init__(self, message: str, kind: GenerationErrorKind = GenerationErrorKind.TRANSIENT) -> None:
        super().__init__(message)
        self.kind = kind

    @property
    def retryable(self) -> bool:
        """Whether retrying the failed call can succeed."""
        return self.kind is not GenerationErrorKind.QUOTA


class QuotaExceededError(GenerationError):
    """Raised when a rate or quota limit blocks a generation call.

    Attributes:
        retry_after_ms: Milliseconds until the limiting window resets, if known.
    """

    def __init__(self, message: str, retry_after_ms: int | None = None) -> None:
        super().__init__(message, kind=GenerationErrorKind.QUOTA)
        self.retry_after_ms = retry_after_ms


class ParseError(ExamForgeError):
    """Raised when an LLM response cannot be parsed into questions.

    The orchestrator recovers from this with placeholder questions.

    Example:
        >>> raise ParseError("Could not locate exam content section")
    """


class LLMConnectionError(ExamForgeError):
    """Raised when connection to an LLM provider fails.

    Attributes:
        dispatched: False when the request never reached the provider.

    Example:
        >>> raise LLMConnectionError("Failed to connect to Groq at api.groq.com", dispatched=False)
    """

    def __init__(self, message: str, dispatched: bool = True) -> None:
        super().__init__(message)
        self.dispatched = dispatched


class LLMRateLimitError(LLMConnectionError):
    """Raised when an LLM provider rejects a request with HTTP 429."""
