"""LLM adapters for examforge.

This module provides adapters for LLM providers.
"""

from __future__ import annotations

from examforge.adapters.llm.groq import GroqLLM

__all__ = [
    "GroqLLM",
]
