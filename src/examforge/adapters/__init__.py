"""Adapters module for examforge.

This module provides adapters for external services. Cloud adapters send
the study material to an external API.
"""

from __future__ import annotations

from examforge.adapters.llm import GroqLLM

__all__ = [
    "GroqLLM",
]
