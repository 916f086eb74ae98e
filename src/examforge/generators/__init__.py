"""Generators module for examforge.

This module provides LLM-backed exam generation and the parser that turns
generated text into structured questions.
"""

from __future__ import annotations

from examforge.generators.io import load_exam, save_exam
from examforge.generators.llm import LLMExamGenerator
from examforge.generators.models import GenerationOutput, ParsedExam
from examforge.generators.parsing import ExamParser, create_placeholder_questions

__all__ = [
    "ExamParser",
    "GenerationOutput",
    "LLMExamGenerator",
    "ParsedExam",
    "create_placeholder_questions",
    "load_exam",
    "save_exam",
]
