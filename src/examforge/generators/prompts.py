"""Prompts for exam generation.

This module contains the prompt template for generating an exam from
study material, and helpers that render the per-batch parts of it.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from examforge.core.types import DifficultyLevel, QuestionType

if TYPE_CHECKING:
    from examforge.core.batch import BatchRequest

# Groq allows long contexts, but large sources add latency for little gain
MAX_SOURCE_CHARS = 100_000
TRUNCATION_MARKER = "\n\n[... content truncated ...]"

# Prompt for generating a full exam from study material
EXAM_GENERATION_PROMPT = """You are an expert educational assessment creator. Generate a high-quality exam that accurately evaluates student understanding of the study material below.

Quality requirements:
- Uniqueness: each question must test a DIFFERENT concept, fact, or skill
- Source fidelity: base questions STRICTLY on the study material, no external knowledge
- Difficulty accuracy: match each question to its assigned difficulty level
{difficulty_guide}
- Coverage: spread questions across all major topics, aim for {topic_count} distinct topics
{type_rules}
Formatting requirements:
- Generate ONLY the exam content and answer key, no introductions or suggestions
- Number questions sequentially (1, 2, 3...) across ALL types
- Group questions under their type header, exactly as shown below

Output format:

General Topic: [main subject of the study material]

----Exam Content----

{format_sections}

[PAGE BREAK]

----Answer Key----

1. [Answer]
2. [Answer]

Question types and quantities:
{type_summary}

Total questions: {total_questions}

Difficulty distribution:
{difficulty_summary}

Study material:
{source_text}

Start immediately with "General Topic:" and output only the exam content and answer key."""

# Header line the parser recognises for each type
QUESTION_TYPE_HEADERS: dict[QuestionType, str] = {
    QuestionType.MULTIPLE_CHOICE: "Multiple Choice",
    QuestionType.TRUE_FALSE: "True/False",
    QuestionType.FILL_IN_BLANK: "Fill in the Blanks",
    QuestionType.SHORT_ANSWER: "Short Answer",
    QuestionType.ESSAY: "Essay Questions",
    QuestionType.MATCHING: "Matching",
    QuestionType.IDENTIFICATION: "Identification",
}

# Example question body shown under each header
QUESTION_TYPE_EXAMPLES: dict[QuestionType, str] = {
    QuestionType.MULTIPLE_CHOICE: (
        "{n}. What is the primary function of...?\n"
        "   A. First option\n"
        "   B. Second option\n"
        "   C. Third option\n"
        "   D. Fourth option"
    ),
    QuestionType.TRUE_FALSE: "{n}. The process of cell division involves chromosome duplication.",
    QuestionType.FILL_IN_BLANK: "{n}. The process of _____ involves the breakdown of glucose.",
    QuestionType.SHORT_ANSWER: "{n}. Explain the process of cellular respiration.",
    QuestionType.ESSAY: "{n}. Analyze the impact of climate change on biodiversity.",
    QuestionType.MATCHING: (
        "{n}. Match the terms with their correct definitions:\n"
        "   Column A: Term One, Term Two, Term Three\n"
        "   Column B: Definition X, Definition Y, Definition Z"
    ),
    QuestionType.IDENTIFICATION: "{n}. The organelle known as the powerhouse of the cell.",
}

QUESTION_TYPE_RULES: dict[QuestionType, str] = {
    QuestionType.MULTIPLE_CHOICE: (
        "- Multiple choice: exactly 4 options (A, B, C, D), each on its own line; "
        "answer with the option letter"
    ),
    QuestionType.TRUE_FALSE: "- True/False: statements must be definitively true or false; answer True or False",
    QuestionType.FILL_IN_BLANK: "- Fill in the blanks: use exactly _____ for each blank, no CSV formatting",
    QuestionType.MATCHING: "- Matching: answer as comma-separated pairs, e.g. A-2, B-3, C-1",
}

DIFFICULTY_DESCRIPTIONS: dict[DifficultyLevel, str] = {
    DifficultyLevel.VERY_EASY: "direct recall of explicitly stated facts and definitions",
    DifficultyLevel.EASY: "simple concept recognition and basic relationships",
    DifficultyLevel.MODERATE: "connections between concepts, applying knowledge to similar situations",
    DifficultyLevel.HARD: "analysis of complex relationships and synthesis of multiple concepts",
    DifficultyLevel.VERY_HARD: "critical evaluation, advanced reasoning and application",
}

DIFFICULTY_LABELS: dict[DifficultyLevel, str] = {
    DifficultyLevel.VERY_EASY: "Very Easy",
    DifficultyLevel.EASY: "Easy",
    DifficultyLevel.MODERATE: "Moderate",
    DifficultyLevel.HARD: "Hard",
    DifficultyLevel.VERY_HARD: "Very Hard",
}


def truncate_source(source_text: str, max_chars: int = MAX_SOURCE_CHARS) -> str:
    """Truncate study material to at most `max_chars`, marking the cut."""
    if len(source_text) <= max_chars:
        return source_text
    return source_text[:max_chars] + TRUNCATION_MARKER


def get_format_sections(question_type_quota: dict[QuestionType, int]) -> str:
    """Render the example exam layout, numbering sequentially across types.

    Args:
        question_type_quota: Count per question type, in output order.

    Returns:
        One header and example per requested type.
    """
    sections: list[str] = []
    number = 1
    for question_type, count in question_type_quota.items():
        if count <= 0:
            continue
        example = QUESTION_TYPE_EXAMPLES[question_type].format(n=number)
        last = number + count - 1
        sections.append(
            f"{QUESTION_TYPE_HEADERS[question_type]}:\n\n{example}\n\n(numbered {number} to {last})"
        )
        number += count
    return "\n\n".join(sections)


def build_exam_prompt(request: BatchRequest, source_text: str, max_source_chars: int = MAX_SOURCE_CHARS) -> str:
    """Build the generation prompt for one batch.

    Args:
        request: Question type and difficulty quotas for the batch.
        source_text: Study material to generate from.
        max_source_chars: Maximum characters of study material to include.

    Returns:
        The formatted prompt.
    """
    types = {t: c for t, c in request.question_type_quota.items() if c > 0}
    difficulties = {d: c for d, c in request.difficulty_quota.items() if c > 0}

    type_summary = "\n".join(f"- {QUESTION_TYPE_HEADERS[t]}: {c} question(s)" for t, c in types.items())
    difficulty_summary = "\n".join(
        f"- {DIFFICULTY_LABELS[level]}: {difficulties[level]} question(s)"
        for level in DifficultyLevel
        if level in difficulties
    )
    difficulty_guide = "\n".join(
        f"  - {DIFFICULTY_LABELS[level]}: {DIFFICULTY_DESCRIPTIONS[level]}"
        for level in DifficultyLevel
        if level in difficulties
    )
    rules = [QUESTION_TYPE_RULES[t] for t in types if t in QUESTION_TYPE_RULES]
    type_rules = "\nType rules:\n" + "\n".join(rules) + "\n" if rules else ""

    total = request.total_questions
    topic_count = f"{max(1, math.ceil(total / 3))}-{max(1, math.ceil(total / 2))}"

    return EXAM_GENERATION_PROMPT.format(
        difficulty_guide=difficulty_guide,
        topic_count=topic_count,
        type_rules=type_rules,
        format_sections=get_format_sections(types),
        type_summary=type_summary,
        total_questions=total,
        difficulty_summary=difficulty_summary,
        source_text=truncate_source(source_text, max_source_chars),
    )
