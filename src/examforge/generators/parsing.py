"""Text parsing utilities for generated exams.

LLM responses follow a loose plain-text layout: a topic line, an exam
content section grouped under question-type headers, and a numbered answer
key. This module turns that text into Question records, tolerating format
drift through layered, individually testable steps:

    locate_sections -> split_by_question_type -> split_by_question_number
    -> parse_question_block, plus parse_answer_key for the key.

Example:
    >>> text = '''General Topic: Biology
    ... ----Exam Content----
    ... Multiple Choice:
    ... 1. What is photosynthesis?
    ...    A. Making food
    ...    B. Breathing
    ...    C. Reproduction
    ...    D. Growth
    ... ----Answer Key----
    ... 1. A
    ... '''
    >>> [q.answer for q in ExamParser().parse(text)]
    ['A']
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from examforge.core.exceptions import ParseError
from examforge.core.types import DifficultyLevel, Question, QuestionType
from examforge.generators.models import ParsedExam

logger = logging.getLogger(__name__)

DEFAULT_TOPIC = "Generated Exam"

# Checked in order; longer phrases first where one contains another.
QUESTION_TYPE_PATTERNS: tuple[tuple[str, QuestionType], ...] = (
    ("multiple choice", QuestionType.MULTIPLE_CHOICE),
    ("multiple-choice", QuestionType.MULTIPLE_CHOICE),
    ("true/false", QuestionType.TRUE_FALSE),
    ("true or false", QuestionType.TRUE_FALSE),
    ("fill in the blanks", QuestionType.FILL_IN_BLANK),
    ("fill in the blank", QuestionType.FILL_IN_BLANK),
    ("fill-in-the-blank", QuestionType.FILL_IN_BLANK),
    ("short answer", QuestionType.SHORT_ANSWER),
    ("essay", QuestionType.ESSAY),
    ("matching", QuestionType.MATCHING),
    ("identification", QuestionType.IDENTIFICATION),
)

TOPIC_LINE = re.compile(r"^[^\w\n]*(?:general\s+)?topic[^\w\n]*:\s*(.+)$", re.IGNORECASE | re.MULTILINE)
STRICT_CONTENT_HEADER = re.compile(r"-{3,}\s*exam\s+content\s*-{3,}", re.IGNORECASE)
LOOSE_CONTENT_HEADER = re.compile(r"^[^\w\n]*exam\s+content\b[^\n]*$", re.IGNORECASE | re.MULTILINE)
ANSWER_KEY_HEADER = re.compile(r"^[^\w\n]*answer\s+key\b[^\n]*$", re.IGNORECASE | re.MULTILINE)
PAGE_BREAK = re.compile(r"\[\s*page\s+break\s*\]", re.IGNORECASE)

QUESTION_MARKER = re.compile(r"^\s*(\d+)\.(?:\s+(.*))?$")
NUMBERED_LINE = re.compile(r"^\s*\d+\.", re.MULTILINE)
OPTION_LINE = re.compile(r"^\s*\(?([A-Da-d])[.)\]]\s*(.+)$")
INLINE_ANSWER = re.compile(r"^(?:correct\s+)?answer\s*[:\-]\s*(.+)$", re.IGNORECASE)
ANSWER_KEY_LINE = re.compile(r"^\s*(\d+)\s*[.:)]\s*(.+?)\s*$")
ANSWER_PART_SEPARATOR = re.compile(r"\s*[,;]\s*")

PLACEHOLDER_OPTIONS = ("Option A", "Option B", "Option C", "Option D")


@dataclass(frozen=True)
class ExamSections:
    """Content and answer-key regions located in a response."""

    content: str
    answer_key: str
    strategy: str


def extract_topic(text: str) -> str:
    """Extract the general topic line, or return the default topic."""
    match = TOPIC_LINE.search(text)
    if not match:
        return DEFAULT_TOPIC
    topic = match.group(1).strip().strip("*_ ").strip()
    return topic or DEFAULT_TOPIC


def detect_question_type(line: str) -> QuestionType | None:
    """Detect a question-type header line.

    Numbered question lines and lettered option lines are never headers,
    even if they mention a type name.

    Args:
        line: A single line of exam content.

    Returns:
        The question type, or None if the line is not a header.
    """
    if not line.strip() or QUESTION_MARKER.match(line) or OPTION_LINE.match(line):
        return None

    lowered = line.lower()
    for pattern, question_type in QUESTION_TYPE_PATTERNS:
        if pattern in lowered:
            return question_type
    return None


def _answer_key_after(text: str, position: int) -> re.Match[str] | None:
    return ANSWER_KEY_HEADER.search(text, position)


def _content_end(text: str, start: int) -> int:
    ends = [len(text)]
    key = _answer_key_after(text, start)
    if key:
        ends.append(key.start())
    page_break = PAGE_BREAK.search(text, start)
    if page_break:
        ends.append(page_break.start())
    return min(ends)


def _sections_from(text: str, start: int, strategy: str) -> ExamSections | None:
    content = text[start : _content_end(text, start)].strip()
    if not content:
        return None
    key = _answer_key_after(text, start)
    answer_key = text[key.end() :].strip() if key else ""
    return ExamSections(content=content, answer_key=answer_key, strategy=strategy)


def locate_sections(text: str) -> ExamSections:
    """Locate the exam content and answer key regions.

    Strategies, from strictest to loosest:

    1. ``strict``: a ``----Exam Content----`` delimiter.
    2. ``label``: a line labelled ``Exam Content`` (``Exam Content:``,
       ``## Exam Content``...).
    3. ``type_header``: everything from the first question-type header.

    The content ends at the answer-key label or a ``[PAGE BREAK]`` marker.

    Raises:
        ParseError: If no strategy locates any content.
    """
    strict = STRICT_CONTENT_HEADER.search(text)
    if strict:
        sections = _sections_from(text, strict.end(), "strict")
        if sections:
            return sections

    label = LOOSE_CONTENT_HEADER.search(text)
    if label:
        sections = _sections_from(text, label.end(), "label")
        if sections:
            return sections

    offset = 0
    for line in text.splitlines(keepends=True):
        if detect_question_type(line):
            sections = _sections_from(text, offset, "type_header")
            if sections:
                return sections
            break
        offset += len(line)

    msg = "Could not locate exam content section"
    raise ParseError(msg)


def split_by_question_type(content: str) -> list[tuple[QuestionType, str]]:
    """Group content lines under the most recent question-type header.

    Lines before the first header are dropped.
    """
    sections: list[tuple[QuestionType, str]] = []
    current_type: QuestionType | None = None
    current_lines: list[str] = []

    for line in content.splitlines():
        detected = detect_question_type(line)
        if detected:
            if current_type and current_lines:
                sections.append((current_type, "\n".join(current_lines).strip()))
            current_type = detected
            current_lines = []
        elif current_type:
            current_lines.append(line)

    if current_type and current_lines:
        sections.append((current_type, "\n".join(current_lines).strip()))

    return [(question_type, text) for question_type, text in sections if text]


def split_by_question_number(section: str) -> list[tuple[int, str]]:
    """Split a typed section into one block per ``<number>.`` marker."""
    blocks: list[tuple[int, list[str]]] = []

    for line in section.splitlines():
        marker = QUESTION_MARKER.match(line)
        if marker:
            blocks.append((int(marker.group(1)), [marker.group(2) or ""]))
        elif blocks:
            blocks[-1][1].append(line)

    return [(number, "\n".join(lines).strip()) for number, lines in blocks]


def parse_question_block(number: int, question_type: QuestionType, text: str) -> tuple[Question, str] | None:
    """Parse one numbered block into a question.

    The first non-empty line is the prompt. For multiple choice, lettered
    lines become options in letter order; other types keep continuation
    lines as part of the prompt. An ``Answer: ...`` line is returned
    separately as an inline answer.

    Returns:
        The question (without answer) and the inline answer text, or None
        for an empty block.
    """
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    inline_answer = ""
    prompt_lines: list[str] = []
    options: dict[str, str] = {}

    for line in lines:
        answer = INLINE_ANSWER.match(line)
        if answer:
            inline_answer = answer.group(1).strip()
            continue

        if question_type is QuestionType.MULTIPLE_CHOICE:
            option = OPTION_LINE.match(line)
            if option and prompt_lines:
                options.setdefault(option.group(1).upper(), option.group(2).strip())
                continue
            if options:
                continue

        prompt_lines.append(line)

    if not prompt_lines:
        return None

    if question_type is QuestionType.MULTIPLE_CHOICE:
        prompt = " ".join(prompt_lines)
    else:
        prompt = "\n".join(prompt_lines)

    question = Question(
        id=f"q-{number}",
        type=question_type,
        difficulty=DifficultyLevel.MODERATE,
        prompt=prompt,
        options=[options[letter] for letter in sorted(options)],
    )
    return question, inline_answer


def parse_answer_key(text: str) -> dict[int, str]:
    """Map question numbers to answer text from ``<n>[.:)] <answer>`` lines."""
    answers: dict[int, str] = {}
    for line in text.splitlines():
        match = ANSWER_KEY_LINE.match(line)
        if match:
            answers.setdefault(int(match.group(1)), match.group(2))
    return answers


def _normalize_answer(question_type: QuestionType, answer: str) -> str | list[str]:
    if question_type is QuestionType.MATCHING:
        parts = [part for part in ANSWER_PART_SEPARATOR.split(answer) if part]
        if len(parts) > 1:
            return parts
    return answer


def count_numbered_items(text: str) -> int:
    """Count lines starting with a ``<number>.`` marker."""
    return len(NUMBERED_LINE.findall(text))


def create_placeholder_questions(text: str, limit: int) -> list[Question]:
    """Create stand-in questions for a response that could not be parsed.

    One placeholder per numbered line, capped at `limit`. Every placeholder
    is flagged for manual review.

    Args:
        text: The raw response that failed to parse.
        limit: Maximum number of placeholders.

    Returns:
        Placeholder multiple choice questions.
    """
    count = min(count_numbered_items(text), max(0, limit))
    return [
        Question(
            id=f"q-placeholder-{index}",
            type=QuestionType.MULTIPLE_CHOICE,
            difficulty=DifficultyLevel.MODERATE,
            prompt=f"Question {index} (response parsing failed, please review manually)",
            options=list(PLACEHOLDER_OPTIONS),
            answer="A",
            explanation="Parsing failed: the raw response should be reviewed",
            needs_review=True,
        )
        for index in range(1, count + 1)
    ]


class ExamParser:
    """Parses generated exam text into structured questions.

    Example:
        >>> parser = ExamParser()
        >>> parsed = parser.parse_document(response_text)
        >>> parsed.topic, len(parsed.questions)
        ('Cell Biology', 10)
    """

    def parse(self, text: str) -> list[Question]:
        """Parse generated exam text into questions.

        Args:
            text: Raw LLM response.

        Returns:
            Questions in document order with answers attached where found.

        Raises:
            ParseError: If no content section or no questions can be found.
        """
        return self.parse_document(text).questions

    def parse_document(self, text: str) -> ParsedExam:
        """Parse generated exam text, keeping the topic and strategy used.

        Raises:
            ParseError: If no content section or no questions can be found.
        """
        sections = locate_sections(text)
        answers = parse_answer_key(sections.answer_key)

        questions: list[Question] = []
        for question_type, section in split_by_question_type(sections.content):
            for number, block in split_by_question_number(section):
                parsed = parse_question_block(number, question_type, block)
                if parsed is None:
                    continue
                question, inline_answer = parsed
                answer = answers.get(number) or inline_answer
                if answer:
                    question = question.model_copy(update={"answer": _normalize_answer(question_type, answer)})
                questions.append(question)

        if not questions:
            msg = f"No questions found in exam content (strategy: {sections.strategy})"
            raise ParseError(msg)

        unanswered = sum(1 for q in questions if not q.has_answer)
        if unanswered:
            logger.warning(f"{unanswered} of {len(questions)} parsed questions have no answer")
        logger.debug(f"Parsed {len(questions)} questions using '{sections.strategy}' sections")

        return ParsedExam(topic=extract_topic(text), questions=questions, strategy=sections.strategy)
