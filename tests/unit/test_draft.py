"""Unit tests for the run-scoped question draft."""

from __future__ import annotations

from examforge.core.draft import ExamDraft, fingerprint
from examforge.core.types import Question, QuestionType
from examforge.evaluators.models import QualityMetrics


def make_question(question_id: str, prompt: str, question_type: QuestionType = QuestionType.SHORT_ANSWER) -> Question:
    return Question(id=question_id, type=question_type, prompt=prompt, answer="answer")


class TestFingerprint:
    """Tests for dedup keys."""

    def test_normalizes_case_and_punctuation(self) -> None:
        """Test that case, punctuation and spacing do not matter."""
        a = make_question("q-1", "What is DNA?")
        b = make_question("q-2", "what  is,  dna")
        assert fingerprint(a) == fingerprint(b) == "shortAnswer:what is dna"

    def test_first_eight_words(self) -> None:
        """Test that only the first eight words count."""
        a = make_question("q-1", "one two three four five six seven eight nine")
        b = make_question("q-2", "one two three four five six seven eight ten")
        assert fingerprint(a) == fingerprint(b)

    def test_type_is_part_of_key(self) -> None:
        """Test that identical wording of different types differs."""
        a = make_question("q-1", "Mitochondria produce energy", QuestionType.TRUE_FALSE)
        b = make_question("q-2", "Mitochondria produce energy", QuestionType.IDENTIFICATION)
        assert fingerprint(a) != fingerprint(b)


class TestExamDraft:
    """Tests for ExamDraft."""

    def test_add_rejects_duplicate(self) -> None:
        """Test that a repeated fingerprint is dropped."""
        draft = ExamDraft()

        assert draft.add(make_question("q-1", "What is DNA?")) is True
        assert draft.add(make_question("q-7", "What is DNA")) is False
        assert draft.count == 1

    def test_adding_same_list_twice_is_idempotent(self) -> None:
        """Test that re-adding accepted questions changes nothing."""
        questions = [make_question("q-1", "What is DNA?"), make_question("q-2", "What is RNA?")]
        draft = ExamDraft()

        assert draft.add_all(questions) == 2
        assert draft.add_all(questions) == 0
        assert [q.id for q in draft.accepted_questions] == ["q-1", "q-2"]
        assert len(draft.seen_fingerprints) == 2

    def test_review_placeholders_not_deduplicated(self) -> None:
        """Test that identically worded placeholders from two batches are both kept."""
        placeholder = make_question("q-placeholder-1", "Question 1 (response parsing failed)").model_copy(
            update={"needs_review": True}
        )
        draft = ExamDraft()

        assert draft.add(placeholder) is True
        assert draft.add(placeholder) is True
        assert [q.id for q in draft.accepted_questions] == ["q-placeholder-1", "q-placeholder-1-2"]
        assert draft.seen_fingerprints == set()

    def test_colliding_ids_rekeyed(self) -> None:
        """Test that a second batch's q-1 gets a fresh id."""
        draft = ExamDraft()
        draft.add(make_question("q-1", "What is DNA?"))
        draft.add(make_question("q-1", "What is RNA?"))
        draft.add(make_question("q-1", "What is ATP?"))

        assert [q.id for q in draft.accepted_questions] == ["q-1", "q-1-2", "q-1-3"]

    def test_add_all_limit(self) -> None:
        """Test that adding stops at the limit."""
        draft = ExamDraft()
        draft.add(make_question("q-0", "Already accepted question"))

        added = draft.add_all([make_question(f"q-{i}", f"Question number {i}") for i in range(1, 6)], limit=3)

        assert added == 2
        assert draft.count == 3

    def test_add_all_limit_skips_duplicates(self) -> None:
        """Test that duplicates do not use up the limit."""
        draft = ExamDraft()
        questions = [
            make_question("q-1", "What is DNA?"),
            make_question("q-2", "What is DNA?"),
            make_question("q-3", "What is RNA?"),
        ]

        assert draft.add_all(questions, limit=2) == 2
        assert [q.prompt for q in draft.accepted_questions] == ["What is DNA?", "What is RNA?"]

    def test_record_quality(self) -> None:
        """Test that batch metrics are kept in order."""
        draft = ExamDraft()
        metrics = QualityMetrics(
            overall_score=0.8,
            uniqueness=1.0,
            accuracy=0.8,
            difficulty_accuracy=0.6,
            coverage=0.7,
            is_valid=True,
        )

        draft.record_quality(metrics)

        assert draft.batch_quality_records == [metrics]
