"""Tests for requirement evaluation."""

from __future__ import annotations

import pytest

from stagegate.models.evaluation import WORD_LIMIT_REQUIREMENT_ID, EvaluationContext
from stagegate.models.requirements import (
    KeywordRequirement,
    StructureRequirement,
    UnknownRequirement,
    WordCountRequirement,
)
from stagegate.validation.evaluator import (
    ADVANCE_MESSAGE,
    COMPLETION_MESSAGE,
    INSUFFICIENT_MESSAGE,
    ContentMetrics,
    check_word_budget,
    count_paragraphs,
    count_words,
    evaluate_requirement,
    evaluate_stage,
    select_feedback,
)


def _words(count: int) -> str:
    return " ".join(["word"] * count)


# --- Metrics ---


class TestCountWords:
    """Tests for count_words."""

    def test_simple_sentence(self) -> None:
        """Words are separated by whitespace."""
        assert count_words("word word word") == 3

    def test_empty_string_is_zero(self) -> None:
        """Empty content counts as zero words, not one."""
        assert count_words("") == 0

    def test_whitespace_only_is_zero(self) -> None:
        """Whitespace-only content counts as zero words."""
        assert count_words("   \n\t  ") == 0

    def test_runs_of_whitespace(self) -> None:
        """Leading, trailing and repeated whitespace do not add words."""
        assert count_words("  one   two\n\nthree  ") == 3


class TestCountParagraphs:
    """Tests for count_paragraphs."""

    def test_blank_line_separates(self) -> None:
        """Paragraphs are separated by blank lines."""
        assert count_paragraphs("first\n\nsecond\n\n\n  third") == 3

    def test_single_newline_does_not_split(self) -> None:
        """A single newline stays within one paragraph."""
        assert count_paragraphs("line one\nline two") == 1

    def test_whitespace_blank_line_separates(self) -> None:
        """A line containing only spaces counts as blank."""
        assert count_paragraphs("first\n   \nsecond") == 2

    def test_empty_content(self) -> None:
        """Blank content has no paragraphs."""
        assert count_paragraphs("") == 0
        assert count_paragraphs("\n\n\n") == 0


# --- Word count ---


class TestWordCountRequirement:
    """Tests for word_count evaluation."""

    @pytest.mark.parametrize(
        ("min_value", "max_value", "word_count", "expected"),
        [
            (15, 40, 15, True),
            (15, 40, 40, True),
            (15, 40, 14, False),
            (15, 40, 41, False),
            (None, 5, 0, True),
            (None, 5, 6, False),
            (10, None, 500, True),
            (10, None, 9, False),
            (None, None, 0, True),
            (0, 0, 0, True),
            (0, 0, 1, False),
        ],
    )
    def test_bounds(
        self,
        min_value: int | None,
        max_value: int | None,
        word_count: int,
        expected: bool,
    ) -> None:
        """Pass iff min <= words <= max, with absent bounds permissive."""
        req = WordCountRequirement(id="length", min_value=min_value, max_value=max_value)
        outcome = evaluate_requirement(req, _words(word_count))

        assert outcome.passed is expected

    def test_too_short_message(self) -> None:
        """Short content is reported as too short."""
        req = WordCountRequirement(id="thesis_length", min_value=15, max_value=40)
        outcome = evaluate_requirement(req, "word word word")

        assert outcome.message == "Too short: 3 words (minimum 15)"

    def test_too_long_message(self) -> None:
        """Long content is reported as too long."""
        req = WordCountRequirement(id="length", max_value=2)
        outcome = evaluate_requirement(req, "one two three")

        assert outcome.message == "Too long: 3 words (maximum 2)"

    def test_empty_content_fails_positive_minimum(self) -> None:
        """Empty content never satisfies a positive minimum."""
        req = WordCountRequirement(id="length", min_value=1)
        outcome = evaluate_requirement(req, "")

        assert outcome.passed is False
        assert "0 words" in outcome.message


# --- Keywords ---


class TestKeywordRequirement:
    """Tests for contains_keywords evaluation."""

    def test_any_keyword_is_enough(self) -> None:
        """One matching keyword passes the requirement."""
        req = KeywordRequirement(id="arguable", required_keywords=["argu", "because"])
        outcome = evaluate_requirement(req, "I stayed home because it rained.")

        assert outcome.passed is True
        assert outcome.message == "Found keywords: because"

    def test_case_insensitive_substring(self) -> None:
        """Keywords match case-insensitively inside longer words."""
        req = KeywordRequirement(id="arguable", required_keywords=["ARGU"])
        outcome = evaluate_requirement(req, "This essay Argues a point.")

        assert outcome.passed is True

    def test_no_match_fails(self) -> None:
        """Content without any keyword fails and lists the keywords."""
        req = KeywordRequirement(id="arguable", required_keywords=["claim", "position"])
        outcome = evaluate_requirement(req, "Nothing to see here.")

        assert outcome.passed is False
        assert outcome.message == "Missing required keywords: claim, position"

    @pytest.mark.parametrize("keywords", [None, []])
    def test_empty_keywords_pass(self, keywords: list[str] | None) -> None:
        """Absent or empty keyword lists auto-pass."""
        req = KeywordRequirement(id="arguable", required_keywords=keywords)
        outcome = evaluate_requirement(req, "")

        assert outcome.passed is True


# --- Structure and unknown kinds ---


class TestStructureRequirement:
    """Tests for structure_check evaluation."""

    def test_enough_paragraphs(self) -> None:
        """Meeting the paragraph minimum passes."""
        req = StructureRequirement(id="structure", min_paragraphs=2)
        outcome = evaluate_requirement(req, "one\n\ntwo")

        assert outcome.passed is True

    def test_too_few_paragraphs(self) -> None:
        """Too few paragraphs fails with a count."""
        req = StructureRequirement(id="structure", min_paragraphs=3)
        outcome = evaluate_requirement(req, "one\n\ntwo")

        assert outcome.passed is False
        assert outcome.message == "Needs more paragraphs: 2 (minimum 3)"

    def test_missing_minimum_passes(self) -> None:
        """Without min_paragraphs any content passes."""
        req = StructureRequirement(id="structure")
        assert evaluate_requirement(req, "").passed is True


class TestUnknownRequirement:
    """Tests for unrecognized requirement kinds."""

    def test_unknown_kind_passes(self) -> None:
        """Unknown kinds never block progression."""
        req = UnknownRequirement(id="quality", kind="ai_score")
        outcome = evaluate_requirement(req, "")

        assert outcome.passed is True
        assert outcome.message == "Unknown requirement type: ai_score"

    def test_raw_unknown_kind_in_stage(self) -> None:
        """Raw requirement dicts with unknown kinds pass during stage evaluation."""
        result = evaluate_stage("text", [{"id": "quality", "type": "ai_score"}])

        assert result.passed_requirement_ids == ["quality"]
        assert result.is_completed is True

    def test_null_description_does_not_skip_check(self) -> None:
        """A null description leaves the word count check in force."""
        requirement = {"id": "len", "type": "word_count", "minValue": 50, "description": None}
        result = evaluate_stage("too short", [requirement])

        assert result.failed_requirement_ids == ["len"]
        assert result.passed_requirement_ids == []

    def test_malformed_known_kind_passes(self) -> None:
        """A known kind with unusable parameters is skipped, not failed."""
        result = evaluate_stage("", [{"id": "length", "type": "word_count", "minValue": "lots"}])

        assert result.passed_requirement_ids == ["length"]
        assert "could not be checked" in result.detailed_feedback[0]


# --- Budget ---


class TestWordBudget:
    """Tests for check_word_budget."""

    def test_no_limit(self) -> None:
        """Without a limit there is no budget outcome."""
        context = EvaluationContext(counted_words_excluding_this_stage=10)
        projected, outcome = check_word_budget(50, context)

        assert projected == 60
        assert outcome is None

    def test_over_limit(self) -> None:
        """Projected totals above the limit fail."""
        context = EvaluationContext(word_limit=500, counted_words_excluding_this_stage=470)
        projected, outcome = check_word_budget(50, context)

        assert projected == 520
        assert outcome is not None
        assert outcome.passed is False
        assert outcome.requirement_id == WORD_LIMIT_REQUIREMENT_ID

    def test_at_limit_passes(self) -> None:
        """Reaching the limit exactly is allowed."""
        context = EvaluationContext(word_limit=500, counted_words_excluding_this_stage=450)
        _, outcome = check_word_budget(50, context)

        assert outcome is not None
        assert outcome.passed is True

    def test_uncounted_stage_is_not_checked(self) -> None:
        """Stages outside the budget add nothing and are never checked."""
        context = EvaluationContext(
            word_limit=10,
            counted_words_excluding_this_stage=8,
            counts_toward_budget=False,
        )
        projected, outcome = check_word_budget(1000, context)

        assert projected == 8
        assert outcome is None


# --- Stage evaluation ---


class TestEvaluateStage:
    """Tests for evaluate_stage."""

    def test_short_thesis_fails(self) -> None:
        """Three words against a 15-40 word requirement fails as too short."""
        req = WordCountRequirement(id="thesis_length", min_value=15, max_value=40)
        result = evaluate_stage("word word word", [req])

        assert result.failed_requirement_ids == ["thesis_length"]
        assert result.is_completed is False
        assert "too short" in result.detailed_feedback[0].lower()

    def test_keyword_found_is_listed(self) -> None:
        """Found keywords appear in the itemized feedback."""
        req = KeywordRequirement(
            id="thesis_arguable",
            required_keywords=["argu", "because"],
            description="Thesis must take a clear position",
        )
        result = evaluate_stage("We should act because time is short.", [req])

        assert result.passed_requirement_ids == ["thesis_arguable"]
        assert result.detailed_feedback == [
            "Thesis must take a clear position: Found keywords: because"
        ]

    def test_final_stage_completion_message(self) -> None:
        """Passing the final stage yields the completion message."""
        req = WordCountRequirement(id="length", min_value=1)
        final = evaluate_stage("done", [req], EvaluationContext(is_final_stage=True))
        middle = evaluate_stage("done", [req], EvaluationContext(is_final_stage=False))

        assert final.is_completed is True
        assert final.feedback == COMPLETION_MESSAGE
        assert final.is_last_stage_completed is True
        assert middle.feedback == ADVANCE_MESSAGE
        assert middle.is_last_stage_completed is False

    def test_budget_failure_blocks_passing_requirements(self) -> None:
        """Going from 480 to 520 counted words over a 500 limit fails the stage."""
        req = WordCountRequirement(id="body_length", min_value=10)
        # Other stages hold 470 counted words; this stage grows from 10 to 50
        context = EvaluationContext(word_limit=500, counted_words_excluding_this_stage=470)
        result = evaluate_stage(_words(50), [req], context)

        assert result.passed_requirement_ids == ["body_length"]
        assert result.failed_requirement_ids == [WORD_LIMIT_REQUIREMENT_ID]
        assert result.is_completed is False
        assert result.over_word_limit is True
        assert result.counted_words == 520
        assert result.detailed_feedback[0] == "Exceeds word limit: 520 > 500"

    def test_empty_content(self) -> None:
        """Empty content reports zero words and fails a positive minimum."""
        req = WordCountRequirement(id="length", min_value=1)
        result = evaluate_stage("", [req])

        assert result.word_count == 0
        assert result.character_count == 0
        assert result.failed_requirement_ids == ["length"]
        assert result.feedback == INSUFFICIENT_MESSAGE

    @pytest.mark.parametrize("content", [None, 42, ["text"], b"bytes"])
    def test_non_string_content_is_error_result(self, content: object) -> None:
        """Non-string content yields an error result instead of raising."""
        result = evaluate_stage(content, [WordCountRequirement(id="length", min_value=1)])

        assert result.is_error is True
        assert result.passed_requirement_ids == []
        assert result.failed_requirement_ids == []
        assert result.is_completed is False
        assert result.error == "Content is required and must be a string"

    def test_partial_progress_message(self) -> None:
        """Mixed outcomes report passed/total."""
        reqs = [
            WordCountRequirement(id="length", min_value=1),
            KeywordRequirement(id="keyword", required_keywords=["missing"]),
        ]
        result = evaluate_stage("some text", reqs)

        assert result.feedback.startswith("Good progress! 1 of 2 requirements met.")

    def test_feedback_preserves_requirement_order(self) -> None:
        """Itemized feedback follows requirement order."""
        reqs = [
            KeywordRequirement(id="b", required_keywords=["zzz"], description="Second"),
            WordCountRequirement(id="a", min_value=1, description="First"),
        ]
        result = evaluate_stage("text", reqs)

        assert [line.split(":")[0] for line in result.detailed_feedback] == ["Second", "First"]

    def test_idempotent(self) -> None:
        """Evaluating the same input twice gives the same id sets."""
        reqs = [
            WordCountRequirement(id="length", min_value=3),
            KeywordRequirement(id="keyword", required_keywords=["because"]),
            StructureRequirement(id="structure", min_paragraphs=2),
        ]
        content = "one two three\n\nbecause four"
        first = evaluate_stage(content, reqs)
        second = evaluate_stage(content, reqs)

        assert set(first.passed_requirement_ids) == set(second.passed_requirement_ids)
        assert set(first.failed_requirement_ids) == set(second.failed_requirement_ids)

    def test_no_requirements_passes(self) -> None:
        """A stage without requirements is complete."""
        result = evaluate_stage("anything", [])

        assert result.is_completed is True
        assert result.feedback == ADVANCE_MESSAGE


class TestSelectFeedback:
    """Tests for aggregate feedback priority."""

    def test_final_and_all_passed(self) -> None:
        assert select_feedback(2, 2, is_final_stage=True) == COMPLETION_MESSAGE

    def test_final_but_nothing_passed(self) -> None:
        """A failing final stage falls through to the usual messages."""
        assert select_feedback(0, 2, is_final_stage=True) == INSUFFICIENT_MESSAGE

    def test_progress(self) -> None:
        assert "3 of 4" in select_feedback(3, 4, is_final_stage=False)


def test_content_metrics_measure() -> None:
    """ContentMetrics collects all counts in one pass."""
    metrics = ContentMetrics.measure("one two\n\nthree")

    assert metrics.word_count == 3
    assert metrics.character_count == len("one two\n\nthree")
    assert metrics.paragraph_count == 2
