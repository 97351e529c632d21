"""Requirement evaluation for stage content."""

from stagegate.validation.evaluator import (
    ADVANCE_MESSAGE,
    COMPLETION_MESSAGE,
    INSUFFICIENT_MESSAGE,
    ContentMetrics,
    RequirementOutcome,
    check_word_budget,
    count_paragraphs,
    count_words,
    evaluate_requirement,
    evaluate_stage,
    select_feedback,
)

__all__ = [
    "ADVANCE_MESSAGE",
    "COMPLETION_MESSAGE",
    "INSUFFICIENT_MESSAGE",
    "ContentMetrics",
    "RequirementOutcome",
    "check_word_budget",
    "count_paragraphs",
    "count_words",
    "evaluate_requirement",
    "evaluate_stage",
    "select_feedback",
]
