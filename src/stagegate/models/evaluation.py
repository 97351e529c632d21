"""Evaluation inputs and outputs shared by the evaluator, engine and HTTP handler."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field

WORD_LIMIT_REQUIREMENT_ID = "word_limit"


@dataclass(frozen=True)
class EvaluationContext:
    """Project-level facts the evaluator needs besides the stage content.

    Attributes:
        word_limit: Global ceiling on counted words, or None for unbounded.
        counted_words_excluding_this_stage: Sum of counted words across the
            project's other budgeted stages.
        counts_toward_budget: Whether this stage's words count toward the limit.
        is_final_stage: Whether this is the last stage in the sequence.
    """

    word_limit: int | None = None
    counted_words_excluding_this_stage: int = 0
    counts_toward_budget: bool = True
    is_final_stage: bool = False


class EvaluationResult(BaseModel):
    """Outcome of evaluating one stage's content against its requirements.

    ``passed_requirement_ids`` and ``failed_requirement_ids`` preserve the
    requirement order. When a word limit applies, the synthetic
    ``word_limit`` id appears in one of them.
    """

    passed_requirement_ids: list[str] = Field(default_factory=list)
    failed_requirement_ids: list[str] = Field(default_factory=list)
    is_completed: bool = False
    feedback: str = ""
    detailed_feedback: list[str] = Field(default_factory=list)
    word_count: int = 0
    character_count: int = 0
    paragraph_count: int = 0
    counted_words: int | None = None
    over_word_limit: bool = False
    is_final_stage: bool = False
    error: str | None = None

    @property
    def is_error(self) -> bool:
        """True when evaluation was rejected because of invalid input."""
        return self.error is not None

    @property
    def is_last_stage_completed(self) -> bool:
        """True when the final stage was just completed."""
        return self.is_final_stage and self.is_completed

    @classmethod
    def error_result(cls, message: str) -> EvaluationResult:
        """Empty result carrying an input validation error."""
        return cls(
            feedback="Error checking requirements. Please try again.",
            detailed_feedback=[f"Error: {message}"],
            error=message,
        )

    def to_wire(self) -> dict[str, Any]:
        """Response payload in the camelCase shape HTTP clients expect."""
        payload: dict[str, Any] = {
            "passedRequirements": list(self.passed_requirement_ids),
            "failedRequirements": list(self.failed_requirement_ids),
            "isCompleted": self.is_completed,
            "feedback": self.feedback,
            "detailedFeedback": list(self.detailed_feedback),
            "wordCount": self.word_count,
            "characterCount": self.character_count,
            "overWordLimit": self.over_word_limit,
            "isLastStageCompleted": self.is_last_stage_completed,
        }
        if self.counted_words is not None:
            payload["countedWords"] = self.counted_words
        if self.error is not None:
            payload["error"] = self.error
        return payload
