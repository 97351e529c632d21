"""Requirement evaluation for stage content.

Pure, deterministic functions that decide whether a stage's content passes
its requirements and explain the outcome in writer-facing text. Only
mechanical signals are evaluated: word, character and paragraph counts,
and keyword presence.

Policy for data the evaluator does not understand is permissive: unknown
requirement kinds, malformed requirement records and missing optional
parameters all pass. The one fatal input is content that is not a string,
which yields an error result rather than an exception.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from stagegate.models.evaluation import (
    WORD_LIMIT_REQUIREMENT_ID,
    EvaluationContext,
    EvaluationResult,
)
from stagegate.models.requirements import (
    KeywordRequirement,
    StructureRequirement,
    UnknownRequirement,
    WordCountRequirement,
    parse_requirement,
)
from stagegate.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable

    from stagegate.models.requirements import RequirementSpec

log = get_logger(__name__)

COMPLETION_MESSAGE = (
    "Excellent! Your project is complete and meets all requirements. Congratulations!"
)
ADVANCE_MESSAGE = "All requirements met! You can proceed to the next stage."
INSUFFICIENT_MESSAGE = "Try adding more content and ensure you address all requirements."

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


def count_words(content: str) -> int:
    """Number of whitespace-separated words; blank content has 0."""
    return len(content.split())


def count_paragraphs(content: str) -> int:
    """Number of non-blank segments separated by one or more blank lines."""
    return sum(1 for segment in _PARAGRAPH_BREAK.split(content) if segment.strip())


@dataclass(frozen=True)
class ContentMetrics:
    """Counts derived once from the content and shared by every check."""

    word_count: int
    character_count: int
    paragraph_count: int

    @classmethod
    def measure(cls, content: str) -> ContentMetrics:
        return cls(
            word_count=count_words(content),
            character_count=len(content),
            paragraph_count=count_paragraphs(content),
        )


@dataclass(frozen=True)
class RequirementOutcome:
    """Result of checking one requirement.

    Attributes:
        requirement_id: Id of the checked requirement.
        passed: Whether the requirement is satisfied.
        message: Writer-facing explanation.
        label: Requirement description used to prefix itemized feedback.
    """

    requirement_id: str
    passed: bool
    message: str
    label: str = ""

    @property
    def feedback_line(self) -> str:
        return f"{self.label}: {self.message}" if self.label else self.message


# ---------------------------------------------------------------------------
# Per-kind checks
# ---------------------------------------------------------------------------


def _check_word_count(req: WordCountRequirement, metrics: ContentMetrics) -> tuple[bool, str]:
    minimum = req.min_value if req.min_value is not None else 0
    maximum = req.max_value
    words = metrics.word_count

    if words < minimum:
        return False, f"Too short: {words} words (minimum {minimum})"
    if maximum is not None and words > maximum:
        return False, f"Too long: {words} words (maximum {maximum})"
    return True, f"Good length: {words} words"


def _check_keywords(req: KeywordRequirement, content: str) -> tuple[bool, str]:
    keywords = [k for k in (req.required_keywords or []) if k]
    if not keywords:
        return True, "No keywords specified to check"

    content_lower = content.lower()
    found = [k for k in keywords if k.lower() in content_lower]
    if found:
        return True, f"Found keywords: {', '.join(found)}"
    return False, f"Missing required keywords: {', '.join(keywords)}"


def _check_structure(req: StructureRequirement, metrics: ContentMetrics) -> tuple[bool, str]:
    minimum = req.min_paragraphs if req.min_paragraphs is not None else 0
    paragraphs = metrics.paragraph_count
    if paragraphs >= minimum:
        return True, f"Good structure: {paragraphs} paragraphs"
    return False, f"Needs more paragraphs: {paragraphs} (minimum {minimum})"


def _check_unknown(req: UnknownRequirement) -> tuple[bool, str]:
    if req.is_malformed:
        log.warning(
            "malformed_requirement_skipped",
            requirement_id=req.id,
            declared_kind=req.declared_kind,
            problem=req.problem,
        )
        return True, f"Requirement could not be checked and was skipped ({req.problem})"
    log.warning("unknown_requirement_kind", requirement_id=req.id, kind=req.kind)
    return True, f"Unknown requirement type: {req.kind}"


def evaluate_requirement(
    requirement: RequirementSpec,
    content: str,
    metrics: ContentMetrics | None = None,
) -> RequirementOutcome:
    """Check one requirement against content.

    Args:
        requirement: Typed requirement.
        content: Stage content.
        metrics: Precomputed counts for ``content``; measured if omitted.

    Returns:
        The pass/fail outcome and its message.
    """
    metrics = metrics or ContentMetrics.measure(content)

    if isinstance(requirement, WordCountRequirement):
        passed, message = _check_word_count(requirement, metrics)
    elif isinstance(requirement, KeywordRequirement):
        passed, message = _check_keywords(requirement, content)
    elif isinstance(requirement, StructureRequirement):
        passed, message = _check_structure(requirement, metrics)
    else:
        passed, message = _check_unknown(requirement)

    return RequirementOutcome(
        requirement_id=requirement.id,
        passed=passed,
        message=message,
        label=requirement.label,
    )


def check_word_budget(
    word_count: int,
    context: EvaluationContext,
) -> tuple[int, RequirementOutcome | None]:
    """Project the counted-word total and check it against the word limit.

    The projection replaces this stage's previous contribution with
    ``word_count``. Stages that do not count toward the budget contribute
    nothing and are never checked.

    Returns:
        The projected counted total, and the ``word_limit`` outcome, or None
        when no limit applies to this stage.
    """
    contribution = word_count if context.counts_toward_budget else 0
    projected = context.counted_words_excluding_this_stage + contribution

    if context.word_limit is None or not context.counts_toward_budget:
        return projected, None

    if projected > context.word_limit:
        return projected, RequirementOutcome(
            requirement_id=WORD_LIMIT_REQUIREMENT_ID,
            passed=False,
            message=f"Exceeds word limit: {projected} > {context.word_limit}",
        )
    return projected, RequirementOutcome(
        requirement_id=WORD_LIMIT_REQUIREMENT_ID,
        passed=True,
        message=f"Within word limit: {projected}/{context.word_limit}",
    )


# ---------------------------------------------------------------------------
# Stage evaluation
# ---------------------------------------------------------------------------


def select_feedback(passed_count: int, total_count: int, *, is_final_stage: bool) -> str:
    """Pick the aggregate feedback message.

    Priority: final stage fully passed, then fully passed, then nothing
    passed, then a progress report.
    """
    all_passed = passed_count == total_count
    if is_final_stage and all_passed:
        return COMPLETION_MESSAGE
    if all_passed:
        return ADVANCE_MESSAGE
    if passed_count == 0:
        return INSUFFICIENT_MESSAGE
    return (
        f"Good progress! {passed_count} of {total_count} requirements met. "
        "Review the feedback below."
    )


def evaluate_stage(
    content: Any,
    requirements: Iterable[Any],
    context: EvaluationContext | None = None,
) -> EvaluationResult:
    """Evaluate stage content against its full requirement set.

    Requirements are independent; outcomes are collected in requirement
    order so itemized feedback reads in the order the stage defines. The
    global word budget is checked separately and can fail a stage whose own
    requirements all pass.

    Args:
        content: Stage text. Anything other than a ``str`` is rejected.
        requirements: Typed requirements or raw requirement mappings.
        context: Budget and position facts; defaults to no limit, not final.

    Returns:
        The evaluation result. Invalid content yields ``EvaluationResult``
        with ``error`` set and no requirement ids.
    """
    if not isinstance(content, str):
        log.info("evaluation_rejected", reason="content_not_string", type=type(content).__name__)
        return EvaluationResult.error_result("Content is required and must be a string")

    context = context or EvaluationContext()
    metrics = ContentMetrics.measure(content)

    outcomes: list[RequirementOutcome] = []
    projected, budget_outcome = check_word_budget(metrics.word_count, context)
    if budget_outcome is not None:
        outcomes.append(budget_outcome)

    for index, raw in enumerate(requirements):
        requirement = parse_requirement(raw, index)
        outcome = evaluate_requirement(requirement, content, metrics)
        log.debug(
            "requirement_evaluated",
            requirement_id=outcome.requirement_id,
            passed=outcome.passed,
            detail=outcome.message,
        )
        outcomes.append(outcome)

    passed = [o.requirement_id for o in outcomes if o.passed]
    failed = [o.requirement_id for o in outcomes if not o.passed]
    feedback = select_feedback(len(passed), len(outcomes), is_final_stage=context.is_final_stage)

    log.debug(
        "stage_evaluated",
        passed=len(passed),
        failed=len(failed),
        word_count=metrics.word_count,
        counted_words=projected,
    )

    return EvaluationResult(
        passed_requirement_ids=passed,
        failed_requirement_ids=failed,
        is_completed=not failed,
        feedback=feedback,
        detailed_feedback=[o.feedback_line for o in outcomes],
        word_count=metrics.word_count,
        character_count=metrics.character_count,
        paragraph_count=metrics.paragraph_count,
        counted_words=projected,
        over_word_limit=budget_outcome is not None and not budget_outcome.passed,
        is_final_stage=context.is_final_stage,
    )
