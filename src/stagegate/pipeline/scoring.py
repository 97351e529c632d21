"""Project score assigned when the final stage completes.

The only implementation here is a placeholder. It does not assess writing
quality: every stage earns a fixed credit, higher when the stage received
feedback from an evaluation, and the project score is the mean. Swap in a
different ``ProjectScorer`` to change scoring without touching the engine.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from stagegate.pipeline.config import (
    DEFAULT_CREDIT_WITH_FEEDBACK,
    DEFAULT_CREDIT_WITHOUT_FEEDBACK,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from stagegate.models.progress import StageProgress
    from stagegate.pipeline.config import ScoringConfig
    from stagegate.pipeline.registry import StageRegistry


class ProjectScorer(Protocol):
    """Protocol for computing a completed project's overall score."""

    def score(self, registry: StageRegistry, stages: Mapping[str, StageProgress]) -> float:
        """Score a project.

        Args:
            registry: Stage registry defining which stages exist.
            stages: The project's stage records keyed by stage id.

        Returns:
            Overall score on a 0-10 scale.
        """
        ...


class FeedbackCreditScorer:
    """Placeholder scorer: mean of a fixed per-stage credit.

    A stage with feedback earns ``with_feedback``; a stage without feedback
    (never evaluated, or missing) earns ``without_feedback``.
    """

    def __init__(
        self,
        with_feedback: float = DEFAULT_CREDIT_WITH_FEEDBACK,
        without_feedback: float = DEFAULT_CREDIT_WITHOUT_FEEDBACK,
    ) -> None:
        self.with_feedback = with_feedback
        self.without_feedback = without_feedback

    @classmethod
    def from_config(cls, config: ScoringConfig) -> FeedbackCreditScorer:
        """Build a scorer from the ``scoring`` section of stagegate.yaml."""
        return cls(with_feedback=config.with_feedback, without_feedback=config.without_feedback)

    def score(self, registry: StageRegistry, stages: Mapping[str, StageProgress]) -> float:
        credits = []
        for stage_id in registry.stage_ids:
            progress = stages.get(stage_id)
            has_feedback = progress is not None and progress.feedback is not None
            credits.append(self.with_feedback if has_feedback else self.without_feedback)
        return round(sum(credits) / len(credits), 1)
