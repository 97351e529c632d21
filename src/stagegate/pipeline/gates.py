"""Gate decision for stage transitions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stagegate.models.evaluation import EvaluationResult
    from stagegate.pipeline.registry import StageRegistry


@dataclass(frozen=True)
class StageAdvance:
    """Whether an evaluation lets the writer move on, and to which stage.

    Attributes:
        next_stage_id: Successor of the evaluated stage, or None if it is
            the final stage (or unknown to the registry).
        should_unlock: True when the successor should be unlocked now.
    """

    next_stage_id: str | None
    should_unlock: bool


def advance_stage(
    registry: StageRegistry,
    current_stage_id: str,
    result: EvaluationResult,
) -> StageAdvance:
    """Decide the transition after evaluating ``current_stage_id``.

    Pure: consults the registry for the successor and never touches
    project state. A successor is unlocked only when the evaluation
    completed the stage without an input error.

    Args:
        registry: Stage registry.
        current_stage_id: The stage that was evaluated.
        result: Its evaluation result.

    Returns:
        The successor and whether to unlock it.
    """
    next_stage_id = registry.successor(current_stage_id)
    should_unlock = next_stage_id is not None and result.is_completed and not result.is_error
    return StageAdvance(next_stage_id=next_stage_id, should_unlock=should_unlock)
