"""Counted-word accounting across a project's stages.

Only stages whose definition has ``counts_toward_budget`` contribute.
Every function reads the ``ProjectState`` snapshot it is given and nothing
else, so callers must pass a consistent snapshot.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from stagegate.validation.evaluator import count_words

if TYPE_CHECKING:
    from stagegate.models.progress import ProjectState
    from stagegate.pipeline.registry import StageRegistry


def counted_words(
    state: ProjectState,
    registry: StageRegistry,
    exclude_stage_id: str | None = None,
) -> int:
    """Sum of word counts over the project's budgeted stages.

    Args:
        state: Project snapshot.
        registry: Registry deciding which stages count.
        exclude_stage_id: Stage whose contribution to leave out.
    """
    return sum(
        count_words(progress.content)
        for stage_id, progress in state.stages.items()
        if stage_id != exclude_stage_id and registry.counts_toward_budget(stage_id)
    )


def projected_counted_words(
    state: ProjectState,
    registry: StageRegistry,
    stage_id: str,
    content: str,
) -> int:
    """Counted total if ``stage_id``'s content were replaced by ``content``."""
    others = counted_words(state, registry, exclude_stage_id=stage_id)
    if not registry.counts_toward_budget(stage_id):
        return others
    return others + count_words(content)


def exceeds_limit(total: int, word_limit: int | None) -> bool:
    """True if ``total`` is over the limit; no limit is never exceeded."""
    return word_limit is not None and total > word_limit
