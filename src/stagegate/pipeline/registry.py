"""Stage definition registry.

Provides ``StageDefinition`` and the immutable ``StageRegistry`` that the
engine, the evaluator's callers and the HTTP handler consult. A registry is
built once (from a built-in catalog or a YAML file) and passed explicitly
to whoever needs it.

Usage::

    from stagegate.pipeline.catalog import essay_registry

    registry = essay_registry()
    registry.successor("thesis_statement")  # "planning"
    registry.requirements_for("no_such_stage")  # ()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from stagegate.models.requirements import RequirementSpec


@dataclass(frozen=True)
class StageDefinition:
    """Static description of one stage in the writing sequence."""

    id: str
    order: int
    title: str
    requirements: tuple[RequirementSpec, ...] = ()
    counts_toward_budget: bool = True
    description: str = ""
    help_text: str = ""
    examples: tuple[str, ...] = field(default_factory=tuple)


class StageRegistry:
    """Ordered, read-only catalog of stage definitions.

    The sequence is linear: each stage has at most one successor, the one
    with the next ``order``. Lookups of unknown stage ids never raise; they
    return None or an empty requirement set.
    """

    def __init__(self, stages: Iterable[StageDefinition]) -> None:
        """Build the registry and check its ordering.

        Raises:
            ValueError: If stage ids repeat, the catalog is empty, or the
                ``order`` values are not exactly 0..n-1.
        """
        ordered = sorted(stages, key=lambda s: s.order)
        if not ordered:
            raise ValueError("A stage registry needs at least one stage")

        by_id: dict[str, StageDefinition] = {}
        for position, stage in enumerate(ordered):
            if stage.id in by_id:
                msg = f"Duplicate stage id {stage.id!r}"
                raise ValueError(msg)
            if stage.order != position:
                msg = (
                    f"Stage {stage.id!r} has order {stage.order}, expected {position}: "
                    "orders must be contiguous and start at 0"
                )
                raise ValueError(msg)
            by_id[stage.id] = stage

        self._stages: tuple[StageDefinition, ...] = tuple(ordered)
        self._by_id = by_id

    # -- Lookup ----------------------------------------------------------------

    def get(self, stage_id: str) -> StageDefinition | None:
        """Get the definition for a stage, or None."""
        return self._by_id.get(stage_id)

    def requirements_for(self, stage_id: str) -> tuple[RequirementSpec, ...]:
        """Requirement set for a stage; unknown stages have none."""
        stage = self._by_id.get(stage_id)
        return stage.requirements if stage else ()

    def order_of(self, stage_id: str) -> int | None:
        """0-based position of a stage, or None if unknown."""
        stage = self._by_id.get(stage_id)
        return stage.order if stage else None

    def successor(self, stage_id: str) -> str | None:
        """Id of the stage that follows ``stage_id``, or None if terminal or unknown."""
        stage = self._by_id.get(stage_id)
        if stage is None or stage.order + 1 >= len(self._stages):
            return None
        return self._stages[stage.order + 1].id

    def predecessor(self, stage_id: str) -> str | None:
        """Id of the stage before ``stage_id``, or None if first or unknown."""
        stage = self._by_id.get(stage_id)
        if stage is None or stage.order == 0:
            return None
        return self._stages[stage.order - 1].id

    def is_final(self, stage_id: str) -> bool:
        """True if ``stage_id`` is the last stage in the sequence."""
        return stage_id == self._stages[-1].id

    def counts_toward_budget(self, stage_id: str) -> bool:
        """Whether a stage's words count toward the word limit; unknown stages do not."""
        stage = self._by_id.get(stage_id)
        return stage.counts_toward_budget if stage else False

    @property
    def first_stage_id(self) -> str:
        return self._stages[0].id

    @property
    def stage_ids(self) -> list[str]:
        """All stage ids in sequence order."""
        return [s.id for s in self._stages]

    def __iter__(self) -> Iterator[StageDefinition]:
        return iter(self._stages)

    def __len__(self) -> int:
        return len(self._stages)

    def __contains__(self, stage_id: object) -> bool:
        return stage_id in self._by_id

    def stage_table(self) -> str:
        """Human-readable table of registered stages.

        Returns a markdown-formatted table with columns:
        Order | Stage | Title | Budget | Requirements
        """
        lines = ["| Order | Stage | Title | Budget | Requirements |"]
        lines.append("|-------|-------|-------|--------|--------------|")
        for stage in self._stages:
            budget = "counted" if stage.counts_toward_budget else "excluded"
            reqs = ", ".join(r.id for r in stage.requirements) if stage.requirements else "-"
            lines.append(f"| {stage.order} | {stage.id} | {stage.title} | {budget} | {reqs} |")
        return "\n".join(lines)
