"""Mutable per-project state owned by the stage progression engine.

These models are what a persistence layer stores and reloads. The engine
only ever mutates them in memory; it never talks to storage itself.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field

from stagegate.models.evaluation import EvaluationResult  # noqa: TC001 - pydantic field type
from stagegate.models.requirements import RequirementSpec  # noqa: TC001 - pydantic field type


class StageStatus(StrEnum):
    """Lifecycle of a stage within a project.

    Transitions only move forward: locked -> unlocked -> in_progress -> completed.
    """

    LOCKED = "locked"
    UNLOCKED = "unlocked"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ProjectStatus(StrEnum):
    """Lifecycle of a writing project."""

    DRAFT = "draft"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class StageProgress(BaseModel):
    """A writer's progress on one stage of one project.

    Created the first time the stage is unlocked and never deleted.
    ``previous_content`` holds the content as it was before the most recent
    overwrite; ``version`` increases by one on every overwrite.
    """

    project_id: str = Field(min_length=1)
    stage_id: str = Field(min_length=1)
    status: StageStatus = StageStatus.UNLOCKED
    content: str = ""
    previous_content: str | None = None
    version: int = Field(default=0, ge=0)
    requirements: list[RequirementSpec] = Field(default_factory=list)
    passed_requirement_ids: list[str] = Field(default_factory=list)
    failed_requirement_ids: list[str] = Field(default_factory=list)
    feedback: str | None = None
    evaluation_count: int = Field(default=0, ge=0)
    last_result: EvaluationResult | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == StageStatus.COMPLETED


class Project(BaseModel):
    """A single essay or thesis being written.

    ``current_stage_id`` only ever advances forward through the stage
    sequence. ``overall_score`` is set when the final stage completes.
    """

    id: str = Field(min_length=1)
    current_stage_id: str = Field(min_length=1)
    word_limit: int | None = Field(default=None, ge=0)
    status: ProjectStatus = ProjectStatus.DRAFT
    overall_score: float | None = None


class ProjectState(BaseModel):
    """A consistent snapshot of a project and all of its stage records.

    Callers load this from storage, hand it to the engine, and persist it
    back afterwards. Budget accounting reads every record in ``stages``,
    so the snapshot must not mix fresh and stale content.
    """

    project: Project
    stages: dict[str, StageProgress] = Field(default_factory=dict)

    def progress_for(self, stage_id: str) -> StageProgress | None:
        """Return the stage record, or None if the stage was never unlocked."""
        return self.stages.get(stage_id)
