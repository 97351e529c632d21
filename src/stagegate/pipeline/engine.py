"""Stage progression state machine.

Owns each stage's lifecycle within a project::

    locked -> unlocked -> in_progress -> completed

- The first stage is unlocked when the project is created.
- A non-blank content write moves ``unlocked`` to ``in_progress``.
- An evaluation with no failed requirements moves ``in_progress`` to
  ``completed`` and unlocks the successor, or completes the project when
  the stage is the final one.
- ``completed`` is terminal: writes are rejected and re-evaluation returns
  the stored result unchanged.

The engine works on an in-memory ``ProjectState`` snapshot. Loading and
saving that snapshot, and serializing concurrent writers, belongs to the
caller; ``StageProgress.version`` lets callers detect lost updates.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from stagegate.models.evaluation import EvaluationContext, EvaluationResult
from stagegate.models.progress import (
    Project,
    ProjectState,
    ProjectStatus,
    StageProgress,
    StageStatus,
)
from stagegate.observability.logging import get_logger
from stagegate.pipeline.budget import counted_words, exceeds_limit, projected_counted_words
from stagegate.pipeline.config import build_registry
from stagegate.pipeline.gates import advance_stage
from stagegate.pipeline.scoring import FeedbackCreditScorer
from stagegate.validation.evaluator import evaluate_stage

if TYPE_CHECKING:
    from stagegate.pipeline.config import EngineConfig
    from stagegate.pipeline.registry import StageRegistry
    from stagegate.pipeline.scoring import ProjectScorer

log = get_logger(__name__)


class EngineError(Exception):
    """Raised when an operation is not allowed in the stage's current state."""

    def __init__(self, stage_id: str, message: str) -> None:
        self.stage_id = stage_id
        self.message = message
        super().__init__(f"Stage '{stage_id}': {message}")

    def to_feedback(self) -> str:
        """Writer-facing explanation of the rejection."""
        return self.message


class ContentValidationError(EngineError):
    """Raised when content is missing or not a string."""

    def __init__(self, stage_id: str, received_type: str) -> None:
        self.received_type = received_type
        super().__init__(stage_id, f"Content is required and must be a string, got {received_type}")


class StageNotFoundError(EngineError):
    """Raised when a stage id is not in the registry."""

    def __init__(self, stage_id: str) -> None:
        super().__init__(stage_id, f"Stage '{stage_id}' not found")


class StageLockedError(EngineError):
    """Raised when acting on a stage whose predecessor is not completed."""

    def __init__(self, stage_id: str, predecessor_id: str | None = None) -> None:
        self.predecessor_id = predecessor_id
        if predecessor_id:
            message = f"Complete '{predecessor_id}' to unlock this stage"
        else:
            message = "This stage is locked"
        super().__init__(stage_id, message)


class StageNotStartedError(EngineError):
    """Raised when evaluating a stage nobody has written anything in yet."""

    def __init__(self, stage_id: str) -> None:
        super().__init__(stage_id, "Please write something before checking requirements")


class StageCompletedError(EngineError):
    """Raised when editing a stage that is already completed."""

    def __init__(self, stage_id: str) -> None:
        super().__init__(stage_id, "This stage is completed and can no longer be edited")


@dataclass(frozen=True)
class ContentUpdate:
    """Outcome of a content write.

    Attributes:
        progress: The updated stage record.
        counted_words: Project-wide counted words after the write.
        over_word_limit: Advisory flag; the write was kept either way.
    """

    progress: StageProgress
    counted_words: int
    over_word_limit: bool


class StageProgressionEngine:
    """Apply content writes and evaluations to a project's stages.

    Attributes:
        registry: The stage catalog this engine enforces.
    """

    def __init__(self, registry: StageRegistry, scorer: ProjectScorer | None = None) -> None:
        """Initialize the engine.

        Args:
            registry: Stage registry, loaded once and shared.
            scorer: Scorer used when the final stage completes.
                Defaults to ``FeedbackCreditScorer``.
        """
        self.registry = registry
        self._scorer = scorer or FeedbackCreditScorer()

    # -- Project lifecycle -----------------------------------------------------

    def create_project(self, project_id: str, word_limit: int | None = None) -> ProjectState:
        """Create a project positioned on the first stage, which is unlocked."""
        first = self.registry.first_stage_id
        state = ProjectState(
            project=Project(id=project_id, current_stage_id=first, word_limit=word_limit)
        )
        state.stages[first] = self._new_progress(project_id, first)
        log.info("project_created", project_id=project_id, first_stage=first)
        return state

    def _new_progress(self, project_id: str, stage_id: str) -> StageProgress:
        return StageProgress(
            project_id=project_id,
            stage_id=stage_id,
            status=StageStatus.UNLOCKED,
            requirements=list(self.registry.requirements_for(stage_id)),
        )

    # -- Queries ---------------------------------------------------------------

    def stage_status(self, state: ProjectState, stage_id: str) -> StageStatus:
        """Status of a stage; stages without a record are locked."""
        progress = state.progress_for(stage_id)
        return progress.status if progress else StageStatus.LOCKED

    def counted_words(self, state: ProjectState) -> int:
        """Project-wide counted words."""
        return counted_words(state, self.registry)

    def _require_stage(self, stage_id: str) -> None:
        if stage_id not in self.registry:
            raise StageNotFoundError(stage_id)

    def _require_progress(self, state: ProjectState, stage_id: str) -> StageProgress:
        self._require_stage(stage_id)
        progress = state.progress_for(stage_id)
        if progress is None or progress.status == StageStatus.LOCKED:
            raise StageLockedError(stage_id, self.registry.predecessor(stage_id))
        return progress

    # -- Transitions -----------------------------------------------------------

    def unlock_stage(self, state: ProjectState, stage_id: str) -> StageProgress:
        """Unlock a stage whose predecessor is completed.

        Creates the stage record, seeded with the registry's requirements,
        if it does not exist yet. Unlocking an already reachable stage
        returns its record unchanged.

        Raises:
            StageNotFoundError: If the stage is not in the registry.
            StageLockedError: If the predecessor is not completed.
        """
        self._require_stage(stage_id)
        progress = state.progress_for(stage_id)
        if progress is not None and progress.status != StageStatus.LOCKED:
            return progress

        predecessor = self.registry.predecessor(stage_id)
        if predecessor is not None and self.stage_status(state, predecessor) != (
            StageStatus.COMPLETED
        ):
            raise StageLockedError(stage_id, predecessor)

        if progress is None:
            progress = self._new_progress(state.project.id, stage_id)
            state.stages[stage_id] = progress
        else:
            progress.status = StageStatus.UNLOCKED

        log.info("stage_unlocked", project_id=state.project.id, stage_id=stage_id)
        return progress

    def write_content(self, state: ProjectState, stage_id: str, content: object) -> ContentUpdate:
        """Overwrite a stage's content.

        The previous content is kept as a single-level snapshot and the
        version is bumped. Going over the word limit does not block the
        write; it is reported through ``ContentUpdate.over_word_limit`` and
        enforced when the stage is evaluated.

        Raises:
            ContentValidationError: If ``content`` is not a string. Nothing
                is changed in that case.
            StageNotFoundError: If the stage is not in the registry.
            StageLockedError: If the stage has not been unlocked.
            StageCompletedError: If the stage is already completed.
        """
        if not isinstance(content, str):
            raise ContentValidationError(stage_id, type(content).__name__)

        progress = self._require_progress(state, stage_id)
        if progress.is_completed:
            raise StageCompletedError(stage_id)

        projected = projected_counted_words(state, self.registry, stage_id, content)
        over_limit = self.registry.counts_toward_budget(stage_id) and exceeds_limit(
            projected, state.project.word_limit
        )

        progress.previous_content = progress.content
        progress.content = content
        progress.version += 1

        if content.strip():
            if progress.status == StageStatus.UNLOCKED:
                progress.status = StageStatus.IN_PROGRESS
            if state.project.status == ProjectStatus.DRAFT:
                state.project.status = ProjectStatus.IN_PROGRESS

        if over_limit:
            log.warning(
                "word_limit_exceeded",
                project_id=state.project.id,
                stage_id=stage_id,
                counted_words=projected,
                word_limit=state.project.word_limit,
            )
        log.debug(
            "content_written",
            project_id=state.project.id,
            stage_id=stage_id,
            version=progress.version,
            status=progress.status.value,
        )
        return ContentUpdate(progress=progress, counted_words=projected, over_word_limit=over_limit)

    def evaluate(self, state: ProjectState, stage_id: str) -> EvaluationResult:
        """Evaluate a stage and apply the resulting transitions.

        Passed and failed requirement ids are replaced, never merged. On
        completion the successor is unlocked and becomes the current stage;
        completing the final stage completes the project and scores it.

        Raises:
            StageNotFoundError: If the stage is not in the registry.
            StageLockedError: If the stage has not been unlocked.
            StageNotStartedError: If the stage has no content yet.
        """
        progress = self._require_progress(state, stage_id)

        if progress.is_completed:
            log.debug("evaluation_skipped_completed", stage_id=stage_id)
            return progress.last_result or self._stored_result(progress)
        if progress.status == StageStatus.UNLOCKED:
            raise StageNotStartedError(stage_id)

        counts = self.registry.counts_toward_budget(stage_id)
        context = EvaluationContext(
            word_limit=state.project.word_limit,
            counted_words_excluding_this_stage=counted_words(
                state, self.registry, exclude_stage_id=stage_id
            ),
            counts_toward_budget=counts,
            is_final_stage=self.registry.is_final(stage_id),
        )
        result = evaluate_stage(progress.content, progress.requirements, context)

        progress.passed_requirement_ids = list(result.passed_requirement_ids)
        progress.failed_requirement_ids = list(result.failed_requirement_ids)
        progress.feedback = result.feedback
        progress.evaluation_count += 1
        progress.last_result = result

        log.info(
            "stage_evaluated",
            project_id=state.project.id,
            stage_id=stage_id,
            passed=len(result.passed_requirement_ids),
            failed=len(result.failed_requirement_ids),
            completed=result.is_completed,
        )

        if not result.is_completed:
            return result

        progress.status = StageStatus.COMPLETED
        if context.is_final_stage:
            self._complete_project(state)
            return result

        decision = advance_stage(self.registry, stage_id, result)
        if decision.should_unlock and decision.next_stage_id is not None:
            self.unlock_stage(state, decision.next_stage_id)
            state.project.current_stage_id = decision.next_stage_id
        return result

    def _stored_result(self, progress: StageProgress) -> EvaluationResult:
        # Records reloaded from storage may not carry the full last result
        return EvaluationResult(
            passed_requirement_ids=list(progress.passed_requirement_ids),
            failed_requirement_ids=list(progress.failed_requirement_ids),
            is_completed=True,
            feedback=progress.feedback or "",
            is_final_stage=self.registry.is_final(progress.stage_id),
        )

    def _complete_project(self, state: ProjectState) -> None:
        state.project.status = ProjectStatus.COMPLETED
        state.project.overall_score = self._scorer.score(self.registry, state.stages)
        log.info(
            "project_completed",
            project_id=state.project.id,
            overall_score=state.project.overall_score,
        )


def engine_from_config(
    config: EngineConfig,
    registry: StageRegistry | None = None,
) -> StageProgressionEngine:
    """Build an engine from stagegate.yaml settings.

    Args:
        config: Loaded configuration. Its ``scoring`` credits set the scorer.
        registry: Registry to enforce. Defaults to the one ``config`` selects.

    Returns:
        StageProgressionEngine scoring with the configured credits.

    Raises:
        ConfigError: If no registry is given and the config's catalog or mode
            cannot be loaded.
    """
    if registry is None:
        registry = build_registry(config)
    return StageProgressionEngine(registry, scorer=FeedbackCreditScorer.from_config(config.scoring))
