"""Tests for counted-word accounting."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from stagegate.models.progress import Project, ProjectState, StageProgress
from stagegate.pipeline.budget import counted_words, exceeds_limit, projected_counted_words

if TYPE_CHECKING:
    from stagegate.pipeline.registry import StageRegistry


def _words(count: int) -> str:
    return " ".join(["word"] * count)


def _state(**contents: str) -> ProjectState:
    state = ProjectState(project=Project(id="p1", current_stage_id="outline", word_limit=20))
    for stage_id, content in contents.items():
        state.stages[stage_id] = StageProgress(project_id="p1", stage_id=stage_id, content=content)
    return state


class TestCountedWords:
    """Tests for counted_words."""

    def test_uncounted_stage_excluded(self, small_registry: StageRegistry) -> None:
        """Words in stages outside the budget are ignored."""
        state = _state(outline=_words(100), draft=_words(7), final=_words(3))

        assert counted_words(state, small_registry) == 10

    def test_exclude_stage(self, small_registry: StageRegistry) -> None:
        state = _state(outline=_words(100), draft=_words(7), final=_words(3))

        assert counted_words(state, small_registry, exclude_stage_id="draft") == 3

    def test_unknown_stage_records_ignored(self, small_registry: StageRegistry) -> None:
        """Records for stages the registry does not know never count."""
        state = _state(draft=_words(4), legacy=_words(50))

        assert counted_words(state, small_registry) == 4

    def test_empty_project(self, small_registry: StageRegistry) -> None:
        assert counted_words(_state(), small_registry) == 0


class TestProjectedCountedWords:
    """Tests for projected_counted_words."""

    def test_replaces_stage_content(self, small_registry: StageRegistry) -> None:
        """The stage's old content is replaced, not added to."""
        state = _state(draft=_words(7), final=_words(3))

        assert projected_counted_words(state, small_registry, "draft", _words(2)) == 5

    def test_uncounted_stage_changes_nothing(self, small_registry: StageRegistry) -> None:
        """Editing an uncounted stage never moves the counted total."""
        state = _state(outline=_words(1), draft=_words(7), final=_words(3))
        before = counted_words(state, small_registry)

        for size in (0, 5, 500):
            projected = projected_counted_words(state, small_registry, "outline", _words(size))
            assert projected == before


@pytest.mark.parametrize(
    ("total", "limit", "expected"),
    [
        (10, None, False),
        (10, 10, False),
        (11, 10, True),
        (0, 0, False),
        (1, 0, True),
    ],
)
def test_exceeds_limit(total: int, limit: int | None, expected: bool) -> None:
    """Only totals strictly above a set limit exceed it."""
    assert exceeds_limit(total, limit) is expected
