"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from stagegate.models.requirements import KeywordRequirement, WordCountRequirement
from stagegate.pipeline.catalog import essay_registry
from stagegate.pipeline.engine import StageProgressionEngine
from stagegate.pipeline.registry import StageDefinition, StageRegistry


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def essay() -> StageRegistry:
    """Built-in essay registry."""
    return essay_registry()


@pytest.fixture
def small_registry() -> StageRegistry:
    """Three-stage registry: an uncounted outline, then two counted stages."""
    return StageRegistry(
        [
            StageDefinition(
                id="outline",
                order=0,
                title="Outline",
                counts_toward_budget=False,
                requirements=(WordCountRequirement(id="outline_length", min_value=3),),
            ),
            StageDefinition(
                id="draft",
                order=1,
                title="Draft",
                requirements=(
                    WordCountRequirement(id="draft_length", min_value=5),
                    KeywordRequirement(id="draft_reason", required_keywords=["because"]),
                ),
            ),
            StageDefinition(
                id="final",
                order=2,
                title="Final",
                requirements=(WordCountRequirement(id="final_length", min_value=2),),
            ),
        ]
    )


@pytest.fixture
def engine(small_registry: StageRegistry) -> StageProgressionEngine:
    """Engine over the small registry."""
    return StageProgressionEngine(small_registry)
