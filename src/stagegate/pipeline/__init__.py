"""Stage registry, progression engine and configuration."""

from stagegate.pipeline.catalog import essay_registry, registry_for_mode, thesis_registry
from stagegate.pipeline.config import (
    ConfigError,
    EngineConfig,
    build_registry,
    create_default_config,
    load_config,
    load_stage_catalog,
)
from stagegate.pipeline.engine import (
    ContentUpdate,
    ContentValidationError,
    EngineError,
    StageCompletedError,
    StageLockedError,
    StageNotFoundError,
    StageNotStartedError,
    StageProgressionEngine,
    engine_from_config,
)
from stagegate.pipeline.gates import StageAdvance, advance_stage
from stagegate.pipeline.registry import StageDefinition, StageRegistry
from stagegate.pipeline.scoring import FeedbackCreditScorer, ProjectScorer

__all__ = [
    "ConfigError",
    "ContentUpdate",
    "ContentValidationError",
    "EngineConfig",
    "EngineError",
    "FeedbackCreditScorer",
    "ProjectScorer",
    "StageAdvance",
    "StageCompletedError",
    "StageDefinition",
    "StageLockedError",
    "StageNotFoundError",
    "StageNotStartedError",
    "StageProgressionEngine",
    "StageRegistry",
    "advance_stage",
    "build_registry",
    "create_default_config",
    "engine_from_config",
    "essay_registry",
    "load_config",
    "load_stage_catalog",
    "registry_for_mode",
    "thesis_registry",
]
