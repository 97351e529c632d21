"""Pydantic models for stage requirements, evaluation results and project state.

Terminology:
- stage: one independently gated phase of the writing workflow
- requirement: a single mechanical check attached to a stage
- counted word: a word in a stage whose content counts toward the word limit
"""

from stagegate.models.evaluation import (
    WORD_LIMIT_REQUIREMENT_ID,
    EvaluationContext,
    EvaluationResult,
)
from stagegate.models.progress import (
    Project,
    ProjectState,
    ProjectStatus,
    StageProgress,
    StageStatus,
)
from stagegate.models.requirements import (
    KNOWN_KINDS,
    MALFORMED_KIND,
    KeywordRequirement,
    RequirementSpec,
    StructureRequirement,
    UnknownRequirement,
    WordCountRequirement,
    parse_requirement,
    parse_requirements,
    requirement_to_wire,
)

__all__ = [
    "KNOWN_KINDS",
    "MALFORMED_KIND",
    "WORD_LIMIT_REQUIREMENT_ID",
    "EvaluationContext",
    "EvaluationResult",
    "KeywordRequirement",
    "Project",
    "ProjectState",
    "ProjectStatus",
    "RequirementSpec",
    "StageProgress",
    "StageStatus",
    "StructureRequirement",
    "UnknownRequirement",
    "WordCountRequirement",
    "parse_requirement",
    "parse_requirements",
    "requirement_to_wire",
]
