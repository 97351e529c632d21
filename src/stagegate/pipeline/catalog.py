"""Built-in stage catalogs for essay and thesis writing modes.

Essay mode walks a writer from a thesis statement to a conclusion. Thesis
mode walks from a research proposal to the reference list. Planning-type
stages (the thesis statement, the essay plan, the research proposal) and
the reference list do not count toward the project's word limit.
"""

from __future__ import annotations

from typing import Literal

from stagegate.models.requirements import (
    KeywordRequirement,
    StructureRequirement,
    WordCountRequirement,
)
from stagegate.pipeline.registry import StageDefinition, StageRegistry

WritingMode = Literal["essay", "thesis"]

WRITING_MODES: tuple[WritingMode, ...] = ("essay", "thesis")

ARGUMENT_KEYWORDS = ["argu", "position", "claim", "assert", "because", "therefore"]

RESEARCH_QUESTION_KEYWORDS = [
    "what",
    "how",
    "why",
    "effect",
    "impact",
    "relationship",
    "influence",
]

METHOD_KEYWORDS = [
    "qualitative",
    "quantitative",
    "survey",
    "interview",
    "experiment",
    "sample",
    "data",
]


def _essay_stages() -> list[StageDefinition]:
    return [
        StageDefinition(
            id="thesis_statement",
            order=0,
            title="Thesis Statement",
            description="Create a clear, arguable thesis that answers the prompt",
            counts_toward_budget=False,
            requirements=(
                WordCountRequirement(
                    id="thesis_length",
                    min_value=15,
                    max_value=40,
                    description="Thesis should be 15-40 words",
                    error_message="Thesis is too short or too long. Aim for 15-40 words.",
                ),
                KeywordRequirement(
                    id="thesis_arguable",
                    required_keywords=ARGUMENT_KEYWORDS,
                    description="Thesis must take a clear position",
                    error_message="Your thesis needs to make a clear, arguable claim.",
                ),
            ),
            help_text="A good thesis: 1) Answers the prompt 2) Takes a position 3) Is specific",
            examples=(
                "While some argue technology isolates people, it actually creates new forms "
                "of community through social media platforms.",
            ),
        ),
        StageDefinition(
            id="planning",
            order=1,
            title="Essay Plan",
            description="Outline your main arguments and evidence",
            counts_toward_budget=False,
            requirements=(
                WordCountRequirement(
                    id="plan_length",
                    min_value=50,
                    description="Plan should outline at least 3 main points",
                    error_message="Your plan needs more detail (minimum 50 words)",
                ),
            ),
            help_text=(
                "Each point should: 1) Support your thesis 2) Have evidence 3) Include analysis"
            ),
        ),
        StageDefinition(
            id="introduction",
            order=2,
            title="Introduction",
            description="Introduce your topic and thesis",
            requirements=(
                WordCountRequirement(
                    id="intro_length",
                    min_value=80,
                    max_value=150,
                    description="Introduction should be 80-150 words",
                    error_message="Introduction is too short or too long",
                ),
            ),
            help_text="Start with a hook, give background, then state your thesis.",
        ),
        StageDefinition(
            id="body_paragraphs",
            order=3,
            title="Body Paragraphs",
            description="Develop your arguments with evidence",
            requirements=(
                WordCountRequirement(
                    id="body_length",
                    min_value=300,
                    description="Body paragraphs should be at least 300 words",
                    error_message="Body paragraphs need more development (minimum 300 words)",
                ),
                StructureRequirement(
                    id="body_structure",
                    min_paragraphs=3,
                    description="Body should have at least 3 paragraphs",
                    error_message="Separate each main point into its own paragraph.",
                ),
            ),
            help_text="Start each paragraph with a topic sentence and support it with evidence.",
        ),
        StageDefinition(
            id="conclusion",
            order=4,
            title="Conclusion",
            description="Summarize and show significance",
            requirements=(
                WordCountRequirement(
                    id="conclusion_length",
                    min_value=80,
                    max_value=150,
                    description="Conclusion should be 80-150 words",
                    error_message="Conclusion is too short or too long",
                ),
            ),
            help_text="Restate your thesis in new words and end with a strong closing thought.",
        ),
    ]


def _thesis_stages() -> list[StageDefinition]:
    return [
        StageDefinition(
            id="research_proposal",
            order=0,
            title="Research Proposal",
            description="Define your research question and objectives",
            counts_toward_budget=False,
            requirements=(
                WordCountRequirement(
                    id="proposal_length",
                    min_value=200,
                    description="Proposal should be 200+ words",
                    error_message="Research proposal needs more detail (minimum 200 words).",
                ),
                KeywordRequirement(
                    id="research_question",
                    required_keywords=RESEARCH_QUESTION_KEYWORDS,
                    description="Must contain a clear research question",
                    error_message=(
                        "Your proposal needs a clear research question starting with "
                        "What, How, or Why."
                    ),
                ),
            ),
            help_text=(
                "Guidelines require: 1) Clear research gap 2) Specific objectives "
                "3) Methodology overview"
            ),
        ),
        StageDefinition(
            id="literature_review",
            order=1,
            title="Literature Review",
            description="Survey and synthesize prior work on your question",
            requirements=(
                WordCountRequirement(
                    id="review_length",
                    min_value=500,
                    description="Literature review should be at least 500 words",
                    error_message="Your literature review needs more coverage (minimum 500 words).",
                ),
                StructureRequirement(
                    id="review_structure",
                    min_paragraphs=4,
                    description="Literature review should have at least 4 paragraphs",
                    error_message="Group sources into themed paragraphs.",
                ),
            ),
        ),
        StageDefinition(
            id="methodology",
            order=2,
            title="Methodology",
            description="Explain how you will answer the research question",
            requirements=(
                WordCountRequirement(
                    id="methodology_length",
                    min_value=300,
                    description="Methodology should be at least 300 words",
                    error_message="Describe your method in more detail (minimum 300 words).",
                ),
                KeywordRequirement(
                    id="methodology_approach",
                    required_keywords=METHOD_KEYWORDS,
                    description="Methodology must name an approach or data source",
                    error_message="State your research approach and where your data comes from.",
                ),
            ),
        ),
        StageDefinition(
            id="abstract",
            order=3,
            title="Abstract",
            description="Summarize the whole thesis",
            requirements=(
                WordCountRequirement(
                    id="abstract_length",
                    min_value=150,
                    max_value=300,
                    description="Abstract should be 150-300 words",
                    error_message="Abstract is too short or too long",
                ),
            ),
        ),
        StageDefinition(
            id="references",
            order=4,
            title="References",
            description="List every source you cited",
            counts_toward_budget=False,
            requirements=(
                StructureRequirement(
                    id="reference_entries",
                    min_paragraphs=5,
                    description="List at least 5 references, separated by blank lines",
                    error_message="Add more references (minimum 5).",
                ),
            ),
        ),
    ]


def essay_registry() -> StageRegistry:
    """Registry for essay mode."""
    return StageRegistry(_essay_stages())


def thesis_registry() -> StageRegistry:
    """Registry for thesis mode."""
    return StageRegistry(_thesis_stages())


def registry_for_mode(mode: str) -> StageRegistry:
    """Return the built-in registry for a writing mode.

    Raises:
        ValueError: If the mode is not "essay" or "thesis".
    """
    if mode == "essay":
        return essay_registry()
    if mode == "thesis":
        return thesis_registry()
    msg = f"Unknown writing mode {mode!r}. Expected one of: {', '.join(WRITING_MODES)}"
    raise ValueError(msg)
