"""Requirement specifications attached to writing stages.

A requirement is a single mechanical check (word count, keyword presence,
paragraph structure). Each kind is its own model carrying only the fields it
needs; ``RequirementSpec`` is the tagged union over them, keyed by ``kind``.

Requirement data arrives from stage catalogs and from HTTP clients, so the
models accept the camelCase wire names (``minValue``, ``requiredKeywords``)
as well as snake_case, and ``type`` as an alias for ``kind``. Kinds the
evaluator does not recognise become ``UnknownRequirement`` and always pass.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Annotated, Any, Literal, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

from stagegate.observability.logging import get_logger

log = get_logger(__name__)

KNOWN_KINDS = frozenset({"word_count", "contains_keywords", "structure_check"})
MALFORMED_KIND = "malformed"

_KIND_ALIAS = AliasChoices("kind", "type")


class _RequirementBase(BaseModel):
    """Fields shared by every requirement kind.

    ``description`` and ``error_message`` are display text only.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )

    id: str = Field(min_length=1)
    description: str = ""
    error_message: str = ""

    @field_validator("description", "error_message", mode="before")
    @classmethod
    def _display_text(cls, value: Any) -> str:
        # Display text never invalidates the check itself
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    @property
    def label(self) -> str:
        """Text used to prefix itemized feedback lines."""
        return self.description or self.id


class WordCountRequirement(_RequirementBase):
    """Content length must fall within ``[min_value, max_value]``.

    A missing ``min_value`` means 0 and a missing ``max_value`` means unbounded.
    """

    kind: Literal["word_count"] = Field(default="word_count", validation_alias=_KIND_ALIAS)
    min_value: int | None = None
    max_value: int | None = None


class KeywordRequirement(_RequirementBase):
    """At least one keyword must occur in the content (case-insensitive substring)."""

    kind: Literal["contains_keywords"] = Field(
        default="contains_keywords", validation_alias=_KIND_ALIAS
    )
    required_keywords: list[str] | None = None


class StructureRequirement(_RequirementBase):
    """Content must have at least ``min_paragraphs`` blank-line separated paragraphs."""

    kind: Literal["structure_check"] = Field(
        default="structure_check", validation_alias=_KIND_ALIAS
    )
    min_paragraphs: int | None = None


class UnknownRequirement(_RequirementBase):
    """Requirement of a kind the evaluator does not understand.

    Also produced when a requirement is malformed. ``kind`` is then
    ``MALFORMED_KIND``, ``declared_kind`` keeps the kind the data asked for
    and ``problem`` records what was wrong with it. Keeping the declared kind
    out of ``kind`` lets a stored record validate back to this model.
    """

    kind: str = Field(default="unspecified", validation_alias=_KIND_ALIAS)
    declared_kind: str | None = None
    problem: str | None = None

    @property
    def is_malformed(self) -> bool:
        return self.problem is not None


def _requirement_tag(value: Any) -> str:
    if isinstance(value, Mapping):
        kind = value.get("kind", value.get("type"))
    else:
        kind = getattr(value, "kind", None)
    # Kinds arrive from untrusted JSON and may be lists or objects
    if isinstance(kind, str) and kind in KNOWN_KINDS:
        return kind
    return "unknown"


RequirementSpec = Annotated[
    Union[  # noqa: UP007 - tagged members need the explicit Union
        Annotated[WordCountRequirement, Tag("word_count")],
        Annotated[KeywordRequirement, Tag("contains_keywords")],
        Annotated[StructureRequirement, Tag("structure_check")],
        Annotated[UnknownRequirement, Tag("unknown")],
    ],
    Discriminator(_requirement_tag),
]

_requirement_adapter: TypeAdapter[Any] = TypeAdapter(RequirementSpec)


def _summarize_errors(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        loc = ".".join(str(p) for p in error.get("loc", ()) if not isinstance(p, int))
        msg = error.get("msg", "")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts)


def parse_requirement(data: Any, index: int = 0) -> RequirementSpec:
    """Parse one requirement, never raising on malformed data.

    Args:
        data: A requirement model or a mapping in wire or snake_case form.
        index: Position in the requirement list, used to name requirements
            that arrive without an ``id``.

    Returns:
        The typed requirement. Data that cannot be validated becomes an
        ``UnknownRequirement`` whose ``problem`` explains why.
    """
    if isinstance(data, _RequirementBase):
        return data  # type: ignore[return-value]

    fallback_id = f"requirement_{index}"
    if not isinstance(data, Mapping):
        log.warning("requirement_not_a_mapping", index=index, value_type=type(data).__name__)
        return UnknownRequirement(id=fallback_id, kind=MALFORMED_KIND, problem="not an object")

    payload = dict(data)
    if not payload.get("id"):
        payload["id"] = fallback_id

    try:
        return _requirement_adapter.validate_python(payload)
    except ValidationError as e:
        kind = payload.get("kind", payload.get("type"))
        problem = _summarize_errors(e)
        log.warning(
            "requirement_malformed",
            requirement_id=str(payload["id"]),
            kind=kind,
            problem=problem,
        )
        return UnknownRequirement(
            id=str(payload["id"]),
            kind=MALFORMED_KIND,
            declared_kind=str(kind) if kind else None,
            problem=problem,
        )


def parse_requirements(items: Any) -> list[RequirementSpec]:
    """Parse a requirement list leniently.

    ``None`` or a non-list value yields an empty list; each element goes
    through ``parse_requirement``.
    """
    if items is None:
        return []
    if isinstance(items, (str, bytes)) or not isinstance(items, Sequence):
        log.warning("requirements_not_a_list", value_type=type(items).__name__)
        return []
    return [parse_requirement(item, index) for index, item in enumerate(items)]


def requirement_to_wire(requirement: RequirementSpec) -> dict[str, Any]:
    """Serialize a requirement with camelCase keys and ``type`` for the kind."""
    data = requirement.model_dump(by_alias=True, exclude_none=True)
    data["type"] = data.pop("kind")
    return data
