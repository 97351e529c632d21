"""HTTP handler for requirement checks.

A thin FastAPI layer over ``evaluate_stage``. It translates the camelCase
wire contract into an ``EvaluationContext``, fills gaps from the stage
registry, and maps input problems to HTTP 400 responses that keep the
empty-result shape. It holds no project state.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from stagegate import __version__
from stagegate.models.evaluation import EvaluationContext, EvaluationResult
from stagegate.models.requirements import parse_requirements, requirement_to_wire
from stagegate.observability.logging import get_logger
from stagegate.pipeline.config import EngineConfig, build_registry
from stagegate.validation.evaluator import evaluate_stage

if TYPE_CHECKING:
    from stagegate.pipeline.registry import StageRegistry

log = get_logger(__name__)


class CheckRequirementsRequest(BaseModel):
    """Body of ``POST /check-requirements``.

    ``content`` and ``requirements`` are deliberately untyped here: the
    evaluator decides what is acceptable so that a wrong content type is
    reported as a requirement-check error, and malformed requirements are
    skipped instead of rejecting the whole request.
    """

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, extra="ignore")

    project_id: str | None = None
    stage_id: str | None = None
    content: Any = None
    requirements: Any = None
    word_limit: int | None = None
    current_stage_index: int | None = None
    is_last_stage: bool | None = None
    counted_words_excluding_this_stage: int = 0
    counts_toward_budget: bool | None = None


def _timestamp() -> str:
    return datetime.now(UTC).isoformat()


def _error_response(message: str) -> JSONResponse:
    payload = EvaluationResult.error_result(message).to_wire()
    payload["timestamp"] = _timestamp()
    return JSONResponse(status_code=400, content=payload)


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        loc = ".".join(str(p) for p in error.get("loc", ()))
        parts.append(f"{loc}: {error.get('msg', '')}" if loc else error.get("msg", ""))
    return "Invalid request: " + "; ".join(parts)


def build_context(payload: CheckRequirementsRequest, registry: StageRegistry) -> EvaluationContext:
    """Resolve the evaluation context, preferring explicit request fields.

    Stages the registry knows supply ``is_last_stage`` and
    ``counts_toward_budget`` when the request omits them. Stages it does
    not know are treated as counted and not final.
    """
    stage_id = payload.stage_id
    known = stage_id is not None and stage_id in registry

    is_final = payload.is_last_stage
    if is_final is None:
        is_final = registry.is_final(stage_id) if known else False

    counts = payload.counts_toward_budget
    if counts is None:
        counts = registry.counts_toward_budget(stage_id) if known else True

    return EvaluationContext(
        word_limit=payload.word_limit,
        counted_words_excluding_this_stage=payload.counted_words_excluding_this_stage,
        counts_toward_budget=counts,
        is_final_stage=is_final,
    )


def create_app(
    registry: StageRegistry | None = None,
    config: EngineConfig | None = None,
) -> FastAPI:
    """Create the HTTP application.

    Args:
        registry: Stage registry to consult. Built from ``config`` if omitted.
        config: Engine configuration; defaults to essay mode.

    Returns:
        Configured FastAPI application.
    """
    config = config or EngineConfig()
    registry = registry or build_registry(config)

    app = FastAPI(title="StageGate", version=__version__)
    app.state.registry = registry
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    @app.get("/stages")
    async def list_stages() -> list[dict[str, Any]]:
        return [
            {
                "id": stage.id,
                "order": stage.order,
                "title": stage.title,
                "description": stage.description,
                "countsTowardBudget": stage.counts_toward_budget,
                "helpText": stage.help_text,
                "examples": list(stage.examples),
                "requirements": [requirement_to_wire(r) for r in stage.requirements],
            }
            for stage in registry
        ]

    @app.post("/check-requirements")
    async def check_requirements(request: Request) -> JSONResponse:
        try:
            body = await request.json()
        except ValueError:
            log.info("check_requirements_rejected", reason="invalid_json")
            return _error_response("Request body must be valid JSON")

        if not isinstance(body, dict):
            log.info("check_requirements_rejected", reason="body_not_object")
            return _error_response("Request body must be a JSON object")

        try:
            payload = CheckRequirementsRequest.model_validate(body)
        except ValidationError as e:
            log.info("check_requirements_rejected", reason="invalid_fields")
            return _error_response(_validation_message(e))

        if payload.requirements is None and payload.stage_id is not None:
            requirements = list(registry.requirements_for(payload.stage_id))
        else:
            requirements = parse_requirements(payload.requirements)

        context = build_context(payload, registry)
        log.info(
            "check_requirements",
            project_id=payload.project_id,
            stage_id=payload.stage_id,
            word_limit=context.word_limit,
            is_last_stage=context.is_final_stage,
        )

        result = evaluate_stage(payload.content, requirements, context)
        response = result.to_wire()
        response["timestamp"] = _timestamp()
        if result.is_error:
            return JSONResponse(status_code=400, content=response)
        return JSONResponse(content=response)

    return app
