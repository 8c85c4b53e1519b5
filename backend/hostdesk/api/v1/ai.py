"""AI enrichment endpoints used while authoring a request description."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from hostdesk.api.v1.requests import get_actor
from hostdesk.core.config import get_settings
from hostdesk.core.dependencies import get_db
from hostdesk.services.access import Actor
from hostdesk.services.ai.enrichment.contracts import MAX_DESCRIPTION_CHARS
from hostdesk.services.errors import FieldValidationError, GenerationError

router = APIRouter()


def _ensure_ai_enrichment_enabled() -> None:
    if not get_settings().enable_ai_enrichment:
        raise HTTPException(404, "Not found")


def _generation_failed(text: str) -> HTTPException:
    # The caller's text is echoed back so a client can restore it verbatim.
    return HTTPException(
        502,
        {
            "error": "generation_failed",
            "message": "Could not reach the AI service. Please try again.",
            "retryable": True,
            "original_text": text,
        },
    )


class EnrichmentRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=MAX_DESCRIPTION_CHARS)


class ImproveDescriptionResponse(BaseModel):
    text: str
    provider: str
    model: str


class FeatureSuggestionResponse(BaseModel):
    uniqueSellingProposition: str
    coreFeatures: list[str]
    growthFeatures: list[str]
    provider: str
    model: str


@router.post("/ai/improve-description", response_model=ImproveDescriptionResponse)
async def improve_description_endpoint(
    body: EnrichmentRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    _ensure_ai_enrichment_enabled()

    from hostdesk.services.ai.enrichment.service import improve_description

    try:
        result = await improve_description(body.text, db=db, actor=actor)
    except FieldValidationError as exc:
        raise HTTPException(400, str(exc)) from exc
    except GenerationError as exc:
        raise _generation_failed(body.text) from exc
    db.commit()

    return ImproveDescriptionResponse(
        text=result.text,
        provider=result.provider_result.provider,
        model=result.provider_result.model,
    )


@router.post("/ai/suggest-features", response_model=FeatureSuggestionResponse)
async def suggest_features_endpoint(
    body: EnrichmentRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    _ensure_ai_enrichment_enabled()

    from hostdesk.services.ai.enrichment.service import suggest_features

    try:
        result = await suggest_features(body.text, db=db, actor=actor)
    except FieldValidationError as exc:
        raise HTTPException(400, str(exc)) from exc
    except GenerationError as exc:
        raise _generation_failed(body.text) from exc
    db.commit()

    suggestion = result.suggestion
    return FeatureSuggestionResponse(
        uniqueSellingProposition=suggestion.unique_selling_proposition,
        coreFeatures=suggestion.core_features,
        growthFeatures=suggestion.growth_features,
        provider=result.provider_result.provider,
        model=result.provider_result.model,
    )
