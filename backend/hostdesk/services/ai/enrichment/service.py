"""AI Enrichment Gateway: description rewrite and feature suggestions.

Both calls are single request/response round trips with no automatic retry.
Any upstream failure, empty output or schema violation surfaces as
``GenerationError``; the caller keeps its own copy of the text.
"""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from hostdesk.services.access import Actor
from hostdesk.services.errors import FieldValidationError, GenerationError, ProviderNotConfigured
from hostdesk.utils.alerting import alert_tracker

from ..common import router as ai_router
from ..common.audit import log_ai_run
from ..common.json_tools import parse_json_object
from ..common.providers.base import ProviderResult
from .contracts import (
    MAX_DESCRIPTION_CHARS,
    MIN_DESCRIPTION_CHARS,
    DescriptionResult,
    FeatureSuggestion,
    FeatureSuggestionResult,
)

logger = logging.getLogger(__name__)

IMPROVE_SYSTEM_PROMPT = (
    "You are a professional business analyst and copywriter. A user has submitted a project idea. "
    "Rewrite their description to be clearer, more professional, and well-structured. "
    "Do not add new ideas or claims; only enhance the existing description. "
    "Respond only with the rewritten text, without any introductory phrase."
)

SUGGEST_SYSTEM_PROMPT = (
    "You are an expert product manager for small-business software. Based on the project "
    "description, suggest features. Return ONLY a JSON object with keys: "
    "uniqueSellingProposition (string, one standout feature or market angle), "
    "coreFeatures (array of 3-5 essential MVP features), "
    "growthFeatures (array of 2-3 features for acquisition and retention)."
)


def _prepare(text: str) -> str:
    text = (text or "").strip()
    if len(text) < MIN_DESCRIPTION_CHARS:
        raise FieldValidationError(
            f"Description must be at least {MIN_DESCRIPTION_CHARS} characters before enhancing.",
            field="text",
        )
    if len(text) > MAX_DESCRIPTION_CHARS:
        raise FieldValidationError(
            f"Description must be at most {MAX_DESCRIPTION_CHARS} characters.",
            field="text",
        )
    return text


async def _generate(scope: str, system_prompt: str, text: str) -> ProviderResult:
    try:
        config = ai_router.resolve("enrichment")
    except ProviderNotConfigured:
        alert_tracker.record("AI_GENERATION_FAILED", {"scope": scope, "provider": "unconfigured"})
        raise
    try:
        return await config.provider.generate(
            text,
            system_prompt=system_prompt,
            model=config.model,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            timeout_seconds=config.timeout_seconds,
        )
    except Exception as exc:
        logger.warning("AI %s call failed via %s: %s", scope, config.provider.name, exc)
        alert_tracker.record("AI_GENERATION_FAILED", {"scope": scope, "provider": config.provider.name})
        raise GenerationError(f"Text generation failed for {scope}") from exc


def _fail(scope: str, provider_result: ProviderResult, reason: str) -> GenerationError:
    logger.warning("AI %s returned unusable output from %s: %s", scope, provider_result.provider, reason)
    alert_tracker.record("AI_GENERATION_FAILED", {"scope": scope, "provider": provider_result.provider})
    return GenerationError(f"Unusable {scope} output: {reason}")


async def improve_description(
    text: str,
    *,
    db: Optional[Session] = None,
    actor: Optional[Actor] = None,
) -> DescriptionResult:
    prompt = _prepare(text)
    provider_result = await _generate("improve_description", IMPROVE_SYSTEM_PROMPT, prompt)

    improved = provider_result.raw_text.strip().strip('"').strip()
    if not improved:
        raise _fail("improve_description", provider_result, "empty response")

    if db is not None:
        log_ai_run(
            db,
            scope="improve_description",
            provider_result=provider_result,
            prompt_text=prompt,
            parsed_output={"length": len(improved)},
            actor=actor,
        )
    return DescriptionResult(text=improved, provider_result=provider_result)


async def suggest_features(
    text: str,
    *,
    db: Optional[Session] = None,
    actor: Optional[Actor] = None,
) -> FeatureSuggestionResult:
    prompt = _prepare(text)
    provider_result = await _generate("suggest_features", SUGGEST_SYSTEM_PROMPT, prompt)

    parsed = parse_json_object(provider_result.raw_text)
    if parsed is None:
        raise _fail("suggest_features", provider_result, "response is not a JSON object")
    try:
        suggestion = FeatureSuggestion.model_validate(parsed)
    except ValidationError as exc:
        raise _fail("suggest_features", provider_result, f"{exc.error_count()} schema errors") from exc

    if db is not None:
        log_ai_run(
            db,
            scope="suggest_features",
            provider_result=provider_result,
            prompt_text=prompt,
            parsed_output=suggestion.model_dump(by_alias=True),
            actor=actor,
        )
    return FeatureSuggestionResult(suggestion=suggestion, provider_result=provider_result)
