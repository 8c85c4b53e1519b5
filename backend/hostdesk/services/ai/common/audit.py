"""AI audit: one audit row per successful generation, prompt and response hashed."""

from __future__ import annotations

import hashlib
import uuid
from typing import Any, Optional

from sqlalchemy.orm import Session

from hostdesk.core.config import get_settings
from hostdesk.services.access import Actor
from hostdesk.services.audit_service import create_audit_log

from .providers.base import ProviderResult

SCOPE_ACTIONS: dict[str, str] = {
    "improve_description": "AI_DESCRIPTION_IMPROVED",
    "suggest_features": "AI_FEATURES_SUGGESTED",
}


def _sha256(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def log_ai_run(
    db: Session,
    *,
    scope: str,
    provider_result: ProviderResult,
    prompt_text: str,
    parsed_output: Optional[dict[str, Any]],
    actor: Optional[Actor] = None,
) -> None:
    """Add an AI audit entry; raw text is kept only when ``AI_DEBUG_STORE_RAW`` is on."""
    metadata: dict[str, Any] = {
        "scope": scope,
        "provider": provider_result.provider,
        "model": provider_result.model,
        "prompt_tokens": provider_result.prompt_tokens,
        "completion_tokens": provider_result.completion_tokens,
        "latency_ms": provider_result.latency_ms,
        "prompt_hash": _sha256(prompt_text),
        "response_hash": _sha256(provider_result.raw_text),
    }
    if get_settings().ai_debug_store_raw:
        metadata["prompt_raw"] = prompt_text
        metadata["response_raw"] = provider_result.raw_text

    create_audit_log(
        db,
        entity_type="ai",
        entity_id=str(uuid.uuid4()),
        action=SCOPE_ACTIONS.get(scope, "AI_RUN"),
        actor=actor,
        new_value=parsed_output,
        metadata=metadata,
    )
