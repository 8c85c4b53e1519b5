"""AI Router: resolves provider + model for a scope from settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from hostdesk.core.config import get_settings

from .providers import BaseProvider, get_provider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedConfig:
    provider: BaseProvider
    model: str
    temperature: float
    max_tokens: int
    timeout_seconds: float


def resolve(scope: str) -> ResolvedConfig:
    """Resolve provider + model for *scope*.

    Unknown scopes use the mock provider. A configured model outside the
    provider's allowlist is replaced by the first allowed model.
    """
    settings = get_settings()

    provider_name = "mock"
    model = ""
    if scope == "enrichment":
        provider_name = (settings.ai_enrichment_provider or "mock").lower().strip()
        model = (settings.ai_enrichment_model or "").strip()

    allowed_models = settings.ai_allowed_models.get(provider_name, [])
    if allowed_models and model not in allowed_models:
        if model:
            logger.warning(
                "Model %r not in allowlist for %r - using %r",
                model,
                provider_name,
                allowed_models[0],
            )
        model = allowed_models[0]

    return ResolvedConfig(
        provider=get_provider(provider_name),
        model=model,
        temperature=settings.ai_temperature,
        max_tokens=settings.ai_max_tokens,
        timeout_seconds=settings.ai_timeout_seconds,
    )
