"""Provider factory: returns the configured provider or raises ``ProviderNotConfigured``."""

from __future__ import annotations

import logging

from hostdesk.core.config import get_settings
from hostdesk.services.errors import ProviderNotConfigured

from .base import BaseProvider, ChatCompletionsProvider, ProviderResult
from .mock import MockProvider

logger = logging.getLogger(__name__)

__all__ = ["get_provider", "BaseProvider", "ChatCompletionsProvider", "ProviderResult", "MockProvider"]


def _not_configured(message: str) -> ProviderNotConfigured:
    logger.error("AI provider unavailable: %s", message)
    return ProviderNotConfigured(message)


def get_provider(provider_name: str) -> BaseProvider:
    """Return a provider instance for *provider_name*.

    ``MockProvider`` is only returned when ``mock`` is asked for by name. A real
    provider outside the allowlist or without an API key is a configuration
    error, so callers see a failed generation instead of canned output.
    """
    settings = get_settings()
    name = provider_name.lower().strip()

    if name == "mock":
        return MockProvider()

    if name not in settings.ai_allowed_providers:
        raise _not_configured(f"provider {name!r} is not in AI_ALLOWED_PROVIDERS")

    if name == "gemini":
        if not settings.gemini_api_key:
            raise _not_configured("GEMINI_API_KEY not configured")
        from .gemini import GeminiProvider

        return GeminiProvider(api_key=settings.gemini_api_key)

    if name == "openai":
        if not settings.openai_api_key:
            raise _not_configured("OPENAI_API_KEY not configured")
        from .openai import OpenAIProvider

        return OpenAIProvider(api_key=settings.openai_api_key)

    raise _not_configured(f"unknown provider {name!r}")
