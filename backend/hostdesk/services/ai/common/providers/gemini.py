"""Google Gemini through its OpenAI-compatible endpoint."""

from __future__ import annotations

from .base import ChatCompletionsProvider


class GeminiProvider(ChatCompletionsProvider):
    name = "gemini"
    endpoint = "https://generativelanguage.googleapis.com/v1beta/openai/chat/completions"
    default_model = "gemini-2.5-flash"
