"""Mock provider: deterministic responses for tests and fallback."""

from __future__ import annotations

import json
import time
from typing import Optional

from .base import BaseProvider, ProviderResult

MOCK_FEATURES = {
    "uniqueSellingProposition": "Same-day setup with a guided onboarding checklist.",
    "coreFeatures": ["User registration", "Listings management", "Order tracking"],
    "growthFeatures": ["Referral rewards", "Social sharing"],
}


class MockProvider(BaseProvider):
    """Echoes the user prompt, or returns a canned JSON document when the system prompt asks for JSON."""

    name = "mock"

    async def generate(
        self,
        prompt: str,
        *,
        system_prompt: Optional[str] = None,
        model: str = "",
        temperature: float = 0.4,
        max_tokens: int = 1024,
        timeout_seconds: float = 20.0,
    ) -> ProviderResult:
        t0 = time.monotonic()
        if system_prompt and "JSON" in system_prompt:
            text = json.dumps(MOCK_FEATURES)
        else:
            text = " ".join(prompt.split())
        elapsed = (time.monotonic() - t0) * 1000
        return ProviderResult(
            raw_text=text,
            model=model or "mock-v1",
            provider=self.name,
            prompt_tokens=len(prompt.split()),
            completion_tokens=len(text.split()),
            latency_ms=round(elapsed, 2),
        )
