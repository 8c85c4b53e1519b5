"""Provider contract and the shared OpenAI-compatible chat completions client."""

from __future__ import annotations

import abc
import time
from dataclasses import dataclass
from typing import Optional

import httpx


@dataclass(frozen=True)
class ProviderResult:
    raw_text: str
    model: str
    provider: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    latency_ms: float = 0.0


class BaseProvider(abc.ABC):
    name: str = "base"

    @abc.abstractmethod
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
        """Send *prompt* and return a ``ProviderResult``; raise on transport or HTTP errors."""


class ChatCompletionsProvider(BaseProvider):
    """Bearer-token JSON client for ``/chat/completions`` style endpoints."""

    endpoint: str = ""
    default_model: str = ""

    def __init__(self, api_key: str, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._api_key = api_key
        self._transport = transport

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
        model = model or self.default_model
        messages: list[dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        t0 = time.monotonic()
        async with httpx.AsyncClient(timeout=timeout_seconds, transport=self._transport) as client:
            resp = await client.post(
                self.endpoint,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "model": model,
                    "max_tokens": max_tokens,
                    "temperature": temperature,
                    "messages": messages,
                },
            )
            resp.raise_for_status()
            data = resp.json()
        elapsed = (time.monotonic() - t0) * 1000

        text = data["choices"][0]["message"]["content"] or ""
        usage = data.get("usage") or {}
        return ProviderResult(
            raw_text=text,
            model=model,
            provider=self.name,
            prompt_tokens=usage.get("prompt_tokens", 0),
            completion_tokens=usage.get("completion_tokens", 0),
            latency_ms=round(elapsed, 2),
        )
