"""Mock provider — deterministic responses for tests and local runs."""

from __future__ import annotations

import json
import time

from .base import BaseProvider, ProviderResult

MOCK_RESPONSE = {
    "amount": None,
    "type": "expense",
    "category": None,
    "merchant": None,
    "notes": "mock",
    "confidence": 0.0,
}


class MockProvider(BaseProvider):
    name = "mock"

    async def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        model: str = "",
        temperature: float = 0.3,
        max_tokens: int = 150,
        timeout_seconds: float = 5.0,
        json_mode: bool = False,
    ) -> ProviderResult:
        t0 = time.monotonic()
        text = json.dumps(MOCK_RESPONSE)
        elapsed = (time.monotonic() - t0) * 1000
        return ProviderResult(
            raw_text=text,
            model=model or "mock-v1",
            provider=self.name,
            prompt_tokens=len(prompt.split()),
            completion_tokens=len(text.split()),
            latency_ms=round(elapsed, 2),
        )
