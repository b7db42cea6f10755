"""Mock provider: deterministic responses for local development."""

from __future__ import annotations

import time

from .base import BaseProvider, ProviderRequest, ProviderResult

MOCK_RESPONSE = '{"mock": true, "message": "mock response"}'


class MockProvider(BaseProvider):
    name = "mock"

    def __init__(self, api_key: str = "", *, response_text: str = MOCK_RESPONSE, transport=None) -> None:
        super().__init__(api_key, transport=transport)
        self._response_text = response_text

    async def generate(self, request: ProviderRequest) -> ProviderResult:
        t0 = time.monotonic()
        text = self._response_text
        elapsed = (time.monotonic() - t0) * 1000
        return ProviderResult(
            raw_text=text,
            model=request.model or "mock-v1",
            provider=self.name,
            prompt_tokens=len(request.prompt.split()),
            completion_tokens=len(text.split()),
            latency_ms=round(elapsed, 2),
        )
