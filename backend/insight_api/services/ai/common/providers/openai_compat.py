"""OpenAI-compatible chat-completions providers: NVIDIA NIM and OpenRouter."""

from __future__ import annotations

import logging
import time
from typing import Any

from ..errors import ProviderCallError, error_from_payload
from .base import BaseProvider, ProviderRequest, ProviderResult, elapsed_ms

logger = logging.getLogger(__name__)


class OpenAICompatibleProvider(BaseProvider):
    base_url: str = ""
    default_model: str = ""

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    def _messages(self, request: ProviderRequest) -> list[dict[str, Any]]:
        messages: list[dict[str, Any]] = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})

        if request.image_base64:
            content: Any = [
                {"type": "text", "text": request.prompt},
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{request.image_mime_type};base64,{request.image_base64}"},
                },
            ]
        else:
            content = request.prompt
        messages.append({"role": "user", "content": content})
        return messages

    async def generate(self, request: ProviderRequest) -> ProviderResult:
        model = request.model or self.default_model
        t0 = time.monotonic()

        payload: dict[str, Any] = {
            "model": model,
            "messages": self._messages(request),
            "stream": False,
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.top_p is not None:
            payload["top_p"] = request.top_p
        if request.max_tokens:
            payload["max_tokens"] = request.max_tokens

        data = await self._post_json(
            f"{self.base_url}/chat/completions",
            timeout_seconds=request.timeout_seconds,
            headers=self._headers(),
            payload=payload,
        )

        # OpenRouter reports upstream failures inside a 200 body.
        if data.get("error"):
            raise error_from_payload(data)

        choices = data.get("choices") or []
        if not choices:
            raise ProviderCallError(f"Empty choices array from {self.name}")

        message = choices[0].get("message") or {}
        text = message.get("content") or ""
        if not isinstance(text, str) or not text.strip():
            raise ProviderCallError(f"Empty content in {self.name} response")

        usage = data.get("usage") or {}
        return ProviderResult(
            raw_text=text,
            model=model,
            provider=self.name,
            prompt_tokens=usage.get("prompt_tokens", 0),
            completion_tokens=usage.get("completion_tokens", 0),
            latency_ms=elapsed_ms(t0),
        )


class NvidiaProvider(OpenAICompatibleProvider):
    name = "nvidia"
    base_url = "https://integrate.api.nvidia.com/v1"
    default_model = "meta/llama-3.1-405b-instruct"


class OpenRouterProvider(OpenAICompatibleProvider):
    name = "openrouter"
    base_url = "https://openrouter.ai/api/v1"
    default_model = "meta-llama/llama-3.3-70b-instruct:free"

    def __init__(self, api_key: str = "", *, referer: str = "", title: str = "", transport=None) -> None:
        super().__init__(api_key, transport=transport)
        self._referer = referer
        self._title = title

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        if self._referer:
            headers["HTTP-Referer"] = self._referer
        if self._title:
            headers["X-Title"] = self._title
        return headers
