"""Google Gemini provider (Generative Language REST API)."""

from __future__ import annotations

import logging
import time
from typing import Any

from ..errors import ProviderCallError, error_from_payload
from .base import BaseProvider, ProviderRequest, ProviderResult, elapsed_ms

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


def _inline_image(parts: list[Any]) -> dict[str, Any] | None:
    for part in parts:
        if not isinstance(part, dict):
            continue
        blob = part.get("inlineData") or part.get("inline_data")
        if isinstance(blob, dict) and blob.get("data"):
            return blob
    return None


class GeminiProvider(BaseProvider):
    name = "gemini"

    def _build_payload(self, request: ProviderRequest) -> dict[str, Any]:
        parts: list[dict[str, Any]] = [{"text": request.prompt}]
        if request.image_base64:
            parts.append(
                {
                    "inline_data": {
                        "mime_type": request.image_mime_type,
                        "data": request.image_base64,
                    }
                }
            )

        payload: dict[str, Any] = {"contents": [{"role": "user", "parts": parts}]}
        if request.system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": request.system_prompt}]}

        generation_config: dict[str, Any] = {}
        if request.temperature is not None:
            generation_config["temperature"] = request.temperature
        if request.top_p is not None:
            generation_config["topP"] = request.top_p
        if request.max_tokens:
            generation_config["maxOutputTokens"] = request.max_tokens
        if generation_config:
            payload["generationConfig"] = generation_config
        return payload

    async def generate(self, request: ProviderRequest) -> ProviderResult:
        model = request.model or "gemini-flash-latest"
        t0 = time.monotonic()

        data = await self._post_json(
            f"{GEMINI_BASE_URL}/models/{model}:generateContent",
            timeout_seconds=request.timeout_seconds,
            headers={
                "x-goog-api-key": self._api_key,
                "Content-Type": "application/json",
            },
            payload=self._build_payload(request),
        )

        if data.get("error"):
            raise error_from_payload(data)

        candidates = data.get("candidates") or []
        if not candidates:
            block_reason = (data.get("promptFeedback") or {}).get("blockReason")
            raise ProviderCallError(f"Gemini returned no candidates (blockReason={block_reason})")

        parts = (candidates[0].get("content") or {}).get("parts") or []
        usage = data.get("usageMetadata", {})

        # Image models answer with an inline blob; it is returned as base64 text.
        image = _inline_image(parts)
        if image is not None:
            return ProviderResult(
                raw_text=image["data"],
                model=model,
                provider=self.name,
                prompt_tokens=usage.get("promptTokenCount", 0),
                completion_tokens=usage.get("candidatesTokenCount", 0),
                latency_ms=elapsed_ms(t0),
                extra={"mime_type": image.get("mimeType") or image.get("mime_type") or "image/png"},
            )

        text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
        if not text.strip():
            raise ProviderCallError("Empty content in Gemini response")

        return ProviderResult(
            raw_text=text,
            model=model,
            provider=self.name,
            prompt_tokens=usage.get("promptTokenCount", 0),
            completion_tokens=usage.get("candidatesTokenCount", 0),
            latency_ms=elapsed_ms(t0),
        )
