"""AI tools: grammar correction, image to text, image and thumbnail generation."""

from __future__ import annotations

import logging
import re

from ..common.client import raise_for_outcome
from ..common.router import GenerationClientFactory

logger = logging.getLogger(__name__)

GRAMMAR_MAX_WORDS = 2000
DEFAULT_OCR_PROMPT = "Extract all text from this image."

_WS_RE = re.compile(r"\s+")


def trim_to_words(text: str, max_words: int = GRAMMAR_MAX_WORDS) -> str:
    words = [w for w in _WS_RE.split(text.strip()) if w]
    if len(words) <= max_words:
        return text
    return " ".join(words[:max_words])


async def check_grammar(clients: GenerationClientFactory, text: str) -> tuple[str, str]:
    """Return ``(original_text, corrected_text)``; input is cut to the first 2000 words."""
    trimmed = trim_to_words(text)
    prompt = f'Correct the grammar of the following text and return only the corrected version:\n\n"{trimmed}"'
    outcome = await clients.generate("grammar", prompt)
    corrected = raise_for_outcome(outcome, action="check grammar")
    return trimmed, corrected.strip()


def _split_data_url(image_base64: str) -> tuple[str, str]:
    if image_base64.startswith("data:") and "," in image_base64:
        header, data = image_base64.split(",", 1)
        mime = header[5:].split(";", 1)[0] or "image/png"
        return data, mime
    return image_base64, "image/png"


async def image_to_text(clients: GenerationClientFactory, image_base64: str, prompt: str | None = None) -> str:
    data, mime = _split_data_url(image_base64.strip())
    outcome = await clients.generate(
        "image_to_text",
        prompt or DEFAULT_OCR_PROMPT,
        image_base64=data,
        image_mime_type=mime,
    )
    return raise_for_outcome(outcome, action="extract text from the image").strip()


async def generate_image(clients: GenerationClientFactory, prompt: str) -> str:
    """Return the generated image as base64 text."""
    outcome = await clients.generate("image", prompt)
    return raise_for_outcome(outcome, action="generate the image")


def thumbnail_prompt(style: str) -> str:
    return (
        "Create a professional high-impact YouTube thumbnail background based on the attached image. "
        f"Style: {style.strip()} "
        "Visual Requirements: "
        "- Cinematic lighting, ultra-detailed, sharp focus, high contrast. "
        "- Studio quality, vibrant colors, realistic textures. "
        "- Dramatic composition, professional photography style. "
        "- Keep the subject recognizable but enhance the overall look."
    )


async def generate_thumbnail(clients: GenerationClientFactory, image_base64: str, style: str) -> tuple[str, str]:
    """Restyle the uploaded image; returns ``(image_base64, prompt_used)``.

    The background comes back as-is: headline text is not composited onto it.
    """
    data, mime = _split_data_url(image_base64.strip())
    prompt = thumbnail_prompt(style)
    outcome = await clients.generate(
        "thumbnail",
        prompt,
        image_base64=data,
        image_mime_type=mime,
        temperature=0.7,
    )
    return raise_for_outcome(outcome, action="generate the thumbnail"), prompt
