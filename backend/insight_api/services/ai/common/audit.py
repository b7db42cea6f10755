"""AI audit logging: one structured log line per generation run.

Prompts may hold user content (PDF text, chat questions), so only a SHA-256
hash of the prompt is ever logged.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any

logger = logging.getLogger(__name__)


def prompt_hash(prompt_text: str) -> str:
    return hashlib.sha256((prompt_text or "").encode()).hexdigest()


def log_ai_run(*, scope: str, prompt_text: str, outcome: Any) -> dict[str, Any]:
    """Log the result of one ``generate`` call and return the logged fields."""
    attempts = getattr(outcome, "attempts", []) or []
    metadata: dict[str, Any] = {
        "scope": scope,
        "prompt_hash": prompt_hash(prompt_text),
        "attempts": len(attempts),
        "outcome": type(outcome).__name__,
    }

    provider = getattr(outcome, "provider", None)
    if provider:
        metadata["provider"] = provider
        metadata["model"] = getattr(outcome, "model", "")
    if hasattr(outcome, "fallback_used"):
        metadata["fallback_used"] = outcome.fallback_used
    if hasattr(outcome, "all_rate_limited"):
        metadata["last_error_kind"] = outcome.last_error_kind.value
        metadata["all_rate_limited"] = outcome.all_rate_limited
        metadata["short_circuited"] = outcome.short_circuited

    if getattr(outcome, "success", False):
        logger.info("AI_RUN %s", metadata)
    else:
        logger.warning("AI_RUN %s", metadata)
    return metadata
