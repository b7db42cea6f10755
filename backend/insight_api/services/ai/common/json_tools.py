"""Structured JSON extraction from free-form model output, with escape repair."""

from __future__ import annotations

import enum
import json
import logging
import re
from typing import Any

from .errors import ExtractionError

logger = logging.getLogger(__name__)

_THINK_BLOCK_RE = re.compile(r"<think>.*?</think>", re.IGNORECASE | re.DOTALL)
_LEADING_THINK_RE = re.compile(r"^\s*(?:<think>.*?</think>\s*)+", re.IGNORECASE | re.DOTALL)
_UNCLOSED_THINK_RE = re.compile(r"^\s*<think>.*?(?=[\[{])", re.IGNORECASE | re.DOTALL)
_LEADING_FENCE_RE = re.compile(r"^```[A-Za-z0-9_+-]*[ \t]*\n?")
_TRAILING_FENCE_RE = re.compile(r"\n?```\s*$")

_SIMPLE_ESCAPES = frozenset('"\\/bfnrt')
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


class OutputShape(str, enum.Enum):
    RAW_TEXT = "raw_text"
    JSON_OBJECT = "json_object"
    JSON_ARRAY = "json_array"


_DELIMITERS = {
    OutputShape.JSON_OBJECT: ("{", "}"),
    OutputShape.JSON_ARRAY: ("[", "]"),
}


def strip_reasoning(text: str) -> str:
    """Drop every ``<think>...</think>`` block from a plain-text answer."""
    cleaned = _THINK_BLOCK_RE.sub("", text)
    return cleaned.strip()


def strip_leading_reasoning(text: str) -> str:
    """Drop only the reasoning blocks at the very start of *text*.

    Tags later in the output may be part of the payload (chapter content
    that explains reasoning models, say) and are kept.
    """
    return _LEADING_THINK_RE.sub("", text, count=1).strip()


def strip_code_fence(text: str) -> str:
    """Remove a fence marker sitting at the very start / end of *text*."""
    s = text.strip()
    if s.startswith("```"):
        s = _LEADING_FENCE_RE.sub("", s, count=1)
    if s.endswith("```"):
        s = _TRAILING_FENCE_RE.sub("", s, count=1)
    return s.strip()


def repair_escapes(text: str) -> str:
    """Double every backslash that does not start a legal JSON escape.

    Single left-to-right pass: a legal escape (including the six-character
    ``\\uXXXX``) is copied as a unit, so its characters are never re-examined.
    """
    out: list[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch != "\\":
            out.append(ch)
            i += 1
            continue

        nxt = text[i + 1] if i + 1 < n else ""
        if nxt and nxt in _SIMPLE_ESCAPES:
            out.append(text[i : i + 2])
            i += 2
        elif nxt == "u" and len(text[i + 2 : i + 6]) == 4 and all(c in _HEX_DIGITS for c in text[i + 2 : i + 6]):
            out.append(text[i : i + 6])
            i += 6
        else:
            out.append("\\\\")
            i += 1
    return "".join(out)


def _detect_shape(text: str) -> OutputShape:
    obj = text.find("{")
    arr = text.find("[")
    if arr != -1 and (obj == -1 or arr < obj):
        return OutputShape.JSON_ARRAY
    return OutputShape.JSON_OBJECT


def extract_structured(raw_text: str, shape: OutputShape | None = None) -> Any:
    """Extract and parse the JSON payload embedded in *raw_text*.

    Steps: drop leading reasoning blocks and surrounding code fences, slice from the
    first opening delimiter to the last closing one, repair illegal
    backslash escapes, then parse. Raises ``ExtractionError``.

    Idempotent on valid JSON: legal escapes are left untouched by the repair.
    """
    text = strip_code_fence(strip_leading_reasoning(raw_text or ""))
    if text.lower().startswith("<think>"):
        # Reasoning block was never closed; skip to the payload.
        text = _UNCLOSED_THINK_RE.sub("", text, count=1)

    if shape is None or shape is OutputShape.RAW_TEXT:
        shape = _detect_shape(text)
    open_ch, close_ch = _DELIMITERS[shape]

    start = text.find(open_ch)
    end = text.rfind(close_ch)
    if start == -1 or end == -1 or end < start:
        raise ExtractionError(
            ExtractionError.NO_DELIMITERS,
            f"no {open_ch}...{close_ch} span in model output",
        )

    span = repair_escapes(text[start : end + 1])
    try:
        # strict=False tolerates raw newlines/tabs inside string literals.
        return json.loads(span, strict=False)
    except json.JSONDecodeError as exc:
        logger.debug("JSON parse failed after repair: %s", exc)
        raise ExtractionError(ExtractionError.PARSE_FAILED, str(exc)) from exc
