"""YouTube video summaries built from title plus transcript."""

from __future__ import annotations

import logging

from fastapi import HTTPException

from insight_api.services import youtube

from ..common.client import raise_for_outcome
from ..common.router import GenerationClientFactory

logger = logging.getLogger(__name__)

MAX_SUMMARY_INPUT_CHARS = 15000

SUMMARY_SYSTEM_PROMPT = """You are an expert YouTube video analyst and technical content writer.

Your task is to generate a detailed, in-depth, professional summary of the provided YouTube content.

RULES:
- Be extensive and detailed; prefer more information over brevity.
- Use clear section headings, bullet points, numbered lists and tables where helpful.
- For technical content include code snippets in Markdown code blocks, examples and step-by-step concepts.
- Separate multiple topics clearly.
- Do not write "this video discusses"; write it as a knowledge report.

OUTPUT FORMAT (Markdown):
### Video Overview
### Key Concepts Explained
### Detailed Breakdown
### Tables / Structured Data (if applicable)
### Code Examples (if applicable)
### Practical Takeaways

If no transcript is available, infer from the title and still produce a long, educational report.
"""


def build_summary_input(title: str, transcript: str) -> str:
    text = f"VIDEO TITLE: {title}\nTRANSCRIPT: {transcript or 'No transcript available'}"
    return text.strip()[:MAX_SUMMARY_INPUT_CHARS]


async def summarize_video(clients: GenerationClientFactory, video_url: str) -> str:
    video_id = youtube.extract_video_id(video_url)
    if not video_id:
        raise HTTPException(400, "Invalid YouTube URL")

    title = await youtube.fetch_video_title(video_id)
    transcript = await youtube.fetch_transcript(video_id)
    if not title and not transcript:
        raise HTTPException(422, "YouTube metadata unavailable for this video.")

    logger.info("Summarizing video %s (transcript chars=%d)", video_id, len(transcript))
    outcome = await clients.generate(
        "summarize",
        build_summary_input(title, transcript),
        system_prompt=SUMMARY_SYSTEM_PROMPT,
    )
    return raise_for_outcome(outcome, action="summarize the video").strip()
