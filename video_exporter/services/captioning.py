"""Suggest a video title by reading its thumbnail with a vision model."""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import lru_cache

from openai import AsyncOpenAI

from video_exporter.core.config import settings

logger = logging.getLogger(__name__)

TITLE_UNAVAILABLE = "Title unavailable"
DEFAULT_CONFIDENCE = 0.8

SYSTEM_PROMPT = (
    "You are an expert at reading text in video thumbnails. Extract any visible text or titles from"
    " the image and suggest a descriptive title. Focus on any overlaid text, titles, or captions."
    " If there is no readable text, describe the main subject matter instead. Keep the response"
    " concise and in the language the content appears to be in."
    ' Always respond with JSON in this format: {"title": "extracted or suggested title", "confidence": 0.9}'
)


class CaptioningError(RuntimeError):
    """Raised when the captioning service fails or answers with unusable content."""


@dataclass(slots=True)
class CaptionResult:
    title: str
    confidence: float


Captioner = Callable[[str, str, str | None], Awaitable[CaptionResult]]


def _clamp(value: float) -> float:
    return min(max(value, 0.0), 1.0)


def parse_caption_payload(content: str) -> CaptionResult:
    """Parse the model's JSON answer, falling back through the known title keys."""

    content = (content or "").strip()
    if content.startswith("```"):
        # Handle responses wrapped in Markdown code fences
        content = content.strip("`\n")
        if content.startswith("json"):
            content = content[4:].strip()

    try:
        payload = json.loads(content) if content else {}
    except ValueError as exc:
        raise CaptioningError("Unable to parse captioning response") from exc
    if not isinstance(payload, dict):
        raise CaptioningError("Captioning response is not a JSON object")

    title = TITLE_UNAVAILABLE
    for key in ("title", "extracted_text", "suggestion"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            title = value.strip()
            break

    confidence = payload.get("confidence")
    try:
        score = float(confidence) if confidence is not None else DEFAULT_CONFIDENCE
    except (TypeError, ValueError):
        score = DEFAULT_CONFIDENCE
    return CaptionResult(title=title, confidence=_clamp(score))


@lru_cache
def _get_openai_client() -> AsyncOpenAI:
    if not settings.openai_api_key:
        raise CaptioningError("OpenAI API key is not configured")
    kwargs: dict[str, str] = {"api_key": settings.openai_api_key}
    if settings.openai_base_url:
        kwargs["base_url"] = settings.openai_base_url
    return AsyncOpenAI(**kwargs)


def _client_for(api_key: str | None) -> AsyncOpenAI:
    if not api_key:
        return _get_openai_client()
    kwargs: dict[str, str] = {"api_key": api_key}
    if settings.openai_base_url:
        kwargs["base_url"] = settings.openai_base_url
    return AsyncOpenAI(**kwargs)


async def caption_thumbnail(thumbnail_url: str, original_title: str, api_key: str | None = None) -> CaptionResult:
    """Ask the vision model for a title; ``api_key`` overrides the configured key."""

    if not thumbnail_url:
        raise CaptioningError("Thumbnail URL is required")

    client = _client_for(api_key)
    try:
        response = await client.chat.completions.create(
            model=settings.openai_model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "text",
                            "text": (
                                "Analyze this video thumbnail and extract or suggest a meaningful title."
                                f' The original filename is: "{original_title}".'
                                " Look for any text, titles, or captions in the image. Respond with JSON containing the title."
                            ),
                        },
                        {"type": "image_url", "image_url": {"url": thumbnail_url}},
                    ],
                },
            ],
            max_tokens=settings.openai_max_tokens,
            response_format={"type": "json_object"},
        )
    except Exception as exc:
        logger.exception("Captioning request failed", extra={"thumbnail_url": thumbnail_url})
        raise CaptioningError("Failed to analyze thumbnail") from exc

    content = ""
    if response.choices:
        content = response.choices[0].message.content or ""
    return parse_caption_payload(content)


__all__ = [
    "CaptionResult",
    "Captioner",
    "CaptioningError",
    "TITLE_UNAVAILABLE",
    "caption_thumbnail",
    "parse_caption_payload",
]
