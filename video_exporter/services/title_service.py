"""Generate AI titles, one at a time or in rate-limited batches."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from video_exporter.core.config import settings
from video_exporter.services import title_cache
from video_exporter.services.captioning import Captioner, caption_thumbnail

logger = logging.getLogger(__name__)

BulkProgressCallback = Callable[[int, int, int], None]


@dataclass(slots=True)
class TitleRequest:
    video_id: str | None
    thumbnail_url: str
    original_title: str


@dataclass(slots=True)
class TitleResult:
    video_id: str
    ai_title: str
    confidence: float | None = None
    cached: bool = False


@dataclass(slots=True)
class TitleFailure:
    video_id: str
    error: str


@dataclass(slots=True)
class BulkOutcome:
    results: list[TitleResult] = field(default_factory=list)
    errors: list[TitleFailure] = field(default_factory=list)
    total: int = 0

    @property
    def successful(self) -> int:
        return len(self.results)

    @property
    def failed(self) -> int:
        return len(self.errors)

    @property
    def partial(self) -> bool:
        return self.failed > 0 and self.successful > 0

    def titles(self) -> dict[str, str]:
        """``{video_id: ai_title}``; later results win for repeated ids."""

        return {result.video_id: result.ai_title for result in self.results}


async def lookup_titles(session: AsyncSession, video_ids: Sequence[str]) -> dict[str, str]:
    return await title_cache.lookup_many(session, video_ids)


async def generate_title(
    session: AsyncSession,
    request: TitleRequest,
    *,
    captioner: Captioner = caption_thumbnail,
    api_key: str | None = None,
) -> TitleResult:
    """Caption one thumbnail and upsert the result, replacing any cached title.

    Without a ``video_id`` the suggestion is returned but not cached.
    """

    caption = await captioner(request.thumbnail_url, request.original_title, api_key)
    if not request.video_id:
        return TitleResult(video_id="", ai_title=caption.title, confidence=caption.confidence)
    await title_cache.upsert(
        session,
        video_id=request.video_id,
        original_title=request.original_title,
        ai_title=caption.title,
        thumbnail_url=request.thumbnail_url,
        confidence=caption.confidence,
    )
    return TitleResult(video_id=request.video_id, ai_title=caption.title, confidence=caption.confidence)


async def generate_titles_bulk(
    session: AsyncSession,
    requests: Sequence[TitleRequest],
    *,
    captioner: Captioner = caption_thumbnail,
    api_key: str | None = None,
    batch_size: int | None = None,
    batch_delay_seconds: float | None = None,
    on_progress: BulkProgressCallback | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> BulkOutcome:
    """Process ``requests`` in fixed-size batches.

    Within a batch, cache hits short-circuit and misses are captioned
    concurrently. Per-record failures are collected, never raised.
    """

    size = max(batch_size or settings.bulk_batch_size, 1)
    delay = (
        batch_delay_seconds if batch_delay_seconds is not None else max(settings.bulk_batch_delay_ms, 0) / 1000.0
    )
    outcome = BulkOutcome(total=len(requests))
    processed = 0

    for start in range(0, len(requests), size):
        batch = list(requests[start : start + size])
        cached = await title_cache.lookup_many(session, [request.video_id for request in batch])

        misses: list[TitleRequest] = []
        for request in batch:
            title = cached.get(request.video_id)
            if title:
                outcome.results.append(TitleResult(video_id=request.video_id, ai_title=title, cached=True))
            else:
                misses.append(request)

        captions = await asyncio.gather(
            *(captioner(request.thumbnail_url, request.original_title, api_key) for request in misses),
            return_exceptions=True,
        )

        # AsyncSession is not safe for concurrent use, so upserts run after the batch settles
        for request, caption in zip(misses, captions):
            if isinstance(caption, BaseException):
                if not isinstance(caption, Exception):
                    raise caption
                logger.warning(
                    "Title generation failed",
                    extra={"video_id": request.video_id, "error": str(caption)},
                )
                outcome.errors.append(TitleFailure(video_id=request.video_id, error=str(caption) or type(caption).__name__))
                continue
            try:
                # a savepoint per record keeps the session usable after a failed write
                async with session.begin_nested():
                    await title_cache.upsert(
                        session,
                        video_id=request.video_id,
                        original_title=request.original_title,
                        ai_title=caption.title,
                        thumbnail_url=request.thumbnail_url,
                        confidence=caption.confidence,
                    )
            except SQLAlchemyError as exc:
                logger.warning(
                    "Caching generated title failed",
                    extra={"video_id": request.video_id, "error": str(exc)},
                )
                outcome.errors.append(TitleFailure(video_id=request.video_id, error="Failed to save generated title"))
                continue
            outcome.results.append(
                TitleResult(video_id=request.video_id, ai_title=caption.title, confidence=caption.confidence)
            )

        processed += len(batch)
        if on_progress is not None:
            on_progress(processed, outcome.total, outcome.failed)

        if start + size < len(requests) and delay > 0:
            await sleep(delay)

    logger.info(
        "Bulk title generation finished",
        extra={"total": outcome.total, "successful": outcome.successful, "failed": outcome.failed},
    )
    return outcome
