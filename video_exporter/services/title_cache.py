"""Persistent store of AI-generated titles keyed by provider video id."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from video_exporter.db.models import AiTitle

# Keeps IN (...) lists under driver parameter limits
LOOKUP_CHUNK_SIZE = 500


async def lookup(session: AsyncSession, video_id: str) -> AiTitle | None:
    return await session.scalar(select(AiTitle).where(AiTitle.video_id == video_id))


async def lookup_many(session: AsyncSession, video_ids: Iterable[str]) -> dict[str, str]:
    """Return ``{video_id: ai_title}`` for every id present in the cache."""

    unique_ids = list(dict.fromkeys(video_id for video_id in video_ids if video_id))
    titles: dict[str, str] = {}
    for start in range(0, len(unique_ids), LOOKUP_CHUNK_SIZE):
        chunk = unique_ids[start : start + LOOKUP_CHUNK_SIZE]
        rows = await session.execute(
            select(AiTitle.video_id, AiTitle.ai_title).where(AiTitle.video_id.in_(chunk))
        )
        titles.update({video_id: ai_title for video_id, ai_title in rows})
    return titles


async def upsert(
    session: AsyncSession,
    *,
    video_id: str,
    original_title: str,
    ai_title: str,
    thumbnail_url: str | None,
    confidence: float,
) -> AiTitle:
    """Insert the entry, or overwrite title and confidence of the existing one.

    ``original_title`` and ``thumbnail_url`` keep the values of the first write.
    """

    now = datetime.now(timezone.utc)
    existing = await lookup(session, video_id)
    if existing:
        existing.ai_title = ai_title
        existing.confidence = confidence
        existing.updated_at = now
        await session.flush()
        return existing

    entry = AiTitle(
        video_id=video_id,
        original_title=original_title,
        ai_title=ai_title,
        thumbnail_url=thumbnail_url,
        confidence=confidence,
        created_at=now,
        updated_at=now,
    )
    session.add(entry)
    await session.flush()
    return entry


async def delete(session: AsyncSession, video_id: str) -> bool:
    """Remove one cached entry; returns True when it existed."""

    entry = await lookup(session, video_id)
    if entry is None:
        return False
    await session.delete(entry)
    await session.flush()
    return True
