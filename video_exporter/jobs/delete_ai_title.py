"""Utility to drop cached AI titles by provider video ID."""

from __future__ import annotations

import asyncio

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from video_exporter.db.session import session_scope
from video_exporter.services import title_cache


async def delete_ai_titles(
    video_ids: list[str], factory: async_sessionmaker[AsyncSession] | None = None
) -> int:
    """Delete each cached title; returns how many existed."""

    deleted = 0
    async with session_scope(factory) as session:
        for video_id in video_ids:
            if await title_cache.delete(session, video_id):
                print(f"Deleted AI title for {video_id}.")
                deleted += 1
            else:
                print(f"AI title for {video_id} not found.")
    return deleted


if __name__ == "__main__":
    import sys

    if len(sys.argv) < 2:
        print("Usage: python -m video_exporter.jobs.delete_ai_title <VIDEO_ID> [<VIDEO_ID> ...]")
        sys.exit(1)

    asyncio.run(delete_ai_titles(sys.argv[1:]))
