"""Fetch, sort and merge cached AI titles into one result set."""

from __future__ import annotations

import logging
import re
import unicodedata
from collections.abc import Awaitable, Callable, Mapping

from video_exporter.services.aggregation_session import AggregationSession, FetchProgress
from video_exporter.services.canonical import CanonicalVideo, ProviderContainer
from video_exporter.services.filtering import DateWindow, recompute, window_range
from video_exporter.services.providers.base import ProviderAdapter

logger = logging.getLogger(__name__)

TitleLookup = Callable[[list[str]], Awaitable[dict[str, str]]]

_NUMBER_RE = re.compile(r"(\d+)")


def _fold(text: str) -> str:
    """Case- and accent-insensitive form of ``text``."""

    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()


def natural_sort_key(title: str) -> tuple[tuple[int, int, str], ...]:
    """Key comparing digit runs by value: "Video 2" sorts before "Video 10"."""

    parts: list[tuple[int, int, str]] = []
    # odd positions of the split are the captured digit runs
    for index, token in enumerate(_NUMBER_RE.split(_fold(title or ""))):
        if not token:
            continue
        if index % 2:
            parts.append((0, int(token), ""))
        else:
            parts.append((1, 0, token))
    return tuple(parts)


def sort_videos(videos: list[CanonicalVideo]) -> list[CanonicalVideo]:
    return sorted(videos, key=lambda video: natural_sort_key(video.title))


def dedupe_videos(videos: list[CanonicalVideo]) -> list[CanonicalVideo]:
    """Collapse records sharing a ``video_id``.

    The first occurrence keeps its position; a later duplicate carrying an
    AI title overwrites the earlier one.
    """

    by_id: dict[str, CanonicalVideo] = {}
    unique: list[CanonicalVideo] = []
    for video in videos:
        if not video.video_id:
            unique.append(video)
            continue
        existing = by_id.get(video.video_id)
        if existing is None:
            by_id[video.video_id] = video
            unique.append(video)
        elif video.ai_title:
            existing.ai_title = video.ai_title
    return unique


def merge_cached_titles(videos: list[CanonicalVideo], cached: Mapping[str, str]) -> int:
    """Fill ``ai_title`` from the cache only where the record has none; returns the count filled."""

    filled = 0
    for video in videos:
        if video.ai_title or not video.video_id:
            continue
        title = cached.get(video.video_id)
        if title:
            video.ai_title = title
            filled += 1
    return filled


def replace_results(
    session: AggregationSession,
    videos: list[CanonicalVideo],
    *,
    container: ProviderContainer | None = None,
    date_window: DateWindow = DateWindow.ALL,
) -> None:
    """Install a fresh result set fetched from ``container``; clears the search filter."""

    session.container = container
    session.all_loaded = list(videos)
    session.displayed = list(videos)
    session.search_query = ""
    session.date_window = DateWindow(date_window)


def apply_generated_titles(session: AggregationSession, titles: Mapping[str, str]) -> int:
    """Write freshly generated titles into the loaded set, overwriting older values."""

    updated = 0
    for video in session.all_loaded:
        if video.video_id and video.video_id in titles:
            video.ai_title = titles[video.video_id]
            updated += 1
    recompute(session)
    return updated


async def load_containers(session: AggregationSession, adapter: ProviderAdapter) -> list[ProviderContainer]:
    session.select_provider(adapter.provider, adapter.credentials)
    containers = await adapter.list_containers()
    session.set_containers(containers)
    logger.info("Loaded containers", extra={"provider": adapter.provider.value, "count": len(containers)})
    return containers


async def aggregate(
    session: AggregationSession,
    adapter: ProviderAdapter,
    *,
    title_lookup: TitleLookup,
    container: ProviderContainer | None = None,
    date_window: DateWindow = DateWindow.ALL,
) -> list[CanonicalVideo]:
    """Fetch every page from ``adapter``, sort, merge cached titles and store the result."""

    session.select_provider(adapter.provider, adapter.credentials)
    session.fetch_progress = FetchProgress(running=True)

    date_range = window_range(date_window) if adapter.supports_date_filter else None
    try:
        videos = await adapter.collect(
            container=container,
            date_range=date_range,
            observer=session.record_fetch_progress,
        )
    finally:
        session.fetch_progress.running = False

    videos = dedupe_videos(sort_videos(videos))
    video_ids = [video.video_id for video in videos if video.video_id]
    cached = await title_lookup(video_ids) if video_ids else {}
    filled = merge_cached_titles(videos, cached)

    replace_results(session, videos, container=container, date_window=date_window)
    logger.info(
        "Aggregation complete",
        extra={
            "provider": adapter.provider.value,
            "container": container.uri if container else None,
            "videos": len(videos),
            "cached_titles": filled,
        },
    )
    return session.displayed
