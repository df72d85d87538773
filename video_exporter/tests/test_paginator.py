"""Tests for the page-by-page collection loop."""

from __future__ import annotations

import pytest

from video_exporter.services.canonical import CanonicalVideo
from video_exporter.services.errors import RateLimitedError
from video_exporter.services.paginator import Page, Paginator, Termination, is_last_page

pytest_plugins = ("pytest_asyncio",)


def _videos(count: int, prefix: str = "Video") -> list[CanonicalVideo]:
    return [CanonicalVideo(title=f"{prefix} {index}", playback_link=f"https://example.com/{prefix}/{index}") for index in range(count)]


class _Sleeps:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.mark.asyncio
async def test_short_page_stops_after_partial_page() -> None:
    sizes = [100, 100, 37]
    requested: list[int] = []

    async def fetch(page_index: int, cursor: str | None) -> Page:
        requested.append(page_index)
        return Page(items=_videos(sizes[page_index - 1], prefix=f"p{page_index}"))

    sleeps = _Sleeps()
    progress: list[tuple[int, int]] = []
    paginator = Paginator(
        page_size=100,
        termination=Termination.SHORT_PAGE,
        observer=lambda page, items: progress.append((page, items)),
        delay_seconds=0.2,
        sleep=sleeps,
    )

    records = await paginator.collect(fetch)

    assert requested == [1, 2, 3]
    assert len(records) == 237
    assert paginator.pages_fetched == 3
    assert progress == [(1, 100), (2, 200), (3, 237)]
    # No delay after the final page
    assert sleeps.calls == [0.2, 0.2]


@pytest.mark.asyncio
async def test_empty_first_page_yields_no_records() -> None:
    async def fetch(page_index: int, cursor: str | None) -> Page:
        return Page()

    sleeps = _Sleeps()
    paginator = Paginator(page_size=100, termination=Termination.SHORT_PAGE, delay_seconds=1, sleep=sleeps)

    assert await paginator.collect(fetch) == []
    assert paginator.pages_fetched == 1
    assert sleeps.calls == []


@pytest.mark.asyncio
async def test_cursor_termination_follows_next_token() -> None:
    cursors: list[str | None] = []
    pages = {None: ("abc", 2), "abc": ("def", 2), "def": (None, 1)}

    async def fetch(page_index: int, cursor: str | None) -> Page:
        cursors.append(cursor)
        next_cursor, count = pages[cursor]
        return Page(items=_videos(count, prefix=str(cursor)), next_cursor=next_cursor)

    paginator = Paginator(page_size=300, termination=Termination.NEXT_CURSOR, delay_seconds=0)
    records = await paginator.collect(fetch)

    assert cursors == [None, "abc", "def"]
    assert len(records) == 5


@pytest.mark.asyncio
async def test_single_response_fetches_once() -> None:
    calls = 0

    async def fetch(page_index: int, cursor: str | None) -> Page:
        nonlocal calls
        calls += 1
        return Page(items=_videos(250))

    paginator = Paginator(page_size=100, termination=Termination.SINGLE_RESPONSE, delay_seconds=0)

    assert len(await paginator.collect(fetch)) == 250
    assert calls == 1


@pytest.mark.asyncio
async def test_failed_page_aborts_collection() -> None:
    async def fetch(page_index: int, cursor: str | None) -> Page:
        if page_index == 2:
            raise RateLimitedError("slow down", provider="vimeo", status_code=429)
        return Page(items=_videos(100))

    paginator = Paginator(page_size=100, termination=Termination.SHORT_PAGE, delay_seconds=0)

    with pytest.raises(RateLimitedError):
        await paginator.collect(fetch)
    assert paginator.pages_fetched == 1


def test_short_page_uses_raw_count_when_items_were_skipped() -> None:
    # 100 raw items with some filtered during mapping is still a full page
    page = Page(items=_videos(60), raw_count=100)
    assert is_last_page(Termination.SHORT_PAGE, page, 100) is False
    assert is_last_page(Termination.SHORT_PAGE, Page(items=_videos(99)), 100) is True


def test_paginator_rejects_non_positive_page_size() -> None:
    with pytest.raises(ValueError):
        Paginator(page_size=0, termination=Termination.SHORT_PAGE)
