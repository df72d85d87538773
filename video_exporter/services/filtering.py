"""Client-side search and date-window filtering over loaded videos."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import TYPE_CHECKING

from video_exporter.services.canonical import CanonicalVideo
from video_exporter.services.providers.base import DateRange
from video_exporter.services.providers.registry import supports_date_filter

if TYPE_CHECKING:  # pragma: no cover
    from video_exporter.services.aggregation_session import AggregationSession


class DateWindow(str, Enum):
    ALL = "all"
    LAST_MONTH = "1m"
    LAST_3_MONTHS = "3m"
    LAST_6_MONTHS = "6m"
    LAST_YEAR = "1y"


_WINDOW_DAYS = {
    DateWindow.LAST_MONTH: 30,
    DateWindow.LAST_3_MONTHS: 90,
    DateWindow.LAST_6_MONTHS: 180,
    DateWindow.LAST_YEAR: 365,
}


def window_range(window: DateWindow, *, now: datetime | None = None) -> DateRange | None:
    """Resolve a relative window against the wall clock; None for ``all``."""

    days = _WINDOW_DAYS.get(DateWindow(window))
    if days is None:
        return None
    end = now or datetime.now(timezone.utc)
    return DateRange(start=end - timedelta(days=days), end=end)


def filter_videos(
    videos: list[CanonicalVideo],
    search_query: str = "",
    date_window: DateWindow = DateWindow.ALL,
    *,
    date_capable: bool = False,
    now: datetime | None = None,
) -> list[CanonicalVideo]:
    """Return the displayed subset, preserving input order.

    The date window only narrows results for providers that accept a
    creation-time constraint; for every other provider it is ignored.
    Records without a known creation time are kept.
    """

    query = (search_query or "").strip().casefold()
    cutoff: datetime | None = None
    if date_capable:
        bounds = window_range(date_window, now=now)
        cutoff = bounds.start if bounds else None

    displayed: list[CanonicalVideo] = []
    for video in videos:
        if query and query not in (video.title or "").casefold():
            continue
        if cutoff is not None and video.created_at is not None and video.created_at < cutoff:
            continue
        displayed.append(video)
    return displayed


def recompute(
    session: AggregationSession,
    *,
    search_query: str | None = None,
    date_window: DateWindow | None = None,
    now: datetime | None = None,
) -> list[CanonicalVideo]:
    """Derive ``session.displayed`` from ``session.all_loaded`` and the active filters."""

    if search_query is not None:
        session.search_query = search_query
    if date_window is not None:
        session.date_window = DateWindow(date_window)
    date_capable = session.provider is not None and supports_date_filter(session.provider)
    session.displayed = filter_videos(
        session.all_loaded,
        session.search_query,
        session.date_window,
        date_capable=date_capable,
        now=now,
    )
    return session.displayed
