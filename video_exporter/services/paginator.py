"""Drive a provider listing page by page until it is exhausted."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

from video_exporter.core.config import settings
from video_exporter.services.canonical import CanonicalVideo

logger = logging.getLogger(__name__)


class Termination(str, Enum):
    """How a provider signals that the last page has been reached."""

    SHORT_PAGE = "short_page"
    NEXT_CURSOR = "next_cursor"
    SINGLE_RESPONSE = "single_response"


@dataclass(slots=True)
class Page:
    """One provider page already mapped to canonical records.

    ``raw_count`` is the number of items the provider returned before any
    were skipped during mapping; short-page detection uses it.
    """

    items: list[CanonicalVideo] = field(default_factory=list)
    next_cursor: str | None = None
    raw_count: int | None = None

    @property
    def size(self) -> int:
        return self.raw_count if self.raw_count is not None else len(self.items)


PageFetcher = Callable[[int, str | None], Awaitable[Page]]
ProgressObserver = Callable[[int, int], None]


def is_last_page(termination: Termination, page: Page, page_size: int) -> bool:
    """Return True when no further page should be requested."""

    if termination is Termination.SINGLE_RESPONSE:
        return True
    if termination is Termination.NEXT_CURSOR:
        return not page.next_cursor
    return page.size < page_size


class Paginator:
    """Sequentially requests pages and concatenates their records.

    A failed page aborts the run; nothing accumulated so far is returned.
    """

    def __init__(
        self,
        *,
        page_size: int,
        termination: Termination,
        observer: ProgressObserver | None = None,
        delay_seconds: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self.page_size = page_size
        self.termination = termination
        self._observer = observer
        self._delay = (
            delay_seconds if delay_seconds is not None else max(settings.page_delay_ms, 0) / 1000.0
        )
        self._sleep = sleep
        self.pages_fetched = 0

    async def collect(self, fetch_page: PageFetcher) -> list[CanonicalVideo]:
        records: list[CanonicalVideo] = []
        page_index = 1
        cursor: str | None = None
        self.pages_fetched = 0

        while True:
            page = await fetch_page(page_index, cursor)
            self.pages_fetched = page_index
            records.extend(page.items)

            if self._observer is not None:
                self._observer(page_index, len(records))
            logger.debug(
                "Fetched page",
                extra={"page": page_index, "page_items": page.size, "total_items": len(records)},
            )

            if is_last_page(self.termination, page, self.page_size):
                break

            cursor = page.next_cursor
            page_index += 1
            if self._delay > 0:
                await self._sleep(self._delay)

        return records
