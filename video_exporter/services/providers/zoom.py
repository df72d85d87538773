"""Zoom cloud recordings via a Server-to-Server OAuth app.

A single app may be granted either the account-level recordings scope or
the per-user one, so listing tries the account endpoint first and falls
back to walking the first few active users. Long windows are queried
one month at a time.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from functools import partial
from typing import Any, Awaitable, Callable

import httpx

from video_exporter.core.config import settings
from video_exporter.services.canonical import DOWNLOAD_UNAVAILABLE, CanonicalVideo, ProviderContainer
from video_exporter.services.errors import AggregationError, AuthenticationError
from video_exporter.services.paginator import Page, ProgressObserver, Termination
from video_exporter.services.providers.base import Credentials, DateRange, Provider, ProviderAdapter, parse_timestamp

logger = logging.getLogger(__name__)

ZOOM_OAUTH_URL = "https://zoom.us/oauth/token"
ZOOM_API_BASE = "https://api.zoom.us/v2"
SCOPE_HINT = (
    "Check that the Server-to-Server OAuth app is activated and has either the "
    "account recordings scope (cloud_recording:read:list_account_recordings:admin) or the "
    "user recordings scopes (user:read:list_users:admin and cloud_recording:read:list_user_recordings:admin)."
)
# The OAuth endpoint answers 400 for an unknown client or account id
TOKEN_STATUS_OVERRIDES = {400: AuthenticationError, 401: AuthenticationError}
# Recording list endpoints reject a "to" more than a month after "from"
ZOOM_MAX_RANGE_DAYS = 30


def first_mp4(meeting: dict[str, Any]) -> dict[str, Any] | None:
    for recording in meeting.get("recording_files") or []:
        if (recording.get("file_type") or "").upper() == "MP4":
            return recording
    return None


def recording_duration(meeting: dict[str, Any], recording: dict[str, Any]) -> float | None:
    start = parse_timestamp(recording.get("recording_start"))
    end = parse_timestamp(recording.get("recording_end"))
    if start and end and end > start:
        return (end - start).total_seconds()
    minutes = meeting.get("duration")
    if minutes:
        return float(minutes) * 60
    return None


def default_date_range(now: datetime | None = None) -> DateRange:
    end = now or datetime.now(timezone.utc)
    return DateRange(start=end - timedelta(days=settings.zoom_default_lookback_days), end=end)


def split_date_range(date_range: DateRange, max_days: int = ZOOM_MAX_RANGE_DAYS) -> list[DateRange]:
    """Cut ``date_range`` into consecutive spans, oldest first, each ending at most ``max_days`` after it starts.

    ``from`` and ``to`` are inclusive dates, so neighbouring spans never share a day.
    """

    max_days = max(max_days, 1)
    spans: list[DateRange] = []
    start = date_range.start
    while True:
        end = min(start + timedelta(days=max_days), date_range.end)
        spans.append(DateRange(start=start, end=end))
        if end.date() >= date_range.end.date():
            return spans
        start = end + timedelta(days=1)


class ZoomAdapter(ProviderAdapter):
    provider = Provider.ZOOM
    termination = Termination.NEXT_CURSOR
    required_fields = ("api_key", "api_secret")
    supports_date_filter = True

    def __init__(self, credentials: Credentials, client: httpx.AsyncClient) -> None:
        super().__init__(credentials, client)
        self.page_size = settings.zoom_page_size
        self._access_token: str | None = None

    def auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._access_token}", "Accept": "application/json"}

    async def authenticate(self) -> str:
        """Exchange client id/secret for a bearer token (client-credentials grant)."""

        if self._access_token:
            return self._access_token

        params = {"grant_type": "client_credentials"}
        if self.credentials.account_id:
            params = {"grant_type": "account_credentials", "account_id": self.credentials.account_id}

        payload = await self.request_json(
            "POST",
            ZOOM_OAUTH_URL,
            params=params,
            headers={"Accept": "application/json"},
            auth=(self.credentials.api_key or "", self.credentials.api_secret or ""),
            overrides=TOKEN_STATUS_OVERRIDES,
        )
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise AuthenticationError("Zoom did not return an access token", provider=self.provider.value)
        self._access_token = token
        return token

    async def list_containers(self) -> list[ProviderContainer]:
        # Zoom recordings have no folder concept
        return []

    def _date_params(self, date_range: DateRange | None) -> dict[str, str]:
        date_range = date_range or default_date_range()
        return {"from": date_range.start.date().isoformat(), "to": date_range.end.date().isoformat()}

    async def _fetch_recordings(
        self,
        url: str,
        page_index: int,
        cursor: str | None,
        *,
        date_range: DateRange | None = None,
    ) -> Page:
        params: dict[str, Any] = {"page_size": self.page_size, **self._date_params(date_range)}
        if cursor:
            params["next_page_token"] = cursor
        payload = await self.get_json(url, params=params)
        meetings = payload.get("meetings") or []
        return Page(
            items=self.map_items(meetings),
            next_cursor=payload.get("next_page_token") or None,
            raw_count=len(meetings),
        )

    async def fetch_page(
        self,
        page_index: int,
        cursor: str | None,
        *,
        container: ProviderContainer | None = None,
        date_range: DateRange | None = None,
    ) -> Page:
        return await self._fetch_recordings(
            f"{ZOOM_API_BASE}/accounts/me/recordings", page_index, cursor, date_range=date_range
        )

    async def list_active_user_ids(self) -> list[str]:
        payload = await self.get_json(
            f"{ZOOM_API_BASE}/users",
            params={"status": "active", "page_size": max(settings.zoom_max_users, 1)},
        )
        users = payload.get("users") or []
        return [user["id"] for user in users if user.get("id")][: settings.zoom_max_users]

    async def _collect_span(
        self, url: str, date_range: DateRange | None, observer: ProgressObserver | None
    ) -> list[CanonicalVideo]:
        """Page through ``url`` once per month-sized slice of ``date_range``."""

        videos: list[CanonicalVideo] = []
        pages = 0
        for chunk in split_date_range(date_range or default_date_range()):

            def _observe(page: int, items: int, pages: int = pages, offset: int = len(videos)) -> None:
                if observer is not None:
                    observer(pages + page, offset + items)

            paginator = self.make_paginator(_observe)
            videos.extend(await paginator.collect(partial(self._fetch_recordings, url, date_range=chunk)))
            pages += paginator.pages_fetched
        return _unique_by_id(videos)

    async def _collect_account(
        self, date_range: DateRange | None, observer: ProgressObserver | None
    ) -> list[CanonicalVideo]:
        return await self._collect_span(f"{ZOOM_API_BASE}/accounts/me/recordings", date_range, observer)

    async def _collect_users(
        self, date_range: DateRange | None, observer: ProgressObserver | None
    ) -> list[CanonicalVideo]:
        user_ids = await self.list_active_user_ids()
        if not user_ids:
            raise AuthenticationError("No active Zoom users are visible to this app", provider=self.provider.value)

        videos: list[CanonicalVideo] = []
        last_error: AggregationError | None = None
        succeeded = 0
        for user_id in user_ids:
            offset = len(videos)

            def _observe(page: int, items: int, offset: int = offset) -> None:
                if observer is not None:
                    observer(page, offset + items)

            try:
                videos.extend(
                    await self._collect_span(f"{ZOOM_API_BASE}/users/{user_id}/recordings", date_range, _observe)
                )
                succeeded += 1
            except AggregationError as exc:
                logger.warning("Zoom user recordings failed", extra={"zoom_user": user_id, "error": str(exc)})
                last_error = exc

        if succeeded == 0 and last_error is not None:
            raise last_error
        return _unique_by_id(videos)

    async def collect(
        self,
        *,
        container: ProviderContainer | None = None,
        date_range: DateRange | None = None,
        observer: ProgressObserver | None = None,
    ) -> list[CanonicalVideo]:
        await self.authenticate()
        strategies: list[tuple[str, Callable[..., Awaitable[list[CanonicalVideo]]]]] = [
            ("account recordings", self._collect_account),
            ("user recordings", self._collect_users),
        ]
        return await run_with_fallback(strategies, date_range, observer, provider=self.provider.value)

    def to_canonical(self, item: dict[str, Any]) -> CanonicalVideo | None:
        recording = first_mp4(item)
        if recording is None:
            return None
        video_id = item.get("uuid") or (str(item["id"]) if item.get("id") else None)
        return CanonicalVideo(
            title=item.get("topic") or "Zoom recording",
            playback_link=item.get("share_url") or recording.get("play_url") or "",
            download_link=recording.get("download_url") or DOWNLOAD_UNAVAILABLE,
            video_id=video_id,
            duration_seconds=recording_duration(item, recording),
            created_at=parse_timestamp(item.get("start_time")),
        )


def _unique_by_id(videos: list[CanonicalVideo]) -> list[CanonicalVideo]:
    seen: set[str] = set()
    unique: list[CanonicalVideo] = []
    for video in videos:
        if video.video_id:
            if video.video_id in seen:
                continue
            seen.add(video.video_id)
        unique.append(video)
    return unique


async def run_with_fallback(
    strategies: list[tuple[str, Callable[..., Awaitable[list[CanonicalVideo]]]]],
    *args: Any,
    provider: str,
) -> list[CanonicalVideo]:
    """Try each listing strategy in order; raise the last error with every failure listed."""

    failures: list[str] = []
    last_error: AggregationError | None = None
    for name, strategy in strategies:
        try:
            return await strategy(*args)
        except AggregationError as exc:
            logger.info("Zoom listing strategy failed", extra={"strategy": name, "error": str(exc)})
            failures.append(f"{name}: {exc}")
            last_error = exc

    if last_error is None:
        raise AuthenticationError("No Zoom listing strategy configured", provider=provider)
    message = f"Unable to list Zoom recordings ({'; '.join(failures)}). {SCOPE_HINT}"
    raise type(last_error)(message, provider=provider, status_code=last_error.status_code) from last_error
