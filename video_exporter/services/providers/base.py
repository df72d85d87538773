"""Common contract for the provider integrations."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from enum import Enum
from functools import partial
from typing import Any, ClassVar

import httpx

from video_exporter.services.canonical import CanonicalVideo, ProviderContainer
from video_exporter.services.errors import AggregationError, UpstreamError, ValidationError, error_for_status
from video_exporter.services.paginator import Page, Paginator, ProgressObserver, Termination

logger = logging.getLogger(__name__)


class Provider(str, Enum):
    VIMEO = "vimeo"
    BUNNY_STORAGE = "bunny_storage"
    BUNNY_STREAM = "bunny_stream"
    WISTIA = "wistia"
    VDOCIPHER = "vdocipher"
    ZOOM = "zoom"


@dataclass(slots=True)
class Credentials:
    """Secrets supplied by the user for one provider; never persisted."""

    token: str | None = None
    api_key: str | None = None
    api_secret: str | None = None
    account_id: str | None = None
    library_id: str | None = None
    storage_zone: str | None = None
    cdn_hostname: str | None = None
    region: str | None = None

    def __post_init__(self) -> None:
        for item in fields(self):
            value = getattr(self, item.name)
            if isinstance(value, str):
                setattr(self, item.name, value.strip() or None)


@dataclass(slots=True)
class DateRange:
    """Creation-time bounds passed to providers that can filter server side."""

    start: datetime
    end: datetime


def parse_timestamp(value: Any) -> datetime | None:
    """Parse the ISO-8601 timestamps providers return, tolerating a trailing Z."""

    if not value or not isinstance(value, str):
        return None
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        logger.debug("Failed to parse timestamp", extra={"value": value})
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _error_detail(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        text = response.text.strip()
        return text[:200] or None
    if isinstance(payload, dict):
        for key in ("message", "Message", "error", "developer_message", "reason"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return None


class ProviderAdapter(ABC):
    """Translates one provider's paginated REST API into canonical records."""

    provider: ClassVar[Provider]
    termination: ClassVar[Termination]
    page_size: ClassVar[int] = 100
    required_fields: ClassVar[tuple[str, ...]] = ()
    supports_date_filter: ClassVar[bool] = False
    status_overrides: ClassVar[Mapping[int, type[AggregationError]]] = {}

    def __init__(self, credentials: Credentials, client: httpx.AsyncClient) -> None:
        self.validate(credentials)
        self.credentials = credentials
        self.client = client

    @classmethod
    def validate(cls, credentials: Credentials) -> None:
        missing = [name for name in cls.required_fields if not getattr(credentials, name)]
        if missing:
            raise ValidationError(
                f"Missing {cls.provider.value} credentials: {', '.join(missing)}",
                provider=cls.provider.value,
            )

    @abstractmethod
    def auth_headers(self) -> dict[str, str]:
        """Headers authenticating every request to the provider."""

    @abstractmethod
    async def list_containers(self) -> list[ProviderContainer]:
        """Return the folders/collections the account exposes."""

    @abstractmethod
    async def fetch_page(
        self,
        page_index: int,
        cursor: str | None,
        *,
        container: ProviderContainer | None = None,
        date_range: DateRange | None = None,
    ) -> Page:
        """Request one page and map it to canonical records."""

    @abstractmethod
    def to_canonical(self, item: dict[str, Any]) -> CanonicalVideo | None:
        """Map one raw provider item; None when the item is not a video."""

    def make_paginator(self, observer: ProgressObserver | None = None) -> Paginator:
        return Paginator(page_size=self.page_size, termination=self.termination, observer=observer)

    async def collect(
        self,
        *,
        container: ProviderContainer | None = None,
        date_range: DateRange | None = None,
        observer: ProgressObserver | None = None,
    ) -> list[CanonicalVideo]:
        """Fetch every page for the listing scoped by ``container``."""

        paginator = self.make_paginator(observer)
        fetcher = partial(self.fetch_page, container=container, date_range=date_range)
        return await paginator.collect(fetcher)

    def map_items(self, items: list[dict[str, Any]]) -> list[CanonicalVideo]:
        videos: list[CanonicalVideo] = []
        for item in items:
            video = self.to_canonical(item)
            if video is not None:
                videos.append(video)
        return videos

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        auth: httpx.Auth | tuple[str, str] | None = None,
        overrides: Mapping[int, type[AggregationError]] | None = None,
    ) -> Any:
        """Perform a request and return its JSON body, raising the taxonomy on failure."""

        request_headers = dict(self.auth_headers() if headers is None else headers)
        try:
            response = await self.client.request(
                method,
                url,
                params=params,
                headers=request_headers,
                auth=auth if auth is not None else httpx.USE_CLIENT_DEFAULT,
            )
        except httpx.HTTPError as exc:
            logger.exception("Provider request failed", extra={"provider": self.provider.value, "url": url})
            raise UpstreamError(
                f"Unable to contact {self.provider.value} API", provider=self.provider.value
            ) from exc

        if not response.is_success:
            error = error_for_status(
                self.provider.value,
                response.status_code,
                _error_detail(response),
                overrides=overrides if overrides is not None else self.status_overrides,
            )
            logger.warning(
                "Provider returned error",
                extra={"provider": self.provider.value, "status": response.status_code, "url": url},
            )
            raise error

        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError(
                f"Invalid response from {self.provider.value} API", provider=self.provider.value
            ) from exc

    async def get_json(self, url: str, *, params: Mapping[str, Any] | None = None) -> Any:
        return await self.request_json("GET", url, params=params)
