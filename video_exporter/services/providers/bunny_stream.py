"""Bunny.net Stream video libraries."""

from __future__ import annotations

from typing import Any

from video_exporter.services.canonical import DOWNLOAD_UNAVAILABLE, CanonicalVideo, ProviderContainer
from video_exporter.services.paginator import Page, Termination
from video_exporter.services.providers.base import DateRange, Provider, ProviderAdapter, parse_timestamp

BUNNY_STREAM_API_BASE = "https://video.bunnycdn.com"
BUNNY_PLAYER_BASE = "https://iframe.mediadelivery.net/play"


def best_mp4_resolution(available: str | None) -> str | None:
    """Pick the tallest rendition from Bunny's ``"240p,360p,720p"`` string."""

    if not available:
        return None
    heights: list[int] = []
    for part in available.split(","):
        part = part.strip().lower().rstrip("p")
        if part.isdigit():
            heights.append(int(part))
    if not heights:
        return None
    return f"{max(heights)}p"


class BunnyStreamAdapter(ProviderAdapter):
    provider = Provider.BUNNY_STREAM
    termination = Termination.SHORT_PAGE
    page_size = 100
    required_fields = ("api_key", "library_id")

    def auth_headers(self) -> dict[str, str]:
        return {"AccessKey": self.credentials.api_key or "", "Accept": "application/json"}

    @property
    def library_url(self) -> str:
        return f"{BUNNY_STREAM_API_BASE}/library/{self.credentials.library_id}"

    async def list_containers(self) -> list[ProviderContainer]:
        containers: list[ProviderContainer] = []
        page = 1
        while True:
            payload = await self.get_json(
                f"{self.library_url}/collections",
                params={"page": page, "itemsPerPage": self.page_size},
            )
            items = payload.get("items") or []
            for item in items:
                guid = item.get("guid")
                if not guid:
                    continue
                count = item.get("videoCount")
                containers.append(
                    ProviderContainer(
                        uri=guid,
                        name=item.get("name") or guid,
                        description=f"{count} videos" if count is not None else None,
                    )
                )
            if len(items) < self.page_size:
                return containers
            page += 1

    async def fetch_page(
        self,
        page_index: int,
        cursor: str | None,
        *,
        container: ProviderContainer | None = None,
        date_range: DateRange | None = None,
    ) -> Page:
        params: dict[str, Any] = {"page": page_index, "itemsPerPage": self.page_size, "orderBy": "date"}
        if container is not None:
            params["collection"] = container.uri
        payload = await self.get_json(f"{self.library_url}/videos", params=params)
        items = payload.get("items") or []
        return Page(items=self.map_items(items), raw_count=len(items))

    def to_canonical(self, item: dict[str, Any]) -> CanonicalVideo | None:
        guid = item.get("guid")
        if not guid:
            return None

        cdn = self.credentials.cdn_hostname
        thumbnail_url = None
        download_link = DOWNLOAD_UNAVAILABLE
        if cdn:
            thumbnail_url = f"https://{cdn}/{guid}/{item.get('thumbnailFileName') or 'thumbnail.jpg'}"
            resolution = best_mp4_resolution(item.get("availableResolutions"))
            if resolution and item.get("hasMP4Fallback", True):
                download_link = f"https://{cdn}/{guid}/play_{resolution}.mp4"

        length = item.get("length")
        return CanonicalVideo(
            title=item.get("title") or guid,
            playback_link=f"{BUNNY_PLAYER_BASE}/{self.credentials.library_id}/{guid}",
            download_link=download_link,
            video_id=guid,
            thumbnail_url=thumbnail_url,
            duration_seconds=float(length) if length else None,
            created_at=parse_timestamp(item.get("dateUploaded")),
        )
