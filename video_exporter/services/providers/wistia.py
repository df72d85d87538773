"""Wistia medias and projects via the Data API v1."""

from __future__ import annotations

from typing import Any

from video_exporter.services.canonical import DOWNLOAD_UNAVAILABLE, CanonicalVideo, ProviderContainer
from video_exporter.services.paginator import Page, Termination
from video_exporter.services.providers.base import DateRange, Provider, ProviderAdapter, parse_timestamp

WISTIA_API_BASE = "https://api.wistia.com/v1"
WISTIA_EMBED_BASE = "https://fast.wistia.net/embed/iframe"


def original_file_url(item: dict[str, Any]) -> str | None:
    for asset in item.get("assets") or []:
        if asset.get("type") == "OriginalFile" and asset.get("url"):
            url: str = asset["url"]
            # Asset URLs are served as .bin; the same path answers with the media type as .mp4
            return url[:-4] + ".mp4" if url.endswith(".bin") else url
    return None


def full_size_thumbnail(item: dict[str, Any]) -> str | None:
    url = (item.get("thumbnail") or {}).get("url")
    if not url:
        return None
    return url.split("?", 1)[0]


class WistiaAdapter(ProviderAdapter):
    provider = Provider.WISTIA
    termination = Termination.SHORT_PAGE
    page_size = 100
    required_fields = ("token",)

    def auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.credentials.token}", "Accept": "application/json"}

    async def list_containers(self) -> list[ProviderContainer]:
        containers: list[ProviderContainer] = []
        page = 1
        while True:
            projects = await self.get_json(
                f"{WISTIA_API_BASE}/projects.json", params={"page": page, "per_page": self.page_size}
            )
            for project in projects or []:
                hashed_id = project.get("hashedId") or project.get("hashed_id")
                if not hashed_id:
                    continue
                containers.append(
                    ProviderContainer(
                        uri=hashed_id,
                        name=project.get("name") or hashed_id,
                        description=project.get("description") or None,
                    )
                )
            if len(projects or []) < self.page_size:
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
        params: dict[str, Any] = {"page": page_index, "per_page": self.page_size, "type": "Video"}
        if container is not None:
            params["project_id"] = container.uri
        items = await self.get_json(f"{WISTIA_API_BASE}/medias.json", params=params) or []
        return Page(items=self.map_items(items), raw_count=len(items))

    def to_canonical(self, item: dict[str, Any]) -> CanonicalVideo | None:
        hashed_id = item.get("hashed_id")
        if not hashed_id:
            return None
        duration = item.get("duration")
        return CanonicalVideo(
            title=item.get("name") or hashed_id,
            playback_link=f"{WISTIA_EMBED_BASE}/{hashed_id}",
            download_link=original_file_url(item) or DOWNLOAD_UNAVAILABLE,
            video_id=hashed_id,
            thumbnail_url=full_size_thumbnail(item),
            duration_seconds=float(duration) if duration is not None else None,
            created_at=parse_timestamp(item.get("created")),
        )
