"""Vimeo folders and videos via the v3.4 REST API."""

from __future__ import annotations

from typing import Any

from video_exporter.services.canonical import DOWNLOAD_UNAVAILABLE, CanonicalVideo, ProviderContainer
from video_exporter.services.paginator import Page, Termination
from video_exporter.services.providers.base import DateRange, Provider, ProviderAdapter, parse_timestamp

VIMEO_API_BASE = "https://api.vimeo.com"
VIMEO_ACCEPT = "application/vnd.vimeo.*+json;version=3.4"


def best_picture(item: dict[str, Any]) -> str | None:
    """Vimeo lists picture sizes smallest first; take the last one."""

    sizes = (item.get("pictures") or {}).get("sizes") or []
    if not sizes:
        return None
    return sizes[-1].get("link")


class VimeoAdapter(ProviderAdapter):
    provider = Provider.VIMEO
    termination = Termination.SHORT_PAGE
    page_size = 100
    required_fields = ("token",)

    def auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.credentials.token}", "Accept": VIMEO_ACCEPT}

    async def list_containers(self) -> list[ProviderContainer]:
        payload = await self.get_json(f"{VIMEO_API_BASE}/me/folders", params={"per_page": 100})
        return [
            ProviderContainer(uri=folder["uri"], name=folder.get("name") or folder["uri"], description=folder.get("description"))
            for folder in payload.get("data", [])
            if folder.get("uri")
        ]

    async def fetch_page(
        self,
        page_index: int,
        cursor: str | None,
        *,
        container: ProviderContainer | None = None,
        date_range: DateRange | None = None,
    ) -> Page:
        if container is not None:
            url = f"{VIMEO_API_BASE}/me/folders/{container.identifier}/videos"
        else:
            url = f"{VIMEO_API_BASE}/me/videos"
        payload = await self.get_json(url, params={"per_page": self.page_size, "page": page_index})
        items = payload.get("data") or []
        return Page(items=self.map_items(items), raw_count=len(items))

    def to_canonical(self, item: dict[str, Any]) -> CanonicalVideo | None:
        uri = item.get("uri") or ""
        downloads = item.get("download") or []
        download_link = downloads[0].get("link") if downloads else None
        duration = item.get("duration")
        return CanonicalVideo(
            title=item.get("name") or "",
            playback_link=item.get("link") or "",
            download_link=download_link or DOWNLOAD_UNAVAILABLE,
            video_id=uri.rstrip("/").split("/")[-1] or None,
            thumbnail_url=best_picture(item),
            duration_seconds=float(duration) if duration is not None else None,
            created_at=parse_timestamp(item.get("created_time")),
        )
