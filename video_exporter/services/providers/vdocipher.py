"""VdoCipher library listings."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from video_exporter.services.canonical import DOWNLOAD_UNAVAILABLE, CanonicalVideo, ProviderContainer
from video_exporter.services.paginator import Page, Termination
from video_exporter.services.providers.base import DateRange, Provider, ProviderAdapter

VDOCIPHER_API_BASE = "https://dev.vdocipher.com/api"
VDOCIPHER_DASHBOARD_URL = "https://www.vdocipher.com/dashboard/video/{video_id}"


def largest_poster(item: dict[str, Any]) -> str | None:
    posters = item.get("posters") or []
    if posters:
        best = max(posters, key=lambda poster: poster.get("width") or 0)
        url = best.get("posterUrl") or best.get("url")
        if url:
            return url
    return item.get("poster") or None


def _upload_time(value: Any) -> datetime | None:
    if isinstance(value, (int, float)) and value > 0:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    return None


class VdoCipherAdapter(ProviderAdapter):
    provider = Provider.VDOCIPHER
    termination = Termination.SHORT_PAGE
    page_size = 40
    required_fields = ("api_secret",)

    def auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Apisecret {self.credentials.api_secret}", "Accept": "application/json"}

    async def list_containers(self) -> list[ProviderContainer]:
        payload = await self.get_json(f"{VDOCIPHER_API_BASE}/videos/folders/root")
        return [
            ProviderContainer(
                uri=str(folder["id"]),
                name=folder.get("name") or str(folder["id"]),
                description=f"{folder['videosCount']} videos" if folder.get("videosCount") is not None else None,
            )
            for folder in payload.get("folderList") or []
            if folder.get("id")
        ]

    async def fetch_page(
        self,
        page_index: int,
        cursor: str | None,
        *,
        container: ProviderContainer | None = None,
        date_range: DateRange | None = None,
    ) -> Page:
        params: dict[str, Any] = {"page": page_index, "limit": self.page_size}
        if container is not None:
            params["folderId"] = container.uri
        payload = await self.get_json(f"{VDOCIPHER_API_BASE}/videos", params=params)
        rows = payload.get("rows") or []
        return Page(items=self.map_items(rows), raw_count=len(rows))

    def to_canonical(self, item: dict[str, Any]) -> CanonicalVideo | None:
        video_id = item.get("id")
        if not video_id:
            return None
        length = item.get("length")
        return CanonicalVideo(
            title=item.get("title") or video_id,
            playback_link=VDOCIPHER_DASHBOARD_URL.format(video_id=video_id),
            download_link=DOWNLOAD_UNAVAILABLE,
            video_id=video_id,
            thumbnail_url=largest_poster(item),
            duration_seconds=float(length) if length else None,
            created_at=_upload_time(item.get("upload_time")),
        )
