"""Bunny.net Storage zone listings (legacy file-based video hosting)."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Any
from urllib.parse import quote

from video_exporter.services.canonical import CanonicalVideo, ProviderContainer
from video_exporter.services.paginator import Page, Termination
from video_exporter.services.providers.base import DateRange, Provider, ProviderAdapter, parse_timestamp

VIDEO_EXTENSIONS = frozenset({".mp4", ".m4v", ".mov", ".mkv", ".webm", ".avi", ".wmv", ".mpg", ".mpeg"})


def storage_endpoint(region: str | None) -> str:
    """Return the storage API host; the default region has no prefix."""

    if not region or region.lower() in {"de", "falkenstein"}:
        return "https://storage.bunnycdn.com"
    return f"https://{region.lower()}.storage.bunnycdn.com"


class BunnyStorageAdapter(ProviderAdapter):
    provider = Provider.BUNNY_STORAGE
    termination = Termination.SINGLE_RESPONSE
    required_fields = ("api_key", "storage_zone")

    def auth_headers(self) -> dict[str, str]:
        return {"AccessKey": self.credentials.api_key or "", "Accept": "application/json"}

    @property
    def cdn_hostname(self) -> str:
        return self.credentials.cdn_hostname or f"{self.credentials.storage_zone}.b-cdn.net"

    def _listing_url(self, path: str = "") -> str:
        zone = quote(self.credentials.storage_zone or "")
        path = path.strip("/")
        suffix = f"{quote(path)}/" if path else ""
        return f"{storage_endpoint(self.credentials.region)}/{zone}/{suffix}"

    def _relative_dir(self, item: dict[str, Any]) -> str:
        """Strip the ``/{zone}/`` prefix Bunny puts in front of every ``Path``."""

        path = (item.get("Path") or "").strip("/")
        zone = self.credentials.storage_zone or ""
        if path == zone:
            return ""
        if path.startswith(f"{zone}/"):
            return path[len(zone) + 1 :]
        return path

    async def list_containers(self) -> list[ProviderContainer]:
        payload = await self.get_json(self._listing_url())
        containers: list[ProviderContainer] = []
        for item in payload or []:
            if not item.get("IsDirectory"):
                continue
            relative = str(PurePosixPath(self._relative_dir(item), item.get("ObjectName") or ""))
            containers.append(ProviderContainer(uri=f"{relative.strip('/')}/", name=item.get("ObjectName") or relative))
        return containers

    async def fetch_page(
        self,
        page_index: int,
        cursor: str | None,
        *,
        container: ProviderContainer | None = None,
        date_range: DateRange | None = None,
    ) -> Page:
        payload = await self.get_json(self._listing_url(container.uri if container else ""))
        items = list(payload or [])
        return Page(items=self.map_items(items), raw_count=len(items))

    def to_canonical(self, item: dict[str, Any]) -> CanonicalVideo | None:
        if item.get("IsDirectory"):
            return None
        name = item.get("ObjectName") or ""
        if PurePosixPath(name).suffix.lower() not in VIDEO_EXTENSIONS:
            return None

        relative_dir = self._relative_dir(item)
        relative_path = f"{relative_dir}/{name}" if relative_dir else name
        url = f"https://{self.cdn_hostname}/{quote(relative_path)}"
        video_id = item.get("Guid") or f"{self.credentials.storage_zone}:{relative_path}"
        return CanonicalVideo(
            title=name,
            playback_link=url,
            download_link=url,
            video_id=video_id,
            created_at=parse_timestamp(item.get("DateCreated")),
        )
