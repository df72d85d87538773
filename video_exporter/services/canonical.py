"""Provider-independent video and container records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

DOWNLOAD_UNAVAILABLE = "Not available"


@dataclass(slots=True)
class CanonicalVideo:
    """One video's exportable metadata, normalised across providers."""

    title: str
    playback_link: str
    download_link: str = DOWNLOAD_UNAVAILABLE
    video_id: str | None = None
    thumbnail_url: str | None = None
    duration_seconds: float | None = None
    ai_title: str | None = None
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.download_link:
            self.download_link = DOWNLOAD_UNAVAILABLE

    @property
    def needs_ai_title(self) -> bool:
        return bool(self.video_id and self.thumbnail_url and not self.ai_title)


@dataclass(slots=True)
class ProviderContainer:
    """A folder, album, collection or project that scopes a listing."""

    uri: str
    name: str
    description: str | None = None

    @property
    def identifier(self) -> str:
        """Trailing path segment of the URI (``/users/1/folders/42`` -> ``42``)."""

        return self.uri.rstrip("/").split("/")[-1]
