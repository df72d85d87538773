"""Pydantic models for session and video listing endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from video_exporter.services.aggregation_session import AggregationSession
from video_exporter.services.canonical import CanonicalVideo
from video_exporter.services.filtering import DateWindow
from video_exporter.services.providers.base import Provider
from video_exporter.schema.provider import ContainerResponse


class VideoResponse(BaseModel):
    title: str
    playback_link: str
    download_link: str
    video_id: str | None
    thumbnail_url: str | None
    duration_seconds: float | None
    ai_title: str | None
    created_at: datetime | None

    @classmethod
    def from_video(cls, video: CanonicalVideo) -> VideoResponse:
        return cls(
            title=video.title,
            playback_link=video.playback_link,
            download_link=video.download_link,
            video_id=video.video_id,
            thumbnail_url=video.thumbnail_url,
            duration_seconds=video.duration_seconds,
            ai_title=video.ai_title,
            created_at=video.created_at,
        )


class VideoListResponse(BaseModel):
    provider: Provider | None
    container: ContainerResponse | None
    search_query: str
    date_window: DateWindow
    total_loaded: int
    pages_fetched: int
    videos: list[VideoResponse]

    @classmethod
    def from_session(cls, session: AggregationSession) -> VideoListResponse:
        return cls(
            provider=session.provider,
            container=ContainerResponse.from_container(session.container) if session.container else None,
            search_query=session.search_query,
            date_window=session.date_window,
            total_loaded=len(session.all_loaded),
            pages_fetched=session.fetch_progress.page,
            videos=[VideoResponse.from_video(video) for video in session.displayed],
        )


class FetchProgressSnapshot(BaseModel):
    page: int
    items: int
    running: bool


class BulkProgressSnapshot(BaseModel):
    processed: int
    total: int
    errors: int
    running: bool


class SessionSnapshot(BaseModel):
    provider: Provider | None
    container: ContainerResponse | None
    containers: int
    total_loaded: int
    displayed: int
    search_query: str
    date_window: DateWindow
    fetch_progress: FetchProgressSnapshot
    bulk_progress: BulkProgressSnapshot
    ai_unlocked: bool
