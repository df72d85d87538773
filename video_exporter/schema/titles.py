"""Pydantic models for AI title endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from video_exporter.services.ai_gate import GateState


class TitleLookupRequest(BaseModel):
    video_ids: list[str] = Field(default_factory=list)


class TitleLookupResponse(BaseModel):
    titles: dict[str, str]


class UnlockRequest(BaseModel):
    secret: str | None = None
    api_key: str | None = Field(None, description="Your own OpenAI key; used for your title requests")


class UnlockResponse(BaseModel):
    state: GateState


class AnalyzeRequest(BaseModel):
    thumbnail_url: str = Field(..., min_length=1)
    original_title: str = ""
    video_id: str | None = None
    user_api_key: str | None = None


class BulkItem(BaseModel):
    video_id: str = Field(..., min_length=1)
    thumbnail_url: str = Field(..., min_length=1)
    original_title: str = ""


class AnalyzeResponse(BaseModel):
    video_id: str | None
    ai_title: str
    confidence: float | None = None
    cached: bool = False


class BulkAnalyzeRequest(BaseModel):
    """Explicit records to enrich; empty means every eligible displayed video."""

    videos: list[BulkItem] = Field(default_factory=list)


class BulkError(BaseModel):
    video_id: str
    error: str


class BulkAnalyzeResponse(BaseModel):
    results: list[AnalyzeResponse]
    errors: list[BulkError]
    total: int
    successful: int
    failed: int
    detail: str | None = None
