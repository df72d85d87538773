"""Shared FastAPI dependencies and error translation."""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
from fastapi import Depends, HTTPException, Request, status

from video_exporter.services.aggregation_session import AggregationSession
from video_exporter.services.ai_gate import AiUnlockGate
from video_exporter.services.captioning import Captioner, caption_thumbnail
from video_exporter.services.errors import (
    AggregationError,
    AuthenticationError,
    NotFoundError,
    RateLimitedError,
    ValidationError,
)
from video_exporter.services.title_client import TitleClient

USER_AGENT = "video-exporter/0.1"

_STATUS_BY_ERROR: dict[type[AggregationError], int] = {
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    RateLimitedError: status.HTTP_429_TOO_MANY_REQUESTS,
    # literal: the constant was renamed across Starlette releases
    ValidationError: 422,
}


def to_http_exception(exc: AggregationError) -> HTTPException:
    for error_cls, status_code in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_cls):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))


def get_aggregation_session(request: Request) -> AggregationSession:
    return request.app.state.aggregation


def get_gate(request: Request) -> AiUnlockGate:
    return request.app.state.ai_gate


def get_captioner() -> Captioner:
    return caption_thumbnail


def get_title_client(
    gate: AiUnlockGate = Depends(get_gate),
    captioner: Captioner = Depends(get_captioner),
) -> TitleClient:
    return TitleClient(gate, captioner)


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(headers={"User-Agent": USER_AGENT}) as client:
        yield client
