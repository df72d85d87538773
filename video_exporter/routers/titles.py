"""AI title lookup, unlock and generation endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from video_exporter.db.session import get_session
from video_exporter.routers.dependencies import get_aggregation_session, get_gate, get_title_client
from video_exporter.schema.titles import (
    AnalyzeRequest,
    AnalyzeResponse,
    BulkAnalyzeRequest,
    BulkAnalyzeResponse,
    BulkError,
    TitleLookupRequest,
    TitleLookupResponse,
    UnlockRequest,
    UnlockResponse,
)
from video_exporter.services.aggregation_session import AggregationSession
from video_exporter.services.ai_gate import AiUnlockGate
from video_exporter.services.captioning import CaptioningError
from video_exporter.services.errors import AiLockedError, PartialBulkFailure
from video_exporter.services.title_client import TitleClient, requests_for
from video_exporter.services.title_service import TitleRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/titles", tags=["titles"])


@router.post("/lookup", response_model=TitleLookupResponse)
async def lookup_ai_titles(
    payload: TitleLookupRequest,
    titles: TitleClient = Depends(get_title_client),
    session: AsyncSession = Depends(get_session),
) -> TitleLookupResponse:
    return TitleLookupResponse(titles=await titles.get_titles(session, payload.video_ids))


@router.get("/unlock", response_model=UnlockResponse)
async def get_unlock_state(gate: AiUnlockGate = Depends(get_gate)) -> UnlockResponse:
    return UnlockResponse(state=gate.state)


@router.post("/unlock", response_model=UnlockResponse)
async def unlock_ai(payload: UnlockRequest, gate: AiUnlockGate = Depends(get_gate)) -> UnlockResponse:
    unlocked = False
    if payload.secret:
        unlocked = gate.unlock_with_secret(payload.secret)
    if not unlocked and payload.api_key:
        unlocked = gate.unlock_with_api_key(payload.api_key)
    if not unlocked:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid password or API key")
    return UnlockResponse(state=gate.state)


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_thumbnail(
    payload: AnalyzeRequest,
    titles: TitleClient = Depends(get_title_client),
    aggregation: AggregationSession = Depends(get_aggregation_session),
    session: AsyncSession = Depends(get_session),
) -> AnalyzeResponse:
    if payload.user_api_key:
        titles.gate.unlock_with_api_key(payload.user_api_key)

    request = TitleRequest(
        video_id=payload.video_id,
        thumbnail_url=payload.thumbnail_url,
        original_title=payload.original_title,
    )
    try:
        result = await titles.request_title(session, request, aggregation=aggregation)
        await session.commit()
    except AiLockedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except CaptioningError as exc:
        await session.rollback()
        logger.warning("AI analysis failed", extra={"video_id": payload.video_id, "error": str(exc)})
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    return AnalyzeResponse(
        video_id=result.video_id or None,
        ai_title=result.ai_title,
        confidence=result.confidence,
        cached=result.cached,
    )


@router.post("/analyze-bulk", response_model=BulkAnalyzeResponse)
async def analyze_thumbnails_bulk(
    payload: BulkAnalyzeRequest,
    response: Response,
    titles: TitleClient = Depends(get_title_client),
    aggregation: AggregationSession = Depends(get_aggregation_session),
    session: AsyncSession = Depends(get_session),
) -> BulkAnalyzeResponse:
    if payload.videos:
        requests = [
            TitleRequest(video_id=item.video_id, thumbnail_url=item.thumbnail_url, original_title=item.original_title)
            for item in payload.videos
        ]
    else:
        requests = requests_for(aggregation.displayed)

    try:
        outcome = await titles.request_titles_bulk(session, requests, aggregation=aggregation)
        await session.commit()
    except AiLockedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc

    detail = None
    if outcome.failed:
        failure = PartialBulkFailure(outcome)
        logger.warning(str(failure), extra={"failed_ids": [error.video_id for error in outcome.errors]})
        detail = str(failure)
        response.status_code = status.HTTP_207_MULTI_STATUS

    return BulkAnalyzeResponse(
        results=[
            AnalyzeResponse(
                video_id=result.video_id,
                ai_title=result.ai_title,
                confidence=result.confidence,
                cached=result.cached,
            )
            for result in outcome.results
        ],
        errors=[BulkError(video_id=error.video_id, error=error.error) for error in outcome.errors],
        total=outcome.total,
        successful=outcome.successful,
        failed=outcome.failed,
        detail=detail,
    )
