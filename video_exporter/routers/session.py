"""API endpoints over the in-memory aggregation session."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from video_exporter.routers.dependencies import get_aggregation_session, get_gate
from video_exporter.schema.provider import ContainerResponse
from video_exporter.schema.video import (
    BulkProgressSnapshot,
    FetchProgressSnapshot,
    SessionSnapshot,
    VideoListResponse,
)
from video_exporter.services.aggregation_session import AggregationSession
from video_exporter.services.ai_gate import AiUnlockGate
from video_exporter.services.export import XLSX_MEDIA_TYPE, build_workbook, export_filename, export_rows
from video_exporter.services.filtering import recompute

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/session", tags=["session"])


@router.get("", response_model=SessionSnapshot)
async def get_session_snapshot(
    aggregation: AggregationSession = Depends(get_aggregation_session),
    gate: AiUnlockGate = Depends(get_gate),
) -> SessionSnapshot:
    fetch = aggregation.fetch_progress
    bulk = aggregation.bulk_progress
    return SessionSnapshot(
        provider=aggregation.provider,
        container=ContainerResponse.from_container(aggregation.container) if aggregation.container else None,
        containers=len(aggregation.containers),
        total_loaded=len(aggregation.all_loaded),
        displayed=len(aggregation.displayed),
        search_query=aggregation.search_query,
        date_window=aggregation.date_window,
        fetch_progress=FetchProgressSnapshot(page=fetch.page, items=fetch.items, running=fetch.running),
        bulk_progress=BulkProgressSnapshot(
            processed=bulk.processed, total=bulk.total, errors=bulk.errors, running=bulk.running
        ),
        ai_unlocked=gate.unlocked,
    )


@router.get("/videos", response_model=VideoListResponse)
async def list_displayed_videos(
    search: str | None = Query(None, description="Case-insensitive title substring"),
    aggregation: AggregationSession = Depends(get_aggregation_session),
) -> VideoListResponse:
    if search is not None:
        recompute(aggregation, search_query=search)
    return VideoListResponse.from_session(aggregation)


@router.get("/export")
async def export_displayed_videos(
    aggregation: AggregationSession = Depends(get_aggregation_session),
) -> Response:
    if not aggregation.displayed or aggregation.provider is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No videos to export. Please fetch videos first.",
        )

    filename = export_filename(aggregation.provider.value, aggregation.container)
    content = build_workbook(export_rows(aggregation.displayed), sheet_title=f"{aggregation.provider.value} videos")
    logger.info("Exported spreadsheet", extra={"export_file": filename, "rows": len(aggregation.displayed)})
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
