"""Session-facing entry points for AI titles.

Lookups are always allowed; generation goes through the unlock gate first
and is rejected before any network call while the gate is locked.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from video_exporter.services import title_service
from video_exporter.services.aggregation_session import AggregationSession, BulkProgress
from video_exporter.services.aggregator import apply_generated_titles
from video_exporter.services.ai_gate import AiUnlockGate
from video_exporter.services.canonical import CanonicalVideo
from video_exporter.services.captioning import Captioner, caption_thumbnail
from video_exporter.services.title_service import BulkOutcome, TitleRequest, TitleResult

logger = logging.getLogger(__name__)


def requests_for(videos: Sequence[CanonicalVideo]) -> list[TitleRequest]:
    """Candidates for bulk enrichment: records with an id and thumbnail but no AI title."""

    return [
        TitleRequest(video_id=video.video_id, thumbnail_url=video.thumbnail_url, original_title=video.title)
        for video in videos
        if video.needs_ai_title and video.video_id and video.thumbnail_url
    ]


class TitleClient:
    def __init__(self, gate: AiUnlockGate, captioner: Captioner = caption_thumbnail) -> None:
        self.gate = gate
        self.captioner = captioner

    async def get_titles(self, db: AsyncSession, video_ids: Sequence[str]) -> dict[str, str]:
        return await title_service.lookup_titles(db, video_ids)

    async def request_title(
        self,
        db: AsyncSession,
        request: TitleRequest,
        *,
        aggregation: AggregationSession | None = None,
    ) -> TitleResult:
        self.gate.require_unlocked()
        result = await title_service.generate_title(
            db, request, captioner=self.captioner, api_key=self.gate.user_api_key
        )
        if aggregation is not None and result.video_id:
            apply_generated_titles(aggregation, {result.video_id: result.ai_title})
        return result

    async def request_titles_bulk(
        self,
        db: AsyncSession,
        requests: Sequence[TitleRequest],
        *,
        aggregation: AggregationSession | None = None,
    ) -> BulkOutcome:
        self.gate.require_unlocked()

        progress = BulkProgress(total=len(requests), running=True)
        if aggregation is not None:
            aggregation.bulk_progress = progress

        def _on_progress(processed: int, total: int, errors: int) -> None:
            progress.processed = processed
            progress.total = total
            progress.errors = errors

        try:
            outcome = await title_service.generate_titles_bulk(
                db,
                requests,
                captioner=self.captioner,
                api_key=self.gate.user_api_key,
                on_progress=_on_progress,
            )
        finally:
            progress.running = False

        if aggregation is not None and outcome.results:
            apply_generated_titles(aggregation, outcome.titles())
        return outcome
