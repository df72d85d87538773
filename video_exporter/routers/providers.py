"""API endpoints that load containers and aggregate videos from a provider."""

from __future__ import annotations

import logging
from functools import partial

import httpx
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from video_exporter.db.session import get_session
from video_exporter.routers.dependencies import get_aggregation_session, get_http_client, to_http_exception
from video_exporter.schema.provider import (
    ContainerListResponse,
    ContainerResponse,
    ContainersRequest,
    DateFilterRequest,
    FetchVideosRequest,
    ProviderInfo,
)
from video_exporter.schema.video import VideoListResponse
from video_exporter.services.aggregation_session import AggregationSession
from video_exporter.services.aggregator import aggregate, load_containers
from video_exporter.services.errors import AggregationError, ValidationError
from video_exporter.services.filtering import recompute
from video_exporter.services.providers.registry import ADAPTERS, get_adapter
from video_exporter.services.title_service import lookup_titles

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/providers", tags=["providers"])


@router.get("", response_model=list[ProviderInfo])
async def list_providers() -> list[ProviderInfo]:
    return [
        ProviderInfo(
            provider=provider,
            required_fields=list(adapter.required_fields),
            supports_date_filter=adapter.supports_date_filter,
        )
        for provider, adapter in ADAPTERS.items()
    ]


@router.post("/containers", response_model=ContainerListResponse)
async def load_provider_containers(
    payload: ContainersRequest,
    aggregation: AggregationSession = Depends(get_aggregation_session),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> ContainerListResponse:
    try:
        adapter = get_adapter(payload.provider, payload.credentials.to_credentials(), client)
        containers = await load_containers(aggregation, adapter)
    except AggregationError as exc:
        logger.warning("Loading containers failed", extra={"provider": payload.provider.value, "error": str(exc)})
        raise to_http_exception(exc) from exc

    return ContainerListResponse(
        provider=payload.provider,
        containers=[ContainerResponse.from_container(container) for container in containers],
    )


@router.post("/videos", response_model=VideoListResponse)
async def fetch_videos(
    payload: FetchVideosRequest,
    aggregation: AggregationSession = Depends(get_aggregation_session),
    client: httpx.AsyncClient = Depends(get_http_client),
    session: AsyncSession = Depends(get_session),
) -> VideoListResponse:
    try:
        adapter = get_adapter(payload.provider, payload.credentials.to_credentials(), client)
        container = aggregation.find_container(payload.container_uri)
        await aggregate(
            aggregation,
            adapter,
            title_lookup=partial(lookup_titles, session),
            container=container,
            date_window=payload.date_window,
        )
    except AggregationError as exc:
        logger.warning("Aggregation failed", extra={"provider": payload.provider.value, "error": str(exc)})
        raise to_http_exception(exc) from exc

    return VideoListResponse.from_session(aggregation)


@router.post("/videos/date-filter", response_model=VideoListResponse)
async def apply_date_filter(
    payload: DateFilterRequest,
    aggregation: AggregationSession = Depends(get_aggregation_session),
    client: httpx.AsyncClient = Depends(get_http_client),
    session: AsyncSession = Depends(get_session),
) -> VideoListResponse:
    """Re-run aggregation bounded by the date window for providers that support it."""

    try:
        if aggregation.provider is None or aggregation.credentials is None:
            raise ValidationError("Load videos before applying a date filter")
        adapter = get_adapter(aggregation.provider, aggregation.credentials, client)
        if not adapter.supports_date_filter:
            recompute(aggregation, date_window=payload.date_window)
            return VideoListResponse.from_session(aggregation)

        await aggregate(
            aggregation,
            adapter,
            title_lookup=partial(lookup_titles, session),
            container=aggregation.container,
            date_window=payload.date_window,
        )
    except AggregationError as exc:
        raise to_http_exception(exc) from exc

    return VideoListResponse.from_session(aggregation)
