"""Lookup from the provider tag to its adapter implementation."""

from __future__ import annotations

import httpx

from video_exporter.services.providers.base import Credentials, Provider, ProviderAdapter
from video_exporter.services.providers.bunny_storage import BunnyStorageAdapter
from video_exporter.services.providers.bunny_stream import BunnyStreamAdapter
from video_exporter.services.providers.vdocipher import VdoCipherAdapter
from video_exporter.services.providers.vimeo import VimeoAdapter
from video_exporter.services.providers.wistia import WistiaAdapter
from video_exporter.services.providers.zoom import ZoomAdapter

ADAPTERS: dict[Provider, type[ProviderAdapter]] = {
    Provider.VIMEO: VimeoAdapter,
    Provider.BUNNY_STORAGE: BunnyStorageAdapter,
    Provider.BUNNY_STREAM: BunnyStreamAdapter,
    Provider.WISTIA: WistiaAdapter,
    Provider.VDOCIPHER: VdoCipherAdapter,
    Provider.ZOOM: ZoomAdapter,
}


def adapter_class(provider: Provider) -> type[ProviderAdapter]:
    return ADAPTERS[Provider(provider)]


def get_adapter(provider: Provider, credentials: Credentials, client: httpx.AsyncClient) -> ProviderAdapter:
    """Instantiate the adapter for ``provider``; raises ValidationError on missing credentials."""

    return adapter_class(provider)(credentials, client)


def supports_date_filter(provider: Provider) -> bool:
    return adapter_class(provider).supports_date_filter
