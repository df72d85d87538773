"""In-memory state for one interactive aggregation session."""

from __future__ import annotations

from dataclasses import dataclass, field

from video_exporter.services.canonical import CanonicalVideo, ProviderContainer
from video_exporter.services.filtering import DateWindow
from video_exporter.services.providers.base import Credentials, Provider


@dataclass(slots=True)
class FetchProgress:
    page: int = 0
    items: int = 0
    running: bool = False


@dataclass(slots=True)
class BulkProgress:
    processed: int = 0
    total: int = 0
    errors: int = 0
    running: bool = False


@dataclass
class AggregationSession:
    """Selected provider, credentials, loaded results and active filters.

    ``all_loaded`` and ``displayed`` are written only by
    ``aggregator.replace_results`` and ``filtering.recompute``.
    """

    provider: Provider | None = None
    credentials: Credentials | None = None
    containers: list[ProviderContainer] = field(default_factory=list)
    container: ProviderContainer | None = None
    all_loaded: list[CanonicalVideo] = field(default_factory=list)
    displayed: list[CanonicalVideo] = field(default_factory=list)
    search_query: str = ""
    date_window: DateWindow = DateWindow.ALL
    fetch_progress: FetchProgress = field(default_factory=FetchProgress)
    bulk_progress: BulkProgress = field(default_factory=BulkProgress)

    def reset(self) -> None:
        self.provider = None
        self.credentials = None
        self.containers = []
        self.container = None
        self.all_loaded = []
        self.displayed = []
        self.search_query = ""
        self.date_window = DateWindow.ALL
        self.fetch_progress = FetchProgress()
        self.bulk_progress = BulkProgress()

    def select_provider(self, provider: Provider, credentials: Credentials) -> None:
        """Switch provider; a different provider discards everything loaded so far."""

        if self.provider is not None and self.provider != provider:
            self.reset()
        self.provider = provider
        self.credentials = credentials

    def set_containers(self, containers: list[ProviderContainer]) -> None:
        self.containers = list(containers)
        self.container = None
        self.all_loaded = []
        self.displayed = []
        self.search_query = ""

    def find_container(self, uri: str | None) -> ProviderContainer | None:
        if not uri:
            return None
        for container in self.containers:
            if container.uri == uri:
                return container
        return ProviderContainer(uri=uri, name=uri.rstrip("/").split("/")[-1] or uri)

    def record_fetch_progress(self, page: int, items: int) -> None:
        self.fetch_progress.page = page
        self.fetch_progress.items = items
