"""Tests for the provider adapters against mocked HTTP APIs."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from collections.abc import Callable

import httpx
import pytest

from video_exporter.services.canonical import DOWNLOAD_UNAVAILABLE, ProviderContainer
from video_exporter.services.errors import (
    AuthenticationError,
    NotFoundError,
    RateLimitedError,
    UpstreamError,
    ValidationError,
    classify_status,
)
from video_exporter.services.providers.base import Credentials, DateRange, Provider, parse_timestamp
from video_exporter.services.providers.bunny_storage import BunnyStorageAdapter, storage_endpoint
from video_exporter.services.providers.bunny_stream import BunnyStreamAdapter, best_mp4_resolution
from video_exporter.services.providers.registry import get_adapter, supports_date_filter
from video_exporter.services.providers.vdocipher import VdoCipherAdapter
from video_exporter.services.providers.vimeo import VimeoAdapter
from video_exporter.services.providers.wistia import WistiaAdapter
from video_exporter.services.providers.zoom import ZoomAdapter, split_date_range

pytest_plugins = ("pytest_asyncio",)

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture(autouse=True)
def _no_page_delay(monkeypatch):
    monkeypatch.setattr("video_exporter.services.paginator.settings.page_delay_ms", 0)


def _client(handler: Handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _vimeo_video(index: int) -> dict:
    return {
        "uri": f"/videos/{index}",
        "name": f"Video {index}",
        "link": f"https://vimeo.com/{index}",
        "duration": 60 + index,
        "created_time": "2024-01-02T03:04:05+00:00",
        "pictures": {"sizes": [{"link": f"https://i.vimeocdn.com/{index}_100.jpg"}, {"link": f"https://i.vimeocdn.com/{index}_1920.jpg"}]},
        "download": [{"link": f"https://player.vimeo.com/download/{index}"}] if index % 2 else [],
    }


@pytest.mark.asyncio
async def test_vimeo_collects_until_short_page() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        page = int(request.url.params["page"])
        count = 100 if page == 1 else 1
        start = (page - 1) * 100
        return httpx.Response(200, json={"data": [_vimeo_video(start + offset) for offset in range(count)]})

    async with _client(handler) as client:
        adapter = VimeoAdapter(Credentials(token=" abc "), client)
        videos = await adapter.collect(container=ProviderContainer(uri="/users/1/projects/42", name="Course"))

    assert len(videos) == 101
    assert [request.url.path for request in seen] == ["/me/folders/42/videos", "/me/folders/42/videos"]
    assert seen[0].headers["Authorization"] == "Bearer abc"
    assert "version=3.4" in seen[0].headers["Accept"]
    first = videos[0]
    assert first.video_id == "0"
    assert first.thumbnail_url == "https://i.vimeocdn.com/0_1920.jpg"
    assert first.download_link == DOWNLOAD_UNAVAILABLE
    assert videos[1].download_link == "https://player.vimeo.com/download/1"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "error_cls"),
    [(401, AuthenticationError), (403, AuthenticationError), (404, NotFoundError), (429, RateLimitedError), (500, UpstreamError)],
)
async def test_vimeo_status_codes_map_to_error_kinds(status: int, error_cls: type) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json={"error": "boom"})

    async with _client(handler) as client:
        adapter = VimeoAdapter(Credentials(token="abc"), client)
        with pytest.raises(error_cls) as excinfo:
            await adapter.collect()

    assert excinfo.value.status_code == status
    assert excinfo.value.provider == "vimeo"


@pytest.mark.asyncio
async def test_upstream_error_includes_status_and_detail() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"message": "maintenance"})

    async with _client(handler) as client:
        adapter = WistiaAdapter(Credentials(token="abc"), client)
        with pytest.raises(UpstreamError, match=r"wistia API request failed: 503 \(maintenance\)"):
            await adapter.collect()


@pytest.mark.asyncio
async def test_transport_failure_is_upstream_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        adapter = VdoCipherAdapter(Credentials(api_secret="s"), client)
        with pytest.raises(UpstreamError):
            await adapter.collect()


def test_missing_credentials_fail_before_any_request() -> None:
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover
        raise AssertionError("no request expected")

    client = _client(handler)
    with pytest.raises(ValidationError, match="library_id"):
        get_adapter(Provider.BUNNY_STREAM, Credentials(api_key="key", library_id="  "), client)
    with pytest.raises(ValidationError):
        get_adapter(Provider.ZOOM, Credentials(api_key="id"), client)


def test_classify_status_overrides() -> None:
    assert classify_status(400) is UpstreamError
    assert classify_status(400, {400: AuthenticationError}) is AuthenticationError
    assert classify_status(403) is AuthenticationError


def test_only_zoom_supports_date_filter() -> None:
    assert [provider for provider in Provider if supports_date_filter(provider)] == [Provider.ZOOM]


def test_parse_timestamp() -> None:
    parsed = parse_timestamp("2024-07-16T10:00:00Z")
    assert parsed is not None and parsed.utcoffset() is not None
    assert parse_timestamp("not a date") is None
    assert parse_timestamp(None) is None


@pytest.mark.asyncio
async def test_bunny_storage_lists_video_files_only() -> None:
    listing = [
        {"ObjectName": "week1", "IsDirectory": True, "Path": "/zone/"},
        {"ObjectName": "intro.mp4", "IsDirectory": False, "Path": "/zone/", "Guid": "g-1", "DateCreated": "2024-01-01T00:00:00"},
        {"ObjectName": "notes.txt", "IsDirectory": False, "Path": "/zone/"},
        {"ObjectName": "My Clip.MOV", "IsDirectory": False, "Path": "/zone/"},
    ]
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        assert request.headers["AccessKey"] == "key"
        return httpx.Response(200, json=listing)

    async with _client(handler) as client:
        adapter = BunnyStorageAdapter(Credentials(api_key="key", storage_zone="zone", region="ny"), client)
        containers = await adapter.list_containers()
        videos = await adapter.collect()

    assert [container.uri for container in containers] == ["week1/"]
    assert seen[0] == "https://ny.storage.bunnycdn.com/zone/"
    assert [video.title for video in videos] == ["intro.mp4", "My Clip.MOV"]
    assert videos[0].playback_link == "https://zone.b-cdn.net/intro.mp4"
    assert videos[0].download_link == videos[0].playback_link
    assert videos[0].video_id == "g-1"
    assert videos[1].video_id == "zone:My Clip.MOV"
    assert videos[1].playback_link == "https://zone.b-cdn.net/My%20Clip.MOV"


def test_storage_endpoint_default_region() -> None:
    assert storage_endpoint(None) == "https://storage.bunnycdn.com"
    assert storage_endpoint("DE") == "https://storage.bunnycdn.com"
    assert storage_endpoint("uk") == "https://uk.storage.bunnycdn.com"


@pytest.mark.asyncio
async def test_bunny_stream_links_need_cdn_hostname() -> None:
    item = {
        "guid": "abc",
        "title": "Lesson",
        "length": 125,
        "availableResolutions": "240p,720p,360p",
        "thumbnailFileName": "thumb.jpg",
        "dateUploaded": "2024-05-01T10:00:00",
    }

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["collection"] == "col-1"
        return httpx.Response(200, json={"items": [item], "totalItems": 1})

    async with _client(handler) as client:
        with_cdn = BunnyStreamAdapter(Credentials(api_key="k", library_id="77", cdn_hostname="vz-1.b-cdn.net"), client)
        videos = await with_cdn.collect(container=ProviderContainer(uri="col-1", name="Collection"))
        without_cdn = BunnyStreamAdapter(Credentials(api_key="k", library_id="77"), client)
        bare = without_cdn.to_canonical(item)

    video = videos[0]
    assert video.playback_link == "https://iframe.mediadelivery.net/play/77/abc"
    assert video.download_link == "https://vz-1.b-cdn.net/abc/play_720p.mp4"
    assert video.thumbnail_url == "https://vz-1.b-cdn.net/abc/thumb.jpg"
    assert bare is not None
    assert bare.download_link == DOWNLOAD_UNAVAILABLE
    assert bare.thumbnail_url is None
    assert best_mp4_resolution("") is None


def test_wistia_mapping_rewrites_original_asset() -> None:
    adapter = WistiaAdapter(Credentials(token="t"), None)  # type: ignore[arg-type]
    video = adapter.to_canonical(
        {
            "hashed_id": "h1",
            "name": "Demo",
            "duration": 12.5,
            "thumbnail": {"url": "https://embed-ssl.wistia.com/deliveries/t.jpg?image_crop_resized=200x120"},
            "assets": [
                {"type": "IphoneVideoFile", "url": "https://embed.wistia.com/deliveries/small.bin"},
                {"type": "OriginalFile", "url": "https://embed.wistia.com/deliveries/orig.bin"},
            ],
        }
    )

    assert video is not None
    assert video.playback_link == "https://fast.wistia.net/embed/iframe/h1"
    assert video.download_link == "https://embed.wistia.com/deliveries/orig.mp4"
    assert video.thumbnail_url == "https://embed-ssl.wistia.com/deliveries/t.jpg"


@pytest.mark.asyncio
async def test_vdocipher_pages_by_forty_with_no_download() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Apisecret s"
        page = int(request.url.params["page"])
        count = 40 if page == 1 else 3
        rows = [
            {"id": f"{page}-{index}", "title": f"Row {index}", "length": 30, "upload_time": 1700000000, "posters": [{"width": 100, "posterUrl": "small"}, {"width": 800, "posterUrl": "large"}]}
            for index in range(count)
        ]
        return httpx.Response(200, json={"rows": rows, "count": 43})

    async with _client(handler) as client:
        videos = await VdoCipherAdapter(Credentials(api_secret="s"), client).collect()

    assert len(videos) == 43
    assert all(video.download_link == DOWNLOAD_UNAVAILABLE for video in videos)
    assert videos[0].thumbnail_url == "large"
    assert videos[0].created_at is not None


def _zoom_meeting(uuid: str, topic: str, with_mp4: bool = True) -> dict:
    files = [{"file_type": "M4A", "download_url": "https://zoom.us/rec/audio"}]
    if with_mp4:
        files.append(
            {
                "file_type": "MP4",
                "download_url": f"https://zoom.us/rec/download/{uuid}",
                "play_url": f"https://zoom.us/rec/play/{uuid}",
                "recording_start": "2024-07-01T10:00:00Z",
                "recording_end": "2024-07-01T10:45:30Z",
            }
        )
    return {"uuid": uuid, "topic": topic, "start_time": "2024-07-01T10:00:00Z", "duration": 46, "recording_files": files}


def _zoom_handler(routes: dict[str, tuple[int, dict]], calls: list[str]) -> Handler:
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        if request.url.path == "/oauth/token":
            status, body = routes.get("token", (200, {"access_token": "tok"}))
            return httpx.Response(status, json=body)
        assert request.headers["Authorization"] == "Bearer tok"
        status, body = routes.get(request.url.path, (404, {"message": "unexpected"}))
        return httpx.Response(status, json=body)

    return handler


@pytest.mark.asyncio
async def test_zoom_account_listing(monkeypatch) -> None:
    calls: list[str] = []
    routes = {
        "/v2/accounts/me/recordings": (
            200,
            {"meetings": [_zoom_meeting("m1", "Standup"), _zoom_meeting("m2", "Audio only", with_mp4=False)], "next_page_token": ""},
        )
    }

    async with _client(_zoom_handler(routes, calls)) as client:
        adapter = ZoomAdapter(Credentials(api_key="id", api_secret="secret", account_id="acc"), client)
        videos = await adapter.collect()

    assert calls == ["/oauth/token", "/v2/accounts/me/recordings"]
    assert len(videos) == 1
    assert videos[0].video_id == "m1"
    assert videos[0].download_link == "https://zoom.us/rec/download/m1"
    assert videos[0].duration_seconds == 2730


@pytest.mark.asyncio
async def test_zoom_falls_back_to_user_recordings(monkeypatch) -> None:
    monkeypatch.setattr("video_exporter.services.providers.zoom.settings.zoom_max_users", 3)
    calls: list[str] = []
    routes = {
        "/v2/accounts/me/recordings": (403, {"message": "Invalid access token, does not contain scopes"}),
        "/v2/users": (200, {"users": [{"id": "u1"}, {"id": "u2"}, {"id": "u3"}]}),
        "/v2/users/u1/recordings": (200, {"meetings": [_zoom_meeting("m1", "Standup")]}),
        "/v2/users/u2/recordings": (500, {"message": "oops"}),
        "/v2/users/u3/recordings": (200, {"meetings": [_zoom_meeting("m1", "Standup"), _zoom_meeting("m3", "Review")]}),
    }

    async with _client(_zoom_handler(routes, calls)) as client:
        adapter = ZoomAdapter(Credentials(api_key="id", api_secret="secret"), client)
        videos = await adapter.collect()

    assert [video.video_id for video in videos] == ["m1", "m3"]
    assert "/v2/users/u2/recordings" in calls


@pytest.mark.asyncio
async def test_zoom_reports_both_strategies_when_all_fail() -> None:
    calls: list[str] = []
    denied = (403, {"message": "scope missing"})
    routes = {"/v2/accounts/me/recordings": denied, "/v2/users": denied}

    async with _client(_zoom_handler(routes, calls)) as client:
        adapter = ZoomAdapter(Credentials(api_key="id", api_secret="secret"), client)
        with pytest.raises(AuthenticationError) as excinfo:
            await adapter.collect()

    message = str(excinfo.value)
    assert "Unable to list Zoom recordings" in message
    assert "account recordings" in message
    assert "user recordings" in message


@pytest.mark.asyncio
async def test_zoom_token_rejection_is_authentication_error() -> None:
    calls: list[str] = []
    routes = {"token": (400, {"reason": "Invalid client_id or client_secret"})}

    async with _client(_zoom_handler(routes, calls)) as client:
        adapter = ZoomAdapter(Credentials(api_key="id", api_secret="wrong"), client)
        with pytest.raises(AuthenticationError):
            await adapter.collect()

    assert calls == ["/oauth/token"]


@pytest.mark.asyncio
async def test_zoom_token_request_uses_basic_auth() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, content=json.dumps({"access_token": "tok"}))

    async with _client(handler) as client:
        adapter = ZoomAdapter(Credentials(api_key="id", api_secret="secret", account_id="acc"), client)
        assert await adapter.authenticate() == "tok"
        assert await adapter.authenticate() == "tok"

    assert len(captured) == 1
    request = captured[0]
    assert request.method == "POST"
    assert request.url.params["grant_type"] == "account_credentials"
    assert request.url.params["account_id"] == "acc"
    assert request.headers["Authorization"].startswith("Basic ")


def test_split_date_range_keeps_each_query_within_a_month() -> None:
    spans = split_date_range(
        DateRange(start=datetime(2024, 1, 1, tzinfo=timezone.utc), end=datetime(2024, 3, 31, tzinfo=timezone.utc))
    )

    assert [(span.start.date().isoformat(), span.end.date().isoformat()) for span in spans] == [
        ("2024-01-01", "2024-01-31"),
        ("2024-02-01", "2024-03-02"),
        ("2024-03-03", "2024-03-31"),
    ]


@pytest.mark.asyncio
async def test_zoom_long_window_is_queried_month_by_month() -> None:
    queried: list[tuple[str, str]] = []
    progress: list[tuple[int, int]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/oauth/token":
            return httpx.Response(200, json={"access_token": "tok"})
        params = request.url.params
        queried.append((params["from"], params["to"]))
        return httpx.Response(200, json={"meetings": [_zoom_meeting(f"m-{params['from']}", params["from"])]})

    window = DateRange(start=datetime(2024, 1, 1, tzinfo=timezone.utc), end=datetime(2024, 3, 31, tzinfo=timezone.utc))
    async with _client(handler) as client:
        adapter = ZoomAdapter(Credentials(api_key="id", api_secret="secret", account_id="acc"), client)
        videos = await adapter.collect(date_range=window, observer=lambda page, items: progress.append((page, items)))

    assert queried == [("2024-01-01", "2024-01-31"), ("2024-02-01", "2024-03-02"), ("2024-03-03", "2024-03-31")]
    assert [video.video_id for video in videos] == ["m-2024-01-01", "m-2024-02-01", "m-2024-03-03"]
    assert progress == [(1, 1), (2, 2), (3, 3)]
