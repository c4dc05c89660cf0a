"""Tests for the HTTP extractors and their aiohttp plumbing."""
import asyncio

import aiohttp
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from mediagrab.resolvers.base import ResolveOptions
from mediagrab.resolvers.exceptions import (
    ExtractionTimeoutError,
    MalformedPayloadError,
    MediaNotFoundError,
    NetworkError,
    UpstreamBlockedError,
)
from mediagrab.resolvers.extractors import (
    CobaltExtractor,
    HtmlPageExtractor,
    TikWmExtractor,
    YtDlpExtractor,
    build_default_extractors,
)
from mediagrab.resolvers.extractors.http_client import build_headers, request_json
from mediagrab.resolvers.models import Platform

YOUTUBE_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
TIKTOK_URL = "https://www.tiktok.com/@user/video/7234567890123456789"


@pytest.fixture
def mock_session():
    """Patch aiohttp.ClientSession and return the session used inside it."""
    with patch("mediagrab.resolvers.extractors.http_client.aiohttp.ClientSession") as session_class:
        session = MagicMock()
        session_class.return_value.__aenter__.return_value = session
        yield session


def make_response(session, status=200, json_data=None, json_error=None):
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=json_data, side_effect=json_error)
    session.request.return_value.__aenter__.return_value = response
    return response


class TestRequestJson:
    """Tests for request_json()."""

    @pytest.mark.asyncio
    async def test_returns_status_and_body(self, mock_session):
        make_response(mock_session, 200, {"status": "redirect"})

        status, data = await request_json(
            "POST", "https://api.cobalt.tools/",
            source="Cobalt API", media_url=YOUTUBE_URL, timeout=5,
            headers={"Accept": "application/json"}, json_body={"url": YOUTUBE_URL},
        )

        assert status == 200
        assert data == {"status": "redirect"}
        args, kwargs = mock_session.request.call_args
        assert args == ("POST", "https://api.cobalt.tools/")
        assert kwargs["json"] == {"url": YOUTUBE_URL}

    @pytest.mark.asyncio
    async def test_error_status_without_json(self, mock_session):
        make_response(mock_session, 429, json_error=ValueError("not json"))

        with pytest.raises(UpstreamBlockedError):
            await request_json(
                "GET", "https://www.tikwm.com/api/", source="TikWM API",
                media_url=TIKTOK_URL, timeout=5, headers={},
            )

    @pytest.mark.asyncio
    async def test_success_without_json_is_malformed(self, mock_session):
        make_response(mock_session, 200, json_error=ValueError("not json"))

        with pytest.raises(MalformedPayloadError):
            await request_json(
                "GET", "https://www.tikwm.com/api/", source="TikWM API",
                media_url=TIKTOK_URL, timeout=5, headers={},
            )

    @pytest.mark.asyncio
    async def test_timeout(self, mock_session):
        mock_session.request.side_effect = asyncio.TimeoutError()

        with pytest.raises(ExtractionTimeoutError) as exc_info:
            await request_json(
                "GET", "https://www.tikwm.com/api/", source="TikWM API",
                media_url=TIKTOK_URL, timeout=5, headers={},
            )
        assert exc_info.value.timeout == 5

    @pytest.mark.asyncio
    async def test_client_error_is_network(self, mock_session):
        mock_session.request.side_effect = aiohttp.ServerDisconnectedError()

        with pytest.raises(NetworkError):
            await request_json(
                "GET", "https://www.tikwm.com/api/", source="TikWM API",
                media_url=TIKTOK_URL, timeout=5, headers={},
            )

    def test_build_headers(self):
        headers = build_headers("UA/1.0", {"Accept": "application/json"})
        assert headers["User-Agent"] == "UA/1.0"
        assert headers["Accept"] == "application/json"
        assert "Accept-Language" in headers


class TestCobaltExtractor:
    """Tests for CobaltExtractor.extract() with the HTTP call mocked."""

    @pytest.mark.asyncio
    async def test_posts_url_and_api_key(self):
        payload = {"status": "tunnel", "url": "https://cobalt.example/t/1", "filename": "a.mp4"}
        with patch(
            "mediagrab.resolvers.extractors.cobalt.request_json",
            AsyncMock(return_value=(200, payload)),
        ) as mock_request:
            options = ResolveOptions(cobalt_api_key="k3y")
            descriptor = await CobaltExtractor().extract(YOUTUBE_URL, Platform.YOUTUBE, None, options)

        assert descriptor.formats[0].direct_url == "https://cobalt.example/t/1"
        kwargs = mock_request.call_args[1]
        assert kwargs["json_body"]["url"] == YOUTUBE_URL
        assert kwargs["headers"]["Authorization"] == "Api-Key k3y"
        assert kwargs["timeout"] == options.api_timeout

    @pytest.mark.asyncio
    async def test_error_body_wins_over_status(self):
        payload = {"status": "error", "error": {"code": "error.api.content.video.unavailable"}}
        with patch(
            "mediagrab.resolvers.extractors.cobalt.request_json",
            AsyncMock(return_value=(400, payload)),
        ):
            with pytest.raises(MediaNotFoundError):
                await CobaltExtractor().extract(YOUTUBE_URL, Platform.YOUTUBE, None, ResolveOptions())

    @pytest.mark.asyncio
    async def test_error_status_without_error_body(self):
        with patch(
            "mediagrab.resolvers.extractors.cobalt.request_json",
            AsyncMock(return_value=(503, {"detail": "maintenance"})),
        ):
            with pytest.raises(NetworkError):
                await CobaltExtractor().extract(YOUTUBE_URL, Platform.YOUTUBE, None, ResolveOptions())


class TestTikWmExtractor:
    @pytest.mark.asyncio
    async def test_sends_url_param(self):
        payload = {"code": 0, "data": {"id": "1", "play": "https://v16.tiktokcdn.com/p.mp4", "duration": 5}}
        with patch(
            "mediagrab.resolvers.extractors.tikwm.request_json",
            AsyncMock(return_value=(200, payload)),
        ) as mock_request:
            descriptor = await TikWmExtractor().extract(TIKTOK_URL, Platform.TIKTOK, None, ResolveOptions())

        assert descriptor.id == "1"
        assert mock_request.call_args[1]["params"] == {"url": TIKTOK_URL, "hd": "1"}

    def test_only_handles_tiktok(self):
        extractor = TikWmExtractor()
        assert not extractor.is_generic
        assert extractor.can_handle(TIKTOK_URL, Platform.TIKTOK)
        assert not extractor.can_handle(YOUTUBE_URL, Platform.YOUTUBE)


class TestHtmlPageExtractor:
    @pytest.mark.asyncio
    async def test_parses_fetched_page(self):
        html = '<meta property="og:video" content="/v.mp4">'
        with patch(
            "mediagrab.resolvers.extractors.html_page.fetch_text",
            AsyncMock(return_value=(html, "https://example.com/final")),
        ) as mock_fetch:
            options = ResolveOptions(html_timeout=12)
            descriptor = await HtmlPageExtractor().extract(
                "https://example.com/start", Platform.OTHER, None, options
            )

        assert descriptor.formats[0].direct_url == "https://example.com/v.mp4"
        assert mock_fetch.call_args[1]["timeout"] == 12


class TestRegistry:
    def test_default_order(self):
        extractors = build_default_extractors()
        assert [type(e) for e in extractors] == [
            TikWmExtractor, YtDlpExtractor, CobaltExtractor, HtmlPageExtractor,
        ]

    def test_follow_up_support(self):
        assert [e.name for e in build_default_extractors() if e.supports_follow_up] == ["yt-dlp"]
