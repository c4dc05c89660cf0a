"""Tests for the yt-dlp extractor with yt-dlp itself mocked out."""
import pytest
from unittest.mock import MagicMock, patch

from yt_dlp.utils import DownloadError

from mediagrab.resolvers.base import ResolveOptions
from mediagrab.resolvers.exceptions import (
    AuthRequiredError,
    MalformedPayloadError,
    MediaNotFoundError,
    UpstreamBlockedError,
)
from mediagrab.resolvers.extractors.ytdlp import (
    YtDlpExtractor,
    first_entry,
    merge_format_spec,
)
from mediagrab.resolvers.models import (
    AuthMaterial,
    MediaKind,
    Platform,
    QualityTier,
    ToolCapabilities,
)

YOUTUBE_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"

INFO = {
    "id": "dQw4w9WgXcQ",
    "title": "Never Gonna Give You Up",
    "duration": 213,
    "uploader": "Rick Astley",
    "webpage_url": YOUTUBE_URL,
    "extractor_key": "Youtube",
    "formats": [
        {"format_id": "18", "ext": "mp4", "width": 640, "height": 360,
         "vcodec": "avc1", "acodec": "mp4a", "url": "https://rr1.googlevideo.com/18"},
    ],
}


@pytest.fixture
def mock_ydl():
    """Patch YoutubeDL and return the instance used inside the context manager."""
    with patch("mediagrab.resolvers.extractors.ytdlp.yt_dlp.YoutubeDL") as ydl_class:
        ydl = MagicMock()
        ydl.sanitize_info.side_effect = lambda info: info
        ydl_class.return_value.__enter__.return_value = ydl
        ydl.ydl_class = ydl_class
        yield ydl


class TestMergeFormatSpec:
    """Tests for merge_format_spec()."""

    def test_sd_prefers_progressive_then_merge(self):
        spec = merge_format_spec(QualityTier.SD)
        assert spec.startswith("best[height<=480][vcodec!=none][acodec!=none]/")
        assert "bestvideo[height<=480]+bestaudio" in spec
        assert not spec.endswith("/bestvideo+bestaudio/best")

    def test_hd_has_unbounded_fallback(self):
        spec = merge_format_spec(QualityTier.HD)
        assert "bestvideo[height<=1080]+bestaudio" in spec
        assert spec.endswith("/bestvideo+bestaudio/best")

    def test_without_ffmpeg_never_merges(self):
        spec = merge_format_spec("hd", can_merge=False)
        assert "+" not in spec
        assert spec == "best[height<=1080][vcodec!=none][acodec!=none]/best[height<=1080]/best"


class TestFirstEntry:
    def test_plain_info(self):
        assert first_entry(INFO) is INFO

    def test_playlist_takes_first_non_empty_entry(self):
        playlist = {"_type": "playlist", "entries": [None, INFO, {"id": "other"}]}
        assert first_entry(playlist) is INFO

    def test_empty_playlist(self):
        assert first_entry({"_type": "playlist", "entries": []}) is None


class TestExtract:
    """Tests for YtDlpExtractor.extract()."""

    @pytest.mark.asyncio
    async def test_extract_normalizes_info(self, mock_ydl):
        mock_ydl.extract_info.return_value = INFO

        descriptor = await YtDlpExtractor().extract(
            YOUTUBE_URL, Platform.YOUTUBE, None, ResolveOptions()
        )

        assert descriptor.title == "Never Gonna Give You Up"
        assert descriptor.media_kind == MediaKind.VIDEO
        mock_ydl.extract_info.assert_called_once_with(YOUTUBE_URL, download=False)

    @pytest.mark.asyncio
    async def test_options_include_cookies_and_ffmpeg(self, mock_ydl):
        mock_ydl.extract_info.return_value = INFO
        extractor = YtDlpExtractor(ToolCapabilities("2024.01.01", "/usr/bin/ffmpeg"))
        auth = AuthMaterial(cookie_file="/srv/cookies/youtube.txt")

        await extractor.extract(YOUTUBE_URL, Platform.YOUTUBE, auth, ResolveOptions())

        ydl_opts = mock_ydl.ydl_class.call_args[0][0]
        assert ydl_opts["cookiefile"] == "/srv/cookies/youtube.txt"
        assert ydl_opts["ffmpeg_location"] == "/usr/bin/ffmpeg"
        assert ydl_opts["skip_download"] is True
        assert ydl_opts["ignore_no_formats_error"] is True
        assert "format" not in ydl_opts

    @pytest.mark.asyncio
    async def test_no_cookies_without_auth(self, mock_ydl):
        mock_ydl.extract_info.return_value = INFO

        await YtDlpExtractor().extract(YOUTUBE_URL, Platform.YOUTUBE, None, ResolveOptions())

        ydl_opts = mock_ydl.ydl_class.call_args[0][0]
        assert "cookiefile" not in ydl_opts
        assert "ffmpeg_location" not in ydl_opts

    @pytest.mark.parametrize("message,expected", [
        ("ERROR: [youtube] dQw4w9WgXcQ: Video unavailable", MediaNotFoundError),
        ("ERROR: [youtube] dQw4w9WgXcQ: Sign in to confirm you're not a bot", AuthRequiredError),
        ("ERROR: HTTP Error 429: Too Many Requests", UpstreamBlockedError),
    ])
    @pytest.mark.asyncio
    async def test_download_errors_are_classified(self, mock_ydl, message, expected):
        mock_ydl.extract_info.side_effect = DownloadError(message)

        with pytest.raises(expected):
            await YtDlpExtractor().extract(YOUTUBE_URL, Platform.YOUTUBE, None, ResolveOptions())

    @pytest.mark.asyncio
    async def test_empty_info_is_malformed(self, mock_ydl):
        mock_ydl.extract_info.return_value = None

        with pytest.raises(MalformedPayloadError):
            await YtDlpExtractor().extract(YOUTUBE_URL, Platform.YOUTUBE, None, ResolveOptions())


class TestFollowUps:
    """Tests for fetch_merged_format() and fetch_direct_url()."""

    @pytest.mark.asyncio
    async def test_progressive_merge_result(self, mock_ydl):
        mock_ydl.extract_info.return_value = {
            "format_id": "22", "ext": "mp4", "width": 1280, "height": 720,
            "vcodec": "avc1", "acodec": "mp4a", "url": "https://rr1.googlevideo.com/22",
        }

        fmt = await YtDlpExtractor().fetch_merged_format(
            YOUTUBE_URL, QualityTier.HD, None, ResolveOptions()
        )

        assert fmt.format_id == "22"
        assert fmt.has_audio
        ydl_opts = mock_ydl.ydl_class.call_args[0][0]
        assert ydl_opts["format"] == merge_format_spec(QualityTier.HD)

    @pytest.mark.asyncio
    async def test_merged_selection_reports_first_stream_codecs(self, mock_ydl):
        mock_ydl.extract_info.return_value = {
            "format_id": "137+140",
            "ext": "mp4",
            "requested_formats": [
                {"format_id": "137", "ext": "mp4", "width": 1920, "height": 1080,
                 "vcodec": "avc1", "acodec": "none", "url": "https://rr1.googlevideo.com/137"},
                {"format_id": "140", "ext": "m4a", "vcodec": "none", "acodec": "mp4a",
                 "url": "https://rr1.googlevideo.com/140"},
            ],
        }

        fmt = await YtDlpExtractor().fetch_merged_format(
            YOUTUBE_URL, QualityTier.HD, None, ResolveOptions()
        )

        assert fmt.format_id == "137+140"
        assert fmt.direct_url == "https://rr1.googlevideo.com/137"
        assert fmt.height == 1080
        assert fmt.audio_codec == "none"
        assert not fmt.has_audio

    @pytest.mark.asyncio
    async def test_no_ffmpeg_uses_progressive_spec(self, mock_ydl):
        mock_ydl.extract_info.return_value = {"format_id": "18", "url": "https://x/18"}
        extractor = YtDlpExtractor(ToolCapabilities("2024.01.01", None))

        await extractor.fetch_merged_format(YOUTUBE_URL, QualityTier.SD, None, ResolveOptions())

        ydl_opts = mock_ydl.ydl_class.call_args[0][0]
        assert ydl_opts["format"] == merge_format_spec(QualityTier.SD, can_merge=False)

    @pytest.mark.asyncio
    async def test_merged_without_url_is_malformed(self, mock_ydl):
        mock_ydl.extract_info.return_value = {"format_id": "137+140", "requested_formats": []}

        with pytest.raises(MalformedPayloadError):
            await YtDlpExtractor().fetch_merged_format(
                YOUTUBE_URL, QualityTier.HD, None, ResolveOptions()
            )

    @pytest.mark.asyncio
    async def test_direct_url_for_format_id(self, mock_ydl):
        mock_ydl.extract_info.return_value = {"format_id": "22", "url": "https://x/22"}

        url = await YtDlpExtractor().fetch_direct_url(YOUTUBE_URL, "22", None, ResolveOptions())

        assert url == "https://x/22"
        assert mock_ydl.ydl_class.call_args[0][0]["format"] == "22"

    @pytest.mark.asyncio
    async def test_direct_url_missing(self, mock_ydl):
        mock_ydl.extract_info.return_value = {"format_id": "22"}

        with pytest.raises(MalformedPayloadError):
            await YtDlpExtractor().fetch_direct_url(YOUTUBE_URL, "22", None, ResolveOptions())
