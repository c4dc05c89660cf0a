"""yt-dlp based extractor.

Uses yt-dlp's Python API for metadata extraction from YouTube, Instagram,
TikTok, Twitter/X, Facebook, Vimeo and the 1000+ other sites it supports.
Nothing is downloaded; the blocking API runs in a worker thread via
asyncio.to_thread so the event loop stays free and the orchestrator can
bound the call.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

import yt_dlp
from yt_dlp.utils import DownloadError, ExtractorError

from ..base import BaseExtractor, ResolveOptions
from ..exceptions import MalformedPayloadError, error_from_message
from ..format_selector import tier_max_height
from ..models import (
    AuthMaterial,
    Format,
    MediaDescriptor,
    Platform,
    QualityTier,
    ToolCapabilities,
)
from ..normalizer import normalize, normalize_format

logger = logging.getLogger(__name__)


def merge_format_spec(tier: QualityTier, can_merge: bool = True) -> str:
    """yt-dlp format selector for a rendition carrying both tracks.

    A progressive stream (video and audio in one file) is preferred. Without
    ffmpeg only progressive streams are requested.

    Args:
        tier: Target quality tier
        can_merge: Whether separate video/audio streams may be combined

    Returns:
        yt-dlp ``format`` option value
    """
    tier = QualityTier(tier)
    height = tier_max_height(tier)
    progressive = f"best[height<={height}][vcodec!=none][acodec!=none]"
    if not can_merge:
        return f"{progressive}/best[height<={height}]/best"

    spec = f"{progressive}/bestvideo[height<={height}]+bestaudio/best[height<={height}]"
    if tier == QualityTier.HD:
        spec += "/bestvideo+bestaudio/best"
    return spec


def first_entry(info: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Unwrap playlists; only the first item of a playlist is resolved."""
    if not info:
        return info
    if info.get("_type") in ("playlist", "multi_video"):
        entries = info.get("entries") or []
        return next((e for e in entries if e), None)
    return info


class YtDlpExtractor(BaseExtractor):
    """Extractor using yt-dlp for metadata and follow-up format queries.

    Generic: it is tried for every classified URL. It is the only extractor
    that can use cookie files and the only one that supports follow-up
    queries (merged formats and direct URLs for a format id).

    Example:
        extractor = YtDlpExtractor(discover_capabilities())
        descriptor = await extractor.extract(url, platform, auth, options)
    """

    name = "yt-dlp"
    uses_credentials = True
    supports_follow_up = True

    def __init__(self, capabilities: Optional[ToolCapabilities] = None):
        self.capabilities = capabilities

    def timeout(self, options: ResolveOptions) -> float:
        return options.ytdlp_timeout

    def _build_ydl_options(
        self,
        auth: Optional[AuthMaterial],
        options: ResolveOptions,
        format_spec: Optional[str] = None,
    ) -> Dict[str, Any]:
        ydl_opts = {
            "quiet": True,
            "no_warnings": True,
            "noplaylist": True,
            "skip_download": True,
            "http_headers": {"User-Agent": options.user_agent},
        }

        if format_spec:
            ydl_opts["format"] = format_spec
        else:
            # Metadata pass: keep image-only posts instead of failing on them
            ydl_opts["ignore_no_formats_error"] = True

        if auth is not None:
            ydl_opts["cookiefile"] = auth.cookie_file

        if self.capabilities and self.capabilities.ffmpeg_location:
            ydl_opts["ffmpeg_location"] = self.capabilities.ffmpeg_location

        return ydl_opts

    async def _run(self, url: str, ydl_opts: Dict[str, Any]) -> Dict[str, Any]:
        """Run extract_info in a worker thread and classify its failures."""

        def _extract() -> Optional[Dict[str, Any]]:
            with yt_dlp.YoutubeDL(ydl_opts) as ydl:
                info = ydl.extract_info(url, download=False)
                return ydl.sanitize_info(info) if info else None

        try:
            info = await asyncio.to_thread(_extract)
        except (DownloadError, ExtractorError) as e:
            logger.warning(f"yt-dlp failed for {url}: {e}")
            raise error_from_message(str(e), url=url) from e

        info = first_entry(info)
        if not info:
            raise MalformedPayloadError("yt-dlp returned no metadata", url=url)
        return info

    async def extract(
        self,
        url: str,
        platform: Platform,
        auth: Optional[AuthMaterial],
        options: ResolveOptions,
    ) -> MediaDescriptor:
        ydl_opts = self._build_ydl_options(auth, options)
        info = await self._run(url, ydl_opts)
        return normalize(info, platform, source_url=url)

    async def fetch_merged_format(
        self,
        url: str,
        tier: QualityTier,
        auth: Optional[AuthMaterial],
        options: ResolveOptions,
    ) -> Format:
        """Ask yt-dlp for a rendition with both video and audio.

        For a merged selection (``137+140``) the URL of the first stream is
        reported, the same one ``yt-dlp -g`` prints first. Its codecs are kept
        as they are, so a video-only first stream still reports no audio.

        Raises:
            ResolutionError: If yt-dlp fails or no URL is returned
        """
        can_merge = self.capabilities.can_merge if self.capabilities else True
        spec = merge_format_spec(tier, can_merge)
        logger.debug(f"Requesting merged format for {url} with {spec!r}")

        info = await self._run(url, self._build_ydl_options(auth, options, spec))

        if info.get("url"):
            return normalize_format(info)

        requested = info.get("requested_formats") or []
        if not requested or not requested[0].get("url"):
            raise MalformedPayloadError("yt-dlp returned no URL for merged format", url=url)

        merged = dict(requested[0])
        merged["format_id"] = info.get("format_id") or merged.get("format_id")
        return normalize_format(merged)

    async def fetch_direct_url(
        self,
        url: str,
        format_id: str,
        auth: Optional[AuthMaterial],
        options: ResolveOptions,
    ) -> str:
        info = await self._run(url, self._build_ydl_options(auth, options, format_id))

        direct_url = info.get("url")
        if not direct_url:
            requested = info.get("requested_formats") or []
            direct_url = requested[0].get("url") if requested else None

        if not direct_url:
            raise MalformedPayloadError(
                f"yt-dlp returned no URL for format {format_id}", url=url
            )
        return direct_url


__all__ = [
    "YtDlpExtractor",
    "first_entry",
    "merge_format_spec",
]
