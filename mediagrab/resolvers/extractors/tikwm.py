"""TikWM API extractor for TikTok.

TikWM returns watermark-free video URLs and slideshow images without login.
It is platform-specific, so the orchestrator tries it before the generic
extractors for TikTok URLs.
"""
import logging
from typing import Any, Mapping, Optional
from urllib.parse import urljoin

from ..base import BaseExtractor, ResolveOptions
from ..exceptions import FailureKind, MalformedPayloadError, error_for_status, error_from_message
from ..models import AuthMaterial, MediaDescriptor, Platform
from ..normalizer import extension_from_url, normalize
from .http_client import build_headers, request_json

logger = logging.getLogger(__name__)

SOURCE_NAME = "TikWM API"
TIKWM_BASE_URL = "https://www.tikwm.com"

# TikWM reports no dimensions. Height carries the short side of the
# portrait video, which is what the quality tiers compare.
HD_WIDTH, HD_HEIGHT = 1920, 1080
SD_WIDTH, SD_HEIGHT = 1024, 576


def _absolute(value: Optional[str]) -> Optional[str]:
    # Some TikWM mirrors return paths relative to their own host
    if not value:
        return None
    return urljoin(TIKWM_BASE_URL, value)


def parse_tikwm_payload(
    data: Any,
    url: str,
    platform: Platform = Platform.TIKTOK,
) -> MediaDescriptor:
    """Turn a decoded TikWM response into a MediaDescriptor.

    Videos get an ``hd`` and an ``sd`` format; slideshows get one image
    format per picture.

    Raises:
        ResolutionError: Classified from TikWM's ``msg`` when ``code != 0``
        MalformedPayloadError: If the body has no usable URL
    """
    if not isinstance(data, Mapping):
        raise MalformedPayloadError(f"{SOURCE_NAME} returned an unexpected body", url=url)

    code = data.get("code")
    if code != 0:
        message = data.get("msg") or f"{SOURCE_NAME} error code {code}"
        raise error_from_message(message, url=url, default=FailureKind.UPSTREAM_BLOCKED)

    video = data.get("data")
    if not isinstance(video, Mapping):
        raise MalformedPayloadError(f"{SOURCE_NAME} returned no data", url=url)

    images = [_absolute(i) for i in (video.get("images") or []) if isinstance(i, str)]
    images = [i for i in images if i]

    if images:
        formats = [
            {
                "format_id": f"image-{index}",
                "ext": extension_from_url(image) or "jpg",
                "vcodec": "none",
                "acodec": "none",
                "url": image,
            }
            for index, image in enumerate(images)
        ]
        duration = 0
    else:
        play = _absolute(video.get("play"))
        hdplay = _absolute(video.get("hdplay"))
        download_url = play or hdplay or _absolute(video.get("wmplay"))
        if not download_url:
            raise MalformedPayloadError(f"{SOURCE_NAME} returned no download URL", url=url)

        formats = [
            {
                "format_id": "hd",
                "ext": "mp4",
                "width": HD_WIDTH,
                "height": HD_HEIGHT,
                "vcodec": "h264",
                "acodec": "aac",
                "filesize": video.get("hd_size"),
                "format_note": "HD (No Watermark)",
                "url": hdplay or download_url,
            },
            {
                "format_id": "sd",
                "ext": "mp4",
                "width": SD_WIDTH,
                "height": SD_HEIGHT,
                "vcodec": "h264",
                "acodec": "aac",
                "filesize": video.get("size"),
                "format_note": "SD (No Watermark)",
                "url": play or download_url,
            },
        ]
        duration = video.get("duration") or 0

    author = video.get("author") if isinstance(video.get("author"), Mapping) else {}

    raw = {
        "id": video.get("id"),
        "title": video.get("title") or ("TikTok Photo" if images else "TikTok Video"),
        "description": video.get("title") or "",
        "thumbnail": _absolute(video.get("cover") or video.get("origin_cover")),
        "duration": duration,
        "uploader": author.get("nickname") or "TikTok",
        "uploader_id": author.get("unique_id"),
        "webpage_url": url,
        "formats": formats,
    }
    return normalize(raw, platform, source_url=url)


class TikWmExtractor(BaseExtractor):
    """TikTok-only extractor backed by the TikWM API."""

    name = SOURCE_NAME
    platforms = frozenset({Platform.TIKTOK})

    async def extract(
        self,
        url: str,
        platform: Platform,
        auth: Optional[AuthMaterial],
        options: ResolveOptions,
    ) -> MediaDescriptor:
        status, data = await request_json(
            "GET",
            options.tikwm_api_url,
            source=self.name,
            media_url=url,
            timeout=self.timeout(options),
            headers=build_headers(options.user_agent),
            params={"url": url, "hd": "1"},
        )
        if status >= 400:
            raise error_for_status(status, self.name, url=url)

        return parse_tikwm_payload(data, url, platform)


__all__ = [
    "TikWmExtractor",
    "parse_tikwm_payload",
]
