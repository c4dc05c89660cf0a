"""Cobalt API extractor.

Cobalt (https://github.com/imputnet/cobalt) resolves a media page into a
single downloadable URL. It reports no real formats, so the descriptor it
produces carries one synthetic format: 1080p H.264/AAC for videos, an image
for photo posts.
"""
import logging
from typing import Any, Mapping, Optional

from ..base import BaseExtractor, ResolveOptions
from ..exceptions import (
    FailureKind,
    MalformedPayloadError,
    UpstreamBlockedError,
    error_for_status,
    error_from_message,
)
from ..models import AuthMaterial, MediaDescriptor, Platform
from ..normalizer import extension_from_url, normalize
from ..url_detector import (
    PLATFORM_LABELS,
    extract_tiktok_id,
    extract_youtube_id,
    platform_label,
)
from .http_client import build_headers, request_json

logger = logging.getLogger(__name__)

SOURCE_NAME = "Cobalt API"

# Cobalt reports no dimensions; its default video output is 1080p H.264/AAC
COBALT_VIDEO_WIDTH = 1920
COBALT_VIDEO_HEIGHT = 1080

_URL_STATUSES = ("redirect", "stream", "tunnel")


def _error_text(data: Mapping[str, Any]) -> str:
    error = data.get("error")
    if isinstance(error, Mapping):
        return str(error.get("code") or "")
    return str(data.get("text") or error or "")


def _media_id(url: str) -> Optional[str]:
    return extract_youtube_id(url) or extract_tiktok_id(url)


def parse_cobalt_payload(
    data: Any,
    url: str,
    platform: Platform,
) -> MediaDescriptor:
    """Turn a decoded Cobalt response into a MediaDescriptor.

    Args:
        data: Decoded JSON body
        url: The media URL that was submitted
        platform: Classification result for the URL

    Returns:
        MediaDescriptor with one synthetic format

    Raises:
        UpstreamBlockedError: If the instance requires an API key
        ResolutionError: Classified from Cobalt's error code
        MalformedPayloadError: If the body has no usable URL
    """
    if not isinstance(data, Mapping):
        raise MalformedPayloadError(f"{SOURCE_NAME} returned an unexpected body", url=url)

    status = data.get("status")

    if status == "error":
        text = _error_text(data) or f"{SOURCE_NAME} error"
        lowered = text.lower()
        if lowered.startswith("error.api.auth") or "jwt" in lowered:
            raise UpstreamBlockedError(
                f"{SOURCE_NAME} requires authentication ({text})", url=url
            )
        raise error_from_message(text, url=url, default=FailureKind.UPSTREAM_BLOCKED)

    is_photo = False
    thumbnail = None
    filename = data.get("filename")

    if status in _URL_STATUSES:
        media_url = data.get("url")
    elif status == "picker":
        items = [item for item in (data.get("picker") or []) if isinstance(item, Mapping)]
        if not items:
            raise MalformedPayloadError(f"{SOURCE_NAME} picker is empty", url=url)
        first = items[0]
        media_url = first.get("url")
        is_photo = first.get("type") == "photo"
        thumbnail = first.get("thumb")
    else:
        raise MalformedPayloadError(
            f"{SOURCE_NAME} returned unknown status {status!r}", url=url
        )

    if not media_url:
        raise MalformedPayloadError(f"{SOURCE_NAME} returned no download URL", url=url)

    label = PLATFORM_LABELS.get(platform) or platform_label(url, platform)
    extension = extension_from_url(filename and f"/{filename}") or extension_from_url(media_url)

    if is_photo:
        media_format = {
            "format_id": "cobalt-photo",
            "ext": extension or "jpg",
            "vcodec": "none",
            "acodec": "none",
            "url": media_url,
        }
    else:
        media_format = {
            "format_id": "cobalt",
            "ext": extension or "mp4",
            "width": COBALT_VIDEO_WIDTH,
            "height": COBALT_VIDEO_HEIGHT,
            "vcodec": "h264",
            "acodec": "aac",
            "url": media_url,
        }

    raw = {
        "id": _media_id(url),
        "title": f"{label} {'Photo' if is_photo else 'Video'}",
        "thumbnail": thumbnail,
        "webpage_url": url,
        "formats": [media_format],
    }
    return normalize(raw, platform, source_url=url)


class CobaltExtractor(BaseExtractor):
    """Generic extractor backed by a Cobalt instance."""

    name = SOURCE_NAME

    async def extract(
        self,
        url: str,
        platform: Platform,
        auth: Optional[AuthMaterial],
        options: ResolveOptions,
    ) -> MediaDescriptor:
        extra = {"Accept": "application/json"}
        if options.cobalt_api_key:
            extra["Authorization"] = f"Api-Key {options.cobalt_api_key}"

        body = {
            "url": url,
            "videoQuality": "1080",
            "filenameStyle": "basic",
            "downloadMode": "auto",
        }

        status, data = await request_json(
            "POST",
            options.cobalt_api_url,
            source=self.name,
            media_url=url,
            timeout=self.timeout(options),
            headers=build_headers(options.user_agent, extra),
            json_body=body,
        )

        # Cobalt explains most failures in the body; fall back to the status
        if status >= 400 and not (isinstance(data, Mapping) and data.get("status") == "error"):
            raise error_for_status(status, self.name, url=url)

        return parse_cobalt_payload(data, url, platform)


__all__ = [
    "CobaltExtractor",
    "parse_cobalt_payload",
]
