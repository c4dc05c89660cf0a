"""Generic HTML page extractor.

Last-resort extractor that fetches the page itself and looks for directly
retrievable media in:
- Open Graph meta tags (og:video, og:image and their dimensions)
- Twitter Card meta tags
- HTML5 <video> tags (src and <source> children)
- JSON-LD VideoObject / ImageObject structured data

Only URLs that point at a media file are kept; player embeds are ignored
because nothing downstream can play them.
"""
import json
import logging
import re
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from ..base import BaseExtractor, ResolveOptions
from ..exceptions import MalformedPayloadError
from ..models import IMAGE_EXTENSIONS, AuthMaterial, MediaDescriptor, Platform
from ..normalizer import extension_from_url, normalize
from .http_client import build_headers, fetch_text

logger = logging.getLogger(__name__)

SOURCE_NAME = "HTML page"

VIDEO_EXTENSIONS = frozenset({"mp4", "webm", "mov", "m4v", "m3u8"})

_MIME_EXTENSIONS = {
    "video/mp4": "mp4",
    "video/webm": "webm",
    "video/quicktime": "mov",
    "application/x-mpegurl": "m3u8",
    "application/vnd.apple.mpegurl": "m3u8",
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}

_ISO_DURATION_REGEX = re.compile(
    r"^P(?:(?P<days>\d+)D)?"
    r"(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+(?:\.\d+)?)S)?)?$",
    re.IGNORECASE,
)


def parse_iso_duration(value: Optional[str]) -> float:
    """Seconds in an ISO 8601 duration such as ``PT1M30S``; 0 when unparsable."""
    if not value or not isinstance(value, str):
        return 0
    match = _ISO_DURATION_REGEX.match(value.strip())
    if not match:
        return 0
    parts = {k: float(v) for k, v in match.groupdict().items() if v}
    return (
        parts.get("days", 0) * 86400
        + parts.get("hours", 0) * 3600
        + parts.get("minutes", 0) * 60
        + parts.get("seconds", 0)
    )


def _int_attr(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _meta(soup: BeautifulSoup, key: str) -> Optional[str]:
    tag = soup.find("meta", property=key) or soup.find("meta", attrs={"name": key})
    if tag and tag.get("content"):
        return tag["content"].strip()
    return None


def _media_extension(url: str, mime_type: Optional[str]) -> str:
    extension = extension_from_url(url)
    if extension in VIDEO_EXTENSIONS or extension in IMAGE_EXTENSIONS:
        return extension
    if mime_type:
        return _MIME_EXTENSIONS.get(mime_type.split(";")[0].strip().lower(), "")
    return ""


class _Collector:
    """Accumulates candidate formats, dropping duplicates and non-media URLs."""

    def __init__(self, base_url: str):
        self.base_url = base_url
        self.formats: List[Dict[str, Any]] = []
        self._seen = set()

    def add(
        self,
        url: Optional[str],
        source: str,
        mime_type: Optional[str] = None,
        width: Any = None,
        height: Any = None,
    ) -> None:
        if not url:
            return
        absolute = urljoin(self.base_url, url.strip())
        if absolute in self._seen or not absolute.startswith(("http://", "https://")):
            return

        extension = _media_extension(absolute, mime_type)
        if not extension:
            logger.debug(f"Skipping non-media URL from {source}: {absolute}")
            return

        self._seen.add(absolute)
        is_image = extension in IMAGE_EXTENSIONS
        self.formats.append({
            "format_id": f"{source}-{len(self.formats)}",
            "ext": extension,
            "width": _int_attr(width),
            "height": _int_attr(height),
            "vcodec": "none" if is_image else None,
            "acodec": "none" if is_image else None,
            "url": absolute,
        })


def _json_ld_objects(soup: BeautifulSoup) -> List[Dict[str, Any]]:
    objects = []
    for script in soup.find_all("script", type="application/ld+json"):
        if not script.string:
            continue
        try:
            data = json.loads(script.string)
        except ValueError as e:
            logger.debug(f"Failed to parse JSON-LD: {e}")
            continue

        if isinstance(data, dict) and isinstance(data.get("@graph"), list):
            data = data["@graph"]
        items = data if isinstance(data, list) else [data]
        objects.extend(item for item in items if isinstance(item, dict))
    return objects


def parse_html_page(html: str, base_url: str, platform: Platform) -> MediaDescriptor:
    """Build a MediaDescriptor from a fetched HTML page.

    Args:
        html: Page body
        base_url: Final URL of the page, for resolving relative links
        platform: Classification result for the URL

    Returns:
        MediaDescriptor with one format per distinct media URL found

    Raises:
        MalformedPayloadError: If the page exposes no direct media URL
    """
    soup = BeautifulSoup(html, "html.parser")
    collector = _Collector(base_url)

    # Video sources first so a page with both video and preview image
    # resolves as a video
    for key in ("og:video:secure_url", "og:video:url", "og:video"):
        collector.add(
            _meta(soup, key),
            "og_video",
            mime_type=_meta(soup, "og:video:type"),
            width=_meta(soup, "og:video:width"),
            height=_meta(soup, "og:video:height"),
        )
    collector.add(_meta(soup, "twitter:player:stream"), "twitter_card")

    for video in soup.find_all("video"):
        collector.add(
            video.get("src"), "video_tag",
            width=video.get("width"), height=video.get("height"),
        )
        for source in video.find_all("source"):
            collector.add(
                source.get("src"), "video_source_tag",
                mime_type=source.get("type"),
                height=source.get("res") or source.get("size"),
            )

    json_ld = _json_ld_objects(soup)
    duration = 0
    for item in json_ld:
        if item.get("@type") == "VideoObject":
            collector.add(
                item.get("contentUrl"), "json_ld",
                mime_type=item.get("encodingFormat"),
                width=item.get("width"), height=item.get("height"),
            )
            duration = duration or parse_iso_duration(item.get("duration"))

    has_video = bool(collector.formats)

    if not has_video:
        collector.add(
            _meta(soup, "og:image:secure_url") or _meta(soup, "og:image"),
            "og_image",
            mime_type=_meta(soup, "og:image:type"),
            width=_meta(soup, "og:image:width"),
            height=_meta(soup, "og:image:height"),
        )
        for item in json_ld:
            if item.get("@type") == "ImageObject":
                collector.add(
                    item.get("contentUrl") or item.get("url"), "json_ld_image",
                    width=item.get("width"), height=item.get("height"),
                )

    if not collector.formats:
        raise MalformedPayloadError("No direct media URL found on the page", url=base_url)

    title_tag = soup.find("title")
    thumbnail = _meta(soup, "og:image")
    raw = {
        "title": _meta(soup, "og:title") or (title_tag.get_text(strip=True) if title_tag else None),
        "description": _meta(soup, "og:description") or _meta(soup, "description"),
        "thumbnail": urljoin(base_url, thumbnail) if has_video and thumbnail else None,
        "duration": duration,
        "uploader": _meta(soup, "og:site_name") or _meta(soup, "author"),
        "webpage_url": _meta(soup, "og:url") or base_url,
        "formats": collector.formats,
    }
    return normalize(raw, platform, source_url=base_url)


class HtmlPageExtractor(BaseExtractor):
    """Generic extractor that scrapes the page for direct media links."""

    name = SOURCE_NAME

    def timeout(self, options: ResolveOptions) -> float:
        return options.html_timeout

    async def extract(
        self,
        url: str,
        platform: Platform,
        auth: Optional[AuthMaterial],
        options: ResolveOptions,
    ) -> MediaDescriptor:
        html, final_url = await fetch_text(
            url,
            source=self.name,
            timeout=self.timeout(options),
            headers=build_headers(
                options.user_agent,
                {"Accept": "text/html,application/xhtml+xml,*/*;q=0.8"},
            ),
        )
        return parse_html_page(html, final_url, platform)


__all__ = [
    "HtmlPageExtractor",
    "parse_html_page",
    "parse_iso_duration",
]
