"""Descriptor normalizer: upstream payloads to the canonical model.

Every extractor ends by building a yt-dlp-shaped info dict (``title``,
``thumbnail``/``thumbnails``, ``duration``, ``uploader``, ``formats``...) and
handing it to :func:`normalize`. Keeping one mapping means upstream drift only
touches the extractor that produces the dict.
"""
import hashlib
import logging
import posixpath
from typing import Any, Mapping, Optional
from urllib.parse import urlparse

from .exceptions import MalformedPayloadError
from .models import (
    IMAGE_EXTENSIONS,
    Format,
    MediaDescriptor,
    MediaKind,
    Platform,
)
from .url_detector import PLATFORM_LABELS, classify, platform_label

logger = logging.getLogger(__name__)

UNKNOWN_TITLE = "Unknown Title"
UNKNOWN_UPLOADER = "Unknown"

# yt-dlp extractor_key prefixes that identify a known platform
_EXTRACTOR_PLATFORMS = {
    "youtube": Platform.YOUTUBE,
    "instagram": Platform.INSTAGRAM,
    "facebook": Platform.FACEBOOK,
    "twitter": Platform.TWITTER,
    "tiktok": Platform.TIKTOK,
    "vimeo": Platform.VIMEO,
}


def _int_or_zero(value: Any) -> int:
    try:
        return max(int(value or 0), 0)
    except (TypeError, ValueError):
        return 0


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def extension_from_url(url: Optional[str]) -> str:
    """Lower-case extension of a URL path, "" when there is none."""
    if not url:
        return ""
    path = urlparse(url).path
    return posixpath.splitext(path)[1].lstrip(".").lower()


def select_thumbnail(raw: Mapping[str, Any]) -> str:
    """Prefer the explicit thumbnail, else the last (largest) listed one."""
    thumbnail = _text(raw.get("thumbnail"))
    if thumbnail:
        return thumbnail

    thumbnails = raw.get("thumbnails") or []
    if thumbnails:
        last = thumbnails[-1]
        if isinstance(last, Mapping):
            return _text(last.get("url")) or ""
        return _text(last) or ""
    return ""


def derive_media_kind(duration: float, formats, canonical_url: str) -> MediaKind:
    """Decide between photo and video.

    Missing duration alone is not enough: a photo needs an image extension on
    one of the formats or on the canonical URL.
    """
    if duration:
        return MediaKind.VIDEO

    if any(f.extension in IMAGE_EXTENSIONS for f in formats):
        return MediaKind.PHOTO
    if extension_from_url(canonical_url) in IMAGE_EXTENSIONS:
        return MediaKind.PHOTO
    return MediaKind.VIDEO


def fallback_id(canonical_url: str) -> str:
    """Short stable id for payloads that carry no native identifier."""
    return hashlib.sha1(canonical_url.encode("utf-8")).hexdigest()[:11]


def normalize_format(raw: Mapping[str, Any], index: int = 0) -> Format:
    """Map one upstream format dict onto Format.

    Args:
        raw: yt-dlp-shaped format dict
        index: Position in the source list, used when format_id is missing

    Returns:
        Normalized Format
    """
    direct_url = _text(raw.get("url"))
    extension = (_text(raw.get("ext")) or extension_from_url(direct_url)).lower()

    file_size = raw.get("filesize") or raw.get("filesize_approx")
    try:
        file_size = int(file_size) if file_size else None
    except (TypeError, ValueError):
        file_size = None

    return Format(
        format_id=_text(raw.get("format_id")) or str(index),
        extension=extension,
        width=_int_or_zero(raw.get("width")),
        height=_int_or_zero(raw.get("height")),
        file_size_bytes=file_size,
        video_codec=_text(raw.get("vcodec")),
        audio_codec=_text(raw.get("acodec")),
        direct_url=direct_url,
        note=_text(raw.get("format_note")),
    )


def _resolve_platform(raw: Mapping[str, Any], source_hint: Platform, url: str) -> Platform:
    if source_hint not in (Platform.OTHER, Platform.UNKNOWN):
        return source_hint

    extractor_key = (raw.get("extractor_key") or raw.get("extractor") or "").lower()
    for prefix, platform in _EXTRACTOR_PLATFORMS.items():
        if extractor_key.startswith(prefix):
            return platform

    classified = classify(url)
    return classified if classified != Platform.UNKNOWN else source_hint


def normalize(
    raw: Mapping[str, Any],
    source_hint: Platform,
    source_url: Optional[str] = None,
) -> MediaDescriptor:
    """Build a MediaDescriptor from a yt-dlp-shaped payload.

    Args:
        raw: Upstream payload
        source_hint: Platform from the classifier
        source_url: The URL the caller asked for, used when the payload
            carries no ``webpage_url``

    Returns:
        Immutable MediaDescriptor with at least one format

    Raises:
        MalformedPayloadError: If the payload is empty or has no formats
    """
    if not raw or not isinstance(raw, Mapping):
        raise MalformedPayloadError("Empty upstream payload", url=source_url)

    canonical_url = _text(raw.get("webpage_url")) or _text(source_url) or ""

    formats = [
        normalize_format(f, i)
        for i, f in enumerate(raw.get("formats") or [])
        if isinstance(f, Mapping)
    ]

    # Image posts often come back with a top-level url and no format list
    if not formats and _text(raw.get("url")):
        synthetic = {**raw, "format_id": raw.get("format_id") or "direct"}
        formats = [normalize_format(synthetic)]

    if not formats:
        raise MalformedPayloadError("Upstream payload has no formats", url=canonical_url)

    try:
        duration = max(float(raw.get("duration") or 0), 0.0)
    except (TypeError, ValueError):
        duration = 0.0

    platform = _resolve_platform(raw, source_hint, canonical_url)
    if platform in (Platform.OTHER, Platform.UNKNOWN):
        label = _text(raw.get("extractor_key")) or platform_label(canonical_url, platform)
    else:
        label = PLATFORM_LABELS[platform]

    uploader = (
        _text(raw.get("uploader"))
        or _text(raw.get("channel"))
        or _text(raw.get("creator"))
        or UNKNOWN_UPLOADER
    )
    uploader_id = (
        _text(raw.get("uploader_id"))
        or _text(raw.get("channel_id"))
        or UNKNOWN_UPLOADER
    )

    descriptor = MediaDescriptor(
        id=_text(raw.get("id")) or fallback_id(canonical_url),
        canonical_url=canonical_url,
        source_platform=platform,
        media_kind=derive_media_kind(duration, formats, canonical_url),
        formats=tuple(formats),
        title=_text(raw.get("title")) or UNKNOWN_TITLE,
        description=_text(raw.get("description")) or "",
        thumbnail_url=select_thumbnail(raw),
        duration_seconds=duration,
        uploader=uploader,
        uploader_id=uploader_id,
        platform_label=label,
    )

    logger.debug(
        f"Normalized {descriptor.id}: {len(descriptor.formats)} formats, "
        f"kind={descriptor.media_kind.value}, platform={descriptor.source_platform.value}"
    )
    return descriptor


__all__ = [
    "UNKNOWN_TITLE",
    "UNKNOWN_UPLOADER",
    "derive_media_kind",
    "extension_from_url",
    "fallback_id",
    "normalize",
    "normalize_format",
    "select_thumbnail",
]
