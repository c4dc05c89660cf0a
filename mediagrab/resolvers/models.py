"""Canonical data model shared across the resolvers package.

This module contains the source-agnostic types every extractor produces and
every selector consumes. It has no imports from sibling modules to avoid
circular import issues.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

# Codec sentinel meaning "this track is absent"
NO_CODEC = "none"

IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "webp", "gif", "bmp"})


class Platform(str, Enum):
    """Platform tag produced by the classifier."""

    YOUTUBE = "youtube"
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"
    TWITTER = "twitter"
    TIKTOK = "tiktok"
    VIMEO = "vimeo"
    OTHER = "other"
    UNKNOWN = "unknown"


class MediaKind(str, Enum):
    """Whether a descriptor is a video or a still photo."""

    VIDEO = "video"
    PHOTO = "photo"


class QualityTier(str, Enum):
    """Caller-selected target resolution class."""

    SD = "sd"
    HD = "hd"


class MediaKindHint(str, Enum):
    """Caller hint on which selector to apply."""

    VIDEO = "video"
    PHOTO = "photo"
    AUTO = "auto"


@dataclass(frozen=True)
class Format:
    """One concrete rendition of a media item.

    Attributes:
        format_id: Upstream-scoped identifier, used for follow-up fetches
        extension: Lower-case file extension (mp4, webm, jpg...)
        width: Pixels, 0 when unknown
        height: Pixels, 0 when unknown
        file_size_bytes: Exact or approximate size, None when unknown
        video_codec: Codec name, "none" when absent, None when not reported
        audio_codec: Codec name, "none" when absent, None when not reported
        direct_url: Immediately retrievable URL, None when a follow-up is needed
        note: Upstream quality note ("HD", "720p60"...)
    """

    format_id: str
    extension: str
    width: int = 0
    height: int = 0
    file_size_bytes: Optional[int] = None
    video_codec: Optional[str] = None
    audio_codec: Optional[str] = None
    direct_url: Optional[str] = None
    note: Optional[str] = None

    @property
    def has_video(self) -> bool:
        return self.video_codec != NO_CODEC

    @property
    def has_audio(self) -> bool:
        return self.audio_codec != NO_CODEC

    @property
    def is_image(self) -> bool:
        """Both tracks absent means a still image."""
        return self.video_codec == NO_CODEC and self.audio_codec == NO_CODEC

    @property
    def area(self) -> int:
        return self.width * self.height


@dataclass(frozen=True)
class MediaDescriptor:
    """One resolved media item: display metadata plus candidate formats.

    Built once per request by the normalizer and never mutated afterwards.
    """

    id: str
    canonical_url: str
    source_platform: Platform
    media_kind: MediaKind
    formats: Tuple[Format, ...]
    title: str = "Unknown Title"
    description: str = ""
    thumbnail_url: str = ""
    duration_seconds: float = 0
    uploader: str = "Unknown"
    uploader_id: str = "Unknown"
    platform_label: str = ""

    def __post_init__(self) -> None:
        if not self.formats:
            raise ValueError("MediaDescriptor requires at least one format")
        if self.duration_seconds < 0:
            raise ValueError(
                f"duration_seconds must be non-negative (got: {self.duration_seconds})"
            )

    @property
    def is_photo(self) -> bool:
        return self.media_kind == MediaKind.PHOTO


@dataclass(frozen=True)
class AuthMaterial:
    """Opaque credential material handed to extractors that need login.

    Attributes:
        cookie_file: Path to a Netscape-format cookie jar
    """

    cookie_file: str


@dataclass(frozen=True)
class ToolCapabilities:
    """What the local extraction tooling can do, discovered once per process."""

    ytdlp_version: str
    ffmpeg_location: Optional[str] = None

    @property
    def can_merge(self) -> bool:
        """yt-dlp needs ffmpeg to merge separate video and audio streams."""
        return self.ffmpeg_location is not None


__all__ = [
    "NO_CODEC",
    "IMAGE_EXTENSIONS",
    "Platform",
    "MediaKind",
    "QualityTier",
    "MediaKindHint",
    "Format",
    "MediaDescriptor",
    "AuthMaterial",
    "ToolCapabilities",
]
