"""Format selection by quality tier.

SD: best rendition at or below 480p, degrading to the smallest available.
HD: exactly 1080p when present, otherwise the closest height, preferring the
larger one when two candidates are equally close.

Both selectors are pure functions of their inputs.
"""
import logging
from typing import List, Sequence

from .exceptions import NoSuitableFormatError
from .models import IMAGE_EXTENSIONS, Format, QualityTier

logger = logging.getLogger(__name__)

# Videos at or below this height qualify as SD
SD_MAX_HEIGHT = 480

# Prioritize 1080p, fallback to closest available
HD_TARGET_HEIGHT = 1080

COMPATIBLE_VIDEO_EXTENSIONS = frozenset({"mp4", "webm"})

# Lower index wins ties between equally large photos
PHOTO_PRIORITY_RANK = {"jpg": 0, "jpeg": 0, "png": 1, "webp": 2, "gif": 3, "bmp": 4}
_UNKNOWN_PHOTO_RANK = 5


def quality_label(height: int) -> str:
    """Display label for a video height ("4K", "1080p"...)."""
    if height >= 2160:
        return "4K"
    for threshold in (1440, 1080, 720, 480, 360, 240):
        if height >= threshold:
            return f"{threshold}p"
    return f"{height}p"


def tier_max_height(tier: QualityTier) -> int:
    """Height ceiling used when asking an extractor for a merged stream."""
    return SD_MAX_HEIGHT if QualityTier(tier) == QualityTier.SD else HD_TARGET_HEIGHT


def filter_video_candidates(formats: Sequence[Format]) -> List[Format]:
    """Pre-filter formats for the video tiers.

    Prefers real video tracks with a known height in a browser-compatible
    container; falls back to anything with a known height.
    """
    preferred = [
        f for f in formats
        if f.has_video and f.height > 0 and f.extension in COMPATIBLE_VIDEO_EXTENSIONS
    ]
    if preferred:
        return preferred
    return [f for f in formats if f.height > 0]


def _select_sd(ordered: List[Format]) -> Format:
    sd_formats = [f for f in ordered if f.height <= SD_MAX_HEIGHT]
    if sd_formats:
        return sd_formats[0]
    # No true SD rendition, degrade to the smallest available
    return ordered[-1]


def _select_hd(ordered: List[Format]) -> Format:
    for f in ordered:
        if f.height == HD_TARGET_HEIGHT:
            return f
    return min(
        ordered,
        key=lambda f: (abs(f.height - HD_TARGET_HEIGHT), -f.height),
    )


def select_format(formats: Sequence[Format], tier: QualityTier) -> Format:
    """Pick exactly one video format for the requested tier.

    Args:
        formats: Candidate formats of one descriptor, in source order
        tier: QualityTier.SD or QualityTier.HD

    Returns:
        The selected Format (its direct_url may be None)

    Raises:
        NoSuitableFormatError: If no candidate survives filtering
    """
    tier = QualityTier(tier)
    candidates = filter_video_candidates(formats)
    if not candidates:
        raise NoSuitableFormatError(
            f"No video format with a known height among {len(formats)} formats"
        )

    # Stable sort keeps source order among equal heights
    ordered = sorted(candidates, key=lambda f: f.height, reverse=True)

    if tier == QualityTier.SD:
        selected = _select_sd(ordered)
    else:
        selected = _select_hd(ordered)

    logger.debug(
        f"Selected format {selected.format_id} ({selected.height}p) for tier {tier.value} "
        f"from {len(candidates)} candidates"
    )
    return selected


def select_photo_format(formats: Sequence[Format]) -> Format:
    """Pick the largest image rendition.

    Args:
        formats: Candidate formats of one descriptor, in source order

    Returns:
        The image format with the greatest pixel area, ties broken by
        extension priority; the first format when none looks like an image

    Raises:
        NoSuitableFormatError: If formats is empty
    """
    if not formats:
        raise NoSuitableFormatError("No formats available for this photo")

    images = [f for f in formats if f.extension in IMAGE_EXTENSIONS]
    if not images:
        # Extension metadata missing, best effort
        return formats[0]

    return min(
        images,
        key=lambda f: (-f.area, PHOTO_PRIORITY_RANK.get(f.extension, _UNKNOWN_PHOTO_RANK)),
    )


__all__ = [
    "SD_MAX_HEIGHT",
    "HD_TARGET_HEIGHT",
    "COMPATIBLE_VIDEO_EXTENSIONS",
    "filter_video_candidates",
    "quality_label",
    "select_format",
    "select_photo_format",
    "tier_max_height",
]
