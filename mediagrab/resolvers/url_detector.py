"""URL detection, extraction, and platform classification module.

This module provides functionality to extract URLs from Telegram messages
and to classify URLs by platform. Classification is a pure function: it never
fails and never touches the network. Its result is advisory, used for display
and extractor ordering only.
"""
import logging
import re
from typing import Iterable, List, Optional, Tuple
from urllib.parse import urlparse

from .models import Platform

logger = logging.getLogger(__name__)


# Host signatures per platform, evaluated in this order. A host matches when
# it equals a domain or is a subdomain of it, so the sets are disjoint.
PLATFORM_DOMAINS: Tuple[Tuple[Platform, Tuple[str, ...]], ...] = (
    (Platform.YOUTUBE, ("youtube.com", "youtu.be", "youtube-nocookie.com")),
    (Platform.INSTAGRAM, ("instagram.com", "instagr.am")),
    (Platform.FACEBOOK, ("facebook.com", "fb.watch", "fb.com")),
    (Platform.TWITTER, ("twitter.com", "x.com")),
    (Platform.TIKTOK, ("tiktok.com",)),
    (Platform.VIMEO, ("vimeo.com",)),
)

PLATFORM_LABELS = {
    Platform.YOUTUBE: "YouTube",
    Platform.INSTAGRAM: "Instagram",
    Platform.FACEBOOK: "Facebook",
    Platform.TWITTER: "Twitter/X",
    Platform.TIKTOK: "TikTok",
    Platform.VIMEO: "Vimeo",
    Platform.OTHER: "Other",
    Platform.UNKNOWN: "Unknown",
}

# Broader labels for hosts the enumeration files under OTHER
OTHER_PLATFORM_DOMAINS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("Reddit", ("reddit.com", "redd.it")),
    ("Pinterest", ("pinterest.com", "pin.it")),
    ("Dailymotion", ("dailymotion.com", "dai.ly")),
)

# URL path patterns that always sit behind a login wall
AUTH_REQUIRED_PATTERNS = {
    Platform.INSTAGRAM: [
        r"/stories/",
    ],
    Platform.FACEBOOK: [
        r"/stories/",
    ],
}

_SCHEME_REGEX = re.compile(r"^https?://", re.IGNORECASE)

# Regex pattern for URL extraction from plain text
URL_REGEX = re.compile(r"https?://\S+", re.IGNORECASE)

_YOUTUBE_ID_REGEX = re.compile(
    r"(?:v=|/shorts/|youtu\.be/|/embed/|/live/)([\w-]{11})"
)
_TIKTOK_ID_REGEX = re.compile(r"/(?:video|photo)/(\d+)")


def _host_of(url: str) -> Optional[str]:
    """Return the lower-cased host of a well-formed http(s) URL, else None."""
    if not url or not isinstance(url, str):
        return None

    url = url.strip()
    if not _SCHEME_REGEX.match(url):
        return None

    try:
        host = urlparse(url).hostname
    except ValueError:
        return None

    return host.lower() if host else None


def _host_matches(host: str, domains: Iterable[str]) -> bool:
    return any(host == d or host.endswith("." + d) for d in domains)


def is_well_formed(url: str) -> bool:
    """Check that a URL is a string with an http(s) scheme and a host."""
    return _host_of(url) is not None


def classify(url: str) -> Platform:
    """Classify a URL by platform.

    Args:
        url: Any value supplied by a caller

    Returns:
        Platform.UNKNOWN for malformed input, Platform.OTHER for well-formed
        URLs matching no signature, otherwise the matching platform.
    """
    host = _host_of(url)
    if host is None:
        logger.debug(f"Classified URL as UNKNOWN: {url!r}")
        return Platform.UNKNOWN

    for platform, domains in PLATFORM_DOMAINS:
        if _host_matches(host, domains):
            logger.debug(f"Classified URL as {platform.name}: {url}")
            return platform

    logger.debug(f"Classified URL as OTHER: {url}")
    return Platform.OTHER


def platform_label(url: str, platform: Optional[Platform] = None) -> str:
    """Human-readable platform label, broader than the Platform enumeration.

    Args:
        url: The URL being resolved
        platform: Classification result, computed when omitted

    Returns:
        Label such as "YouTube", "Reddit", or the bare host for other sites
    """
    if platform is None:
        platform = classify(url)

    if platform != Platform.OTHER:
        return PLATFORM_LABELS[platform]

    host = _host_of(url) or ""
    for label, domains in OTHER_PLATFORM_DOMAINS:
        if _host_matches(host, domains):
            return label

    if host.startswith("www."):
        host = host[4:]
    return host or PLATFORM_LABELS[Platform.OTHER]


def requires_authentication(
    url: str,
    platform: Platform,
    auth_platforms: Iterable[str] = ()
) -> bool:
    """Local pre-check: is this target known to gate content behind login?

    Args:
        url: The URL being resolved
        platform: Classification result
        auth_platforms: Platform values configured as always needing login

    Returns:
        True if unauthenticated extraction is known to fail
    """
    if platform.value in set(auth_platforms):
        return True

    path = urlparse(url).path.lower() if is_well_formed(url) else ""
    for pattern in AUTH_REQUIRED_PATTERNS.get(platform, []):
        if re.search(pattern, path):
            return True
    return False


def extract_youtube_id(url: str) -> Optional[str]:
    """Extract the 11-character YouTube video ID from a URL."""
    if not url:
        return None
    match = _YOUTUBE_ID_REGEX.search(url)
    return match.group(1) if match else None


def extract_tiktok_id(url: str) -> Optional[str]:
    """Extract the numeric TikTok item ID from a full (non-short) URL."""
    if not url:
        return None
    match = _TIKTOK_ID_REGEX.search(url)
    return match.group(1) if match else None


class URLDetector:
    """Extracts URLs from Telegram messages.

    Handles URL extraction from both message entities (url, text_link)
    and a plain text regex fallback.
    """

    @staticmethod
    def extract_urls(message_text: Optional[str], entities: Optional[List] = None) -> List[str]:
        """Extract URLs from message text and entities.

        Args:
            message_text: The text content of the message
            entities: List of MessageEntity objects from Telegram

        Returns:
            List of extracted URL strings (deduplicated, in order of appearance)
        """
        if not message_text:
            return []

        urls = []
        seen_urls = set()

        # Extract from entities first (handles text_link properly)
        if entities:
            for entity in entities:
                try:
                    if entity.type == "url":
                        url = message_text[entity.offset:entity.offset + entity.length]
                    elif entity.type == "text_link":
                        # Hidden URL behind clickable text
                        url = entity.url
                    else:
                        continue
                except (AttributeError, IndexError) as e:
                    logger.warning(f"Failed to extract URL from entity: {e}")
                    continue
                if url and url not in seen_urls:
                    urls.append(url)
                    seen_urls.add(url)

        # Fallback to regex for any URLs not caught by entities
        for url in URL_REGEX.findall(message_text):
            # Clean up trailing punctuation that might be captured
            url = url.rstrip(".,;:!?)]}")
            if url and url not in seen_urls:
                urls.append(url)
                seen_urls.add(url)

        logger.debug(f"Extracted {len(urls)} URLs from message: {urls}")
        return urls


def detect_urls(message_text: Optional[str], entities: Optional[List] = None) -> List[str]:
    """Extract URLs from a message.

    Convenience function that wraps URLDetector.extract_urls().
    """
    return URLDetector.extract_urls(message_text, entities)


__all__ = [
    "PLATFORM_DOMAINS",
    "PLATFORM_LABELS",
    "AUTH_REQUIRED_PATTERNS",
    "URLDetector",
    "classify",
    "detect_urls",
    "extract_tiktok_id",
    "extract_youtube_id",
    "is_well_formed",
    "platform_label",
    "requires_authentication",
]
