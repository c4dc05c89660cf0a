"""Resolver package: media URL to direct download URL.

This package provides platform classification, multi-source extraction with
fallback, descriptor normalization and quality-tier format selection for the
Telegram bot. Nothing here downloads media bytes; the result is a URL.
"""
import logging

# Set up package logger
logger = logging.getLogger(__name__)

# Import data model
from .models import (
    AuthMaterial,
    Format,
    MediaDescriptor,
    MediaKind,
    MediaKindHint,
    Platform,
    QualityTier,
    ToolCapabilities,
)

# Import exception hierarchy
from .exceptions import (
    AttemptFailure,
    ErrorCode,
    FailureKind,
    InvalidInputError,
    NoSuitableFormatError,
    ResolutionError,
    ResolutionFailed,
    UnsupportedSourceError,
)

# Import URL detector components
from .url_detector import (
    URLDetector,
    classify,
    detect_urls,
    platform_label,
)

# Import pipeline stages
from .base import BaseExtractor, ResolveOptions
from .capabilities import discover_capabilities
from .credentials import CookieFileProvider, CredentialProvider
from .format_selector import select_format, select_photo_format
from .normalizer import normalize
from .orchestrator import ExtractionOrchestrator, Resolution
from .service import MediaResolverService, ResolvedMedia, ResolveRequest


def build_service(config=None) -> MediaResolverService:
    """Wire a MediaResolverService from bot configuration.

    Args:
        config: BotConfig instance (uses global config if None)

    Returns:
        Service with the default extractor chain and cookie provider
    """
    from .extractors import build_default_extractors

    if config is None:
        from mediagrab.config import config

    options = ResolveOptions.from_config(config)
    capabilities = discover_capabilities(config.FFMPEG_LOCATION)
    orchestrator = ExtractionOrchestrator(
        extractors=build_default_extractors(capabilities),
        credential_provider=CookieFileProvider.from_config(config),
        options=options,
    )
    return MediaResolverService(orchestrator=orchestrator, options=options)


__all__ = [
    # Models
    "AuthMaterial",
    "Format",
    "MediaDescriptor",
    "MediaKind",
    "MediaKindHint",
    "Platform",
    "QualityTier",
    "ToolCapabilities",
    # Exceptions
    "AttemptFailure",
    "ErrorCode",
    "FailureKind",
    "InvalidInputError",
    "NoSuitableFormatError",
    "ResolutionError",
    "ResolutionFailed",
    "UnsupportedSourceError",
    # URL detection
    "URLDetector",
    "classify",
    "detect_urls",
    "platform_label",
    # Pipeline
    "BaseExtractor",
    "CookieFileProvider",
    "CredentialProvider",
    "ExtractionOrchestrator",
    "MediaResolverService",
    "Resolution",
    "ResolveOptions",
    "ResolveRequest",
    "ResolvedMedia",
    "build_service",
    "discover_capabilities",
    "normalize",
    "select_format",
    "select_photo_format",
]
