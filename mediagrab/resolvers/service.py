"""Resolution service: request validation, selection and the response envelope.

Ties the pipeline together for one request:

    request -> orchestrator -> format selection -> follow-up fetches -> response

The service never reports partial success. Either the caller gets a direct
URL plus metadata, or a failure with one of the response codes.

Example:
    service = MediaResolverService()
    response = await service.handle({"url": url, "qualityTier": "hd"})
    if response["success"]:
        print(response["downloadUrl"])
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .base import ResolveOptions
from .exceptions import (
    DirectUrlUnavailableError,
    ErrorCode,
    InvalidInputError,
    ResolutionError,
)
from .format_selector import quality_label, select_format, select_photo_format
from .models import Format, MediaDescriptor, MediaKindHint, QualityTier
from .orchestrator import ExtractionOrchestrator, Resolution
from .url_detector import is_well_formed

logger = logging.getLogger(__name__)

UNKNOWN_ERROR_MESSAGE = "Ocurrió un error inesperado. Intenta de nuevo más tarde."

# Accepted as a tier value; selects the photo path at HD
PHOTO_TIER = "photo"


@dataclass(frozen=True)
class ResolveRequest:
    """Validated resolution request.

    Attributes:
        url: Media URL supplied by the caller
        quality_tier: Target tier for video selection
        media_kind_hint: Which selector to apply (auto follows the descriptor)
    """

    url: str
    quality_tier: QualityTier
    media_kind_hint: MediaKindHint = MediaKindHint.AUTO

    @classmethod
    def from_dict(cls, body: Any) -> "ResolveRequest":
        """Parse a request body.

        Accepts ``qualityTier`` or its alias ``quality``, and
        ``mediaKindHint`` or ``mediaType``. A tier of ``"photo"`` is shorthand
        for a photo hint.

        Raises:
            InvalidInputError: If the URL or tier is missing or malformed
        """
        if not isinstance(body, Mapping):
            raise InvalidInputError("Request body must be an object")

        url = body.get("url")
        if not url or not isinstance(url, str):
            raise InvalidInputError("URL is required")
        url = url.strip()
        if not is_well_formed(url):
            raise InvalidInputError(f"Not a well-formed http(s) URL: {url!r}", url=url)

        tier = body.get("qualityTier", body.get("quality"))
        hint = body.get("mediaKindHint", body.get("mediaType")) or MediaKindHint.AUTO.value

        if isinstance(tier, str) and tier.lower() == PHOTO_TIER:
            tier = QualityTier.HD.value
            hint = MediaKindHint.PHOTO.value

        try:
            quality_tier = QualityTier(str(tier).lower())
        except ValueError:
            raise InvalidInputError(
                f'Quality must be either "sd" or "hd" (got: {tier!r})', url=url
            ) from None

        try:
            media_kind_hint = MediaKindHint(str(hint).lower())
        except ValueError:
            raise InvalidInputError(
                f'mediaKindHint must be "video", "photo" or "auto" (got: {hint!r})', url=url
            ) from None

        return cls(url=url, quality_tier=quality_tier, media_kind_hint=media_kind_hint)


@dataclass(frozen=True)
class ResolvedMedia:
    """Successful resolution outcome.

    Attributes:
        descriptor: Normalized metadata of the media item
        selected_format: The format chosen for the tier (possibly merged)
        download_url: Directly retrievable URL
        extractor: Name of the extractor that produced the descriptor
        degraded: True when a video-only stream was returned because no
            merged alternative could be obtained
    """

    descriptor: MediaDescriptor
    selected_format: Format
    download_url: str
    extractor: str
    degraded: bool = False

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": True,
            "info": descriptor_to_info(self.descriptor),
            "downloadUrl": self.download_url,
            "selectedFormat": format_to_dict(self.selected_format),
        }


def descriptor_to_info(descriptor: MediaDescriptor) -> Dict[str, Any]:
    """Project a descriptor onto the response ``info`` object."""
    return {
        "id": descriptor.id,
        "title": descriptor.title,
        "description": descriptor.description,
        "thumbnailUrl": descriptor.thumbnail_url,
        "durationSeconds": descriptor.duration_seconds,
        "uploader": descriptor.uploader,
        "uploaderId": descriptor.uploader_id,
        "sourcePlatform": descriptor.source_platform.value,
        "platformLabel": descriptor.platform_label,
        "mediaKind": descriptor.media_kind.value,
        "canonicalUrl": descriptor.canonical_url,
    }


def format_to_dict(fmt: Format) -> Dict[str, Any]:
    """Project a format onto the response ``selectedFormat`` object."""
    return {
        "formatId": fmt.format_id,
        "extension": fmt.extension,
        "width": fmt.width,
        "height": fmt.height,
        "resolution": f"{fmt.width}x{fmt.height}",
        "fileSizeBytes": fmt.file_size_bytes,
        "videoCodec": fmt.video_codec,
        "audioCodec": fmt.audio_codec,
        "quality": quality_label(fmt.height),
    }


def failure_response(message: str, code: ErrorCode) -> Dict[str, Any]:
    return {"success": False, "error": message, "code": code.value}


class MediaResolverService:
    """Resolves a media URL into a direct URL at the requested tier."""

    def __init__(
        self,
        orchestrator: Optional[ExtractionOrchestrator] = None,
        options: Optional[ResolveOptions] = None,
    ):
        self.options = options or (orchestrator.options if orchestrator else ResolveOptions())
        self.orchestrator = orchestrator or ExtractionOrchestrator(options=self.options)

    async def handle(self, body: Any) -> Dict[str, Any]:
        """Process a raw request body and return the response envelope.

        Never raises for pipeline failures; cancellation still propagates.

        Args:
            body: Decoded request body

        Returns:
            Success or failure response dict
        """
        correlation_id = str(uuid.uuid4())[:8]
        try:
            request = ResolveRequest.from_dict(body)
            result = await self.resolve(request, correlation_id=correlation_id)
            return result.to_response()
        except ResolutionError as e:
            logger.warning(f"[{correlation_id}] Request failed: {e}")
            return failure_response(e.to_user_message(), e.error_code)
        except Exception:
            logger.exception(f"[{correlation_id}] Unexpected error while resolving")
            return failure_response(UNKNOWN_ERROR_MESSAGE, ErrorCode.UNKNOWN_ERROR)

    async def resolve(
        self,
        request: ResolveRequest,
        correlation_id: Optional[str] = None,
    ) -> ResolvedMedia:
        """Run the full pipeline for one validated request.

        Raises:
            ResolutionError: Any classified failure
        """
        correlation_id = correlation_id or str(uuid.uuid4())[:8]
        resolution = await self.orchestrator.resolve(
            request.url, self.options, correlation_id=correlation_id
        )
        descriptor = resolution.descriptor

        if request.media_kind_hint == MediaKindHint.PHOTO:
            wants_photo = True
        elif request.media_kind_hint == MediaKindHint.VIDEO:
            wants_photo = False
        else:
            wants_photo = descriptor.is_photo

        try:
            if wants_photo:
                selected = select_photo_format(descriptor.formats)
            else:
                selected = select_format(descriptor.formats, request.quality_tier)
        except ResolutionError as e:
            e.url = request.url
            e.correlation_id = correlation_id
            raise

        degraded = False
        if not wants_photo and selected.has_video and not selected.has_audio:
            merged = await self._fetch_merged(resolution, request, correlation_id)
            if merged is not None:
                selected = merged
            else:
                degraded = True

        download_url = selected.direct_url
        if not download_url:
            download_url = await self._fetch_direct_url(
                resolution, selected, request.url, correlation_id
            )

        logger.info(
            f"[{correlation_id}] Selected {selected.format_id} "
            f"({selected.width}x{selected.height}, {selected.extension}) "
            f"via {resolution.extractor.name}"
            + (" [video only]" if degraded else "")
        )
        return ResolvedMedia(
            descriptor=descriptor,
            selected_format=selected,
            download_url=download_url,
            extractor=resolution.extractor.name,
            degraded=degraded,
        )

    async def _fetch_merged(
        self,
        resolution: Resolution,
        request: ResolveRequest,
        correlation_id: str,
    ) -> Optional[Format]:
        """Ask the winning extractor for a format with audio; None on failure."""
        extractor = resolution.extractor
        if not extractor.supports_follow_up:
            logger.info(
                f"[{correlation_id}] {extractor.name} has no follow-up support, "
                f"returning video-only format"
            )
            return None

        try:
            merged = await asyncio.wait_for(
                extractor.fetch_merged_format(
                    request.url, request.quality_tier, resolution.auth, self.options
                ),
                timeout=self.options.follow_up_timeout,
            )
        except (ResolutionError, asyncio.TimeoutError, NotImplementedError) as e:
            logger.warning(
                f"[{correlation_id}] Merged format lookup failed, "
                f"returning video-only format: {e}"
            )
            return None

        if not merged.direct_url:
            logger.warning(f"[{correlation_id}] Merged format has no URL, ignoring it")
            return None
        if not merged.has_audio:
            logger.warning(
                f"[{correlation_id}] Merged format {merged.format_id} has no audio track, ignoring it"
            )
            return None
        return merged

    async def _fetch_direct_url(
        self,
        resolution: Resolution,
        selected: Format,
        url: str,
        correlation_id: str,
    ) -> str:
        extractor = resolution.extractor
        if not extractor.supports_follow_up:
            raise DirectUrlUnavailableError(
                f"Format {selected.format_id} has no URL and {extractor.name} "
                f"cannot look it up",
                url=url,
                correlation_id=correlation_id,
            )

        try:
            return await asyncio.wait_for(
                extractor.fetch_direct_url(
                    url, selected.format_id, resolution.auth, self.options
                ),
                timeout=self.options.follow_up_timeout,
            )
        except (ResolutionError, asyncio.TimeoutError, NotImplementedError) as e:
            raise DirectUrlUnavailableError(
                f"Direct URL lookup for format {selected.format_id} failed: {e}",
                url=url,
                correlation_id=correlation_id,
            ) from e


__all__ = [
    "MediaResolverService",
    "ResolveRequest",
    "ResolvedMedia",
    "descriptor_to_info",
    "failure_response",
    "format_to_dict",
]
