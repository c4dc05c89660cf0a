"""Extraction orchestrator with sequential fallback.

Routes a URL through an ordered list of extractors:

1. Platform-specific extractors for the classified platform
2. Generic extractors in fixed order (yt-dlp, Cobalt API, HTML page)

The first extractor that returns a well-formed descriptor wins; results are
never merged. Each call is bounded by the extractor's timeout. When every
candidate fails, a ResolutionFailed carrying one AttemptFailure per candidate
is raised.

Example:
    orchestrator = ExtractionOrchestrator()
    resolution = await orchestrator.resolve("https://youtu.be/dQw4w9WgXcQ")
    print(resolution.extractor.name, resolution.descriptor.title)
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .base import BaseExtractor, ResolveOptions
from .credentials import CredentialProvider, NoCredentials
from .exceptions import (
    AttemptFailure,
    FailureKind,
    InvalidInputError,
    ResolutionError,
    ResolutionFailed,
    UnsupportedSourceError,
)
from .models import AuthMaterial, MediaDescriptor, Platform
from .url_detector import classify, requires_authentication

logger = logging.getLogger(__name__)


@dataclass
class Resolution:
    """Outcome of a successful orchestrator run.

    Attributes:
        descriptor: The winning extractor's normalized result
        extractor: The extractor that produced it (used for follow-ups)
        auth: Credential material that was passed to it, if any
        platform: Classification result for the URL
        failures: Attempts that failed before the winner
    """

    descriptor: MediaDescriptor
    extractor: BaseExtractor
    auth: Optional[AuthMaterial]
    platform: Platform
    failures: List[AttemptFailure] = field(default_factory=list)


class ExtractionOrchestrator:
    """Tries extractors in priority order until one succeeds."""

    def __init__(
        self,
        extractors: Optional[Sequence[BaseExtractor]] = None,
        credential_provider: Optional[CredentialProvider] = None,
        options: Optional[ResolveOptions] = None,
    ):
        """Initialize the orchestrator.

        Args:
            extractors: Extractors in priority order (default chain if None)
            credential_provider: Source of cookie material (none if None)
            options: Default resolution options (ResolveOptions() if None)
        """
        if extractors is None:
            from .capabilities import discover_capabilities
            from .extractors import build_default_extractors

            extractors = build_default_extractors(discover_capabilities())

        self.extractors = list(extractors)
        self.credential_provider = credential_provider or NoCredentials()
        self.options = options or ResolveOptions()

    def candidates_for(self, url: str, platform: Platform) -> List[BaseExtractor]:
        """Ordered candidate list: platform-specific first, then generic.

        Relative order within each group follows the registration order.
        """
        applicable = [e for e in self.extractors if e.can_handle(url, platform)]
        specific = [e for e in applicable if not e.is_generic]
        generic = [e for e in applicable if e.is_generic]
        return specific + generic

    async def resolve(
        self,
        url: str,
        options: Optional[ResolveOptions] = None,
        correlation_id: Optional[str] = None,
    ) -> Resolution:
        """Resolve a URL into a descriptor using the first working extractor.

        Args:
            url: The media URL
            options: Per-request options (orchestrator defaults if None)
            correlation_id: Request tracing ID (generated if None)

        Returns:
            Resolution with the descriptor and the extractor that produced it

        Raises:
            InvalidInputError: If the URL is not well-formed
            UnsupportedSourceError: If no extractor applies
            ResolutionFailed: If every candidate failed
        """
        options = options or self.options
        correlation_id = correlation_id or str(uuid.uuid4())[:8]

        platform = classify(url)
        if platform == Platform.UNKNOWN:
            raise InvalidInputError(
                f"Not a well-formed http(s) URL: {url!r}",
                url=url,
                correlation_id=correlation_id,
            )

        candidates = self.candidates_for(url, platform)
        if not candidates:
            raise UnsupportedSourceError(
                f"No extractor can handle platform {platform.value}",
                url=url,
                correlation_id=correlation_id,
            )

        logger.info(
            f"[{correlation_id}] Resolving {url} ({platform.value}) with "
            f"{', '.join(e.name for e in candidates)}"
        )

        needs_auth = requires_authentication(url, platform, options.auth_required_platforms)
        failures: List[AttemptFailure] = []

        for extractor in candidates:
            auth = None
            if extractor.uses_credentials:
                auth = self.credential_provider.get_auth(url, platform)
                if auth is None and needs_auth:
                    logger.info(
                        f"[{correlation_id}] Skipping {extractor.name}: "
                        f"login required and no credentials configured"
                    )
                    failures.append(AttemptFailure(
                        extractor=extractor.name,
                        kind=FailureKind.AUTH_REQUIRED,
                        message="Login required and no credentials configured",
                    ))
                    continue

            failure = None
            timeout = extractor.timeout(options)
            try:
                descriptor = await asyncio.wait_for(
                    extractor.extract(url, platform, auth, options),
                    timeout=timeout,
                )
            except ResolutionError as e:
                failure = AttemptFailure(extractor.name, e.kind, e.message)
            except asyncio.TimeoutError:
                failure = AttemptFailure(
                    extractor.name,
                    FailureKind.TIMEOUT,
                    f"Extraction timed out after {timeout}s",
                )
            except Exception as e:
                logger.exception(f"[{correlation_id}] Unexpected error in {extractor.name}")
                failure = AttemptFailure(
                    extractor.name,
                    FailureKind.INTERNAL,
                    f"{type(e).__name__}: {e}",
                )
            else:
                if not isinstance(descriptor, MediaDescriptor) or not descriptor.formats:
                    failure = AttemptFailure(
                        extractor.name,
                        FailureKind.INTERNAL,
                        "Extractor returned an empty result",
                    )

            if failure is not None:
                logger.warning(
                    f"[{correlation_id}] {extractor.name} failed "
                    f"({failure.kind.value}): {failure.message}"
                )
                failures.append(failure)
                continue

            logger.info(
                f"[{correlation_id}] Resolved {url} via {extractor.name}: "
                f"{descriptor.media_kind.value}, {len(descriptor.formats)} formats"
            )
            return Resolution(
                descriptor=descriptor,
                extractor=extractor,
                auth=auth,
                platform=platform,
                failures=failures,
            )

        error = ResolutionFailed(failures, url=url, correlation_id=correlation_id)
        logger.warning(f"[{correlation_id}] {error}")
        raise error


__all__ = [
    "ExtractionOrchestrator",
    "Resolution",
]
