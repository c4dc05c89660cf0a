"""Base extractor interface and common types.

This module provides the abstract base class every extractor implements,
along with the ResolveOptions dataclass for configuration.

The architecture ensures:
- One interface for every upstream source (yt-dlp, remote APIs, HTML scraping)
- Type-safe configuration with validation
- Async operations so the orchestrator can bound and cancel each call
"""
import abc
import logging
from dataclasses import dataclass
from typing import Any, FrozenSet, Optional, Tuple

from .models import AuthMaterial, Format, MediaDescriptor, Platform, QualityTier

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


@dataclass(frozen=True)
class ResolveOptions:
    """Configuration options for resolution operations.

    Frozen so one instance can be shared by every extractor of a request.

    Attributes:
        # Timeout settings (seconds)
        ytdlp_timeout: Bound for a yt-dlp metadata extraction
        api_timeout: Bound for remote JSON API calls
        html_timeout: Bound for fetching and parsing an HTML page
        follow_up_timeout: Bound for merge-aware follow-up queries

        # Upstream endpoints
        cobalt_api_url: Cobalt instance endpoint
        cobalt_api_key: Optional Cobalt API key
        tikwm_api_url: TikWM API endpoint

        # Request shaping
        user_agent: User-Agent header sent to upstream sources
        auth_required_platforms: Platform values that always need login
    """

    # Timeout settings
    ytdlp_timeout: float = 90
    api_timeout: float = 30
    html_timeout: float = 30
    follow_up_timeout: float = 60

    # Upstream endpoints
    cobalt_api_url: str = "https://api.cobalt.tools/"
    cobalt_api_key: Optional[str] = None
    tikwm_api_url: str = "https://www.tikwm.com/api/"

    # Request shaping
    user_agent: str = DEFAULT_USER_AGENT
    auth_required_platforms: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Validate configuration values after initialization.

        Raises:
            ValueError: If any configuration value is invalid.
        """
        errors = []

        timeout_fields = [
            ("ytdlp_timeout", self.ytdlp_timeout),
            ("api_timeout", self.api_timeout),
            ("html_timeout", self.html_timeout),
            ("follow_up_timeout", self.follow_up_timeout),
        ]
        for name, value in timeout_fields:
            if not isinstance(value, (int, float)) or value <= 0:
                errors.append(f"{name} must be positive (got: {value})")

        for name, value in (
            ("cobalt_api_url", self.cobalt_api_url),
            ("tikwm_api_url", self.tikwm_api_url),
        ):
            if not value or not value.startswith(("http://", "https://")):
                errors.append(f"{name} must be an http(s) URL (got: {value!r})")

        valid_platforms = {p.value for p in Platform}
        for value in self.auth_required_platforms:
            if value not in valid_platforms:
                errors.append(f"auth_required_platforms has unknown platform: {value!r}")

        if errors:
            raise ValueError(
                "ResolveOptions validation failed:\n" +
                "\n".join(f"  - {e}" for e in errors)
            )

    @classmethod
    def from_config(cls, config: Optional[Any] = None) -> "ResolveOptions":
        """Create ResolveOptions from bot configuration.

        Args:
            config: BotConfig instance (uses global config if None)

        Returns:
            ResolveOptions instance with values from config.
        """
        # Import here to avoid circular imports at module level
        if config is None:
            from mediagrab.config import config

        return cls(
            ytdlp_timeout=config.YTDLP_TIMEOUT,
            api_timeout=config.API_TIMEOUT,
            html_timeout=config.HTML_TIMEOUT,
            follow_up_timeout=config.FOLLOW_UP_TIMEOUT,
            cobalt_api_url=config.COBALT_API_URL,
            cobalt_api_key=config.COBALT_API_KEY,
            tikwm_api_url=config.TIKWM_API_URL,
            user_agent=config.USER_AGENT,
            auth_required_platforms=tuple(config.AUTH_REQUIRED_PLATFORMS),
        )

    def with_overrides(self, **kwargs) -> "ResolveOptions":
        """Create a new ResolveOptions with overridden values.

        Args:
            **kwargs: Field names and new values to override

        Returns:
            New ResolveOptions instance with overrides applied.
        """
        current = {
            field.name: getattr(self, field.name)
            for field in self.__dataclass_fields__.values()
        }
        current.update(kwargs)
        return self.__class__(**current)


class BaseExtractor(abc.ABC):
    """Abstract base class for all extractor implementations.

    An extractor turns a media URL into a MediaDescriptor using one upstream
    source. Extractors do not inherit from each other; each one implements
    this interface directly.

    Implementations must provide:
    - name: Human-readable source name (used in failure attribution)
    - extract(): Produce a normalized MediaDescriptor or raise ResolutionError

    Implementations may override:
    - platforms: Platforms this extractor specializes in (empty = generic)
    - uses_credentials: Whether it can use cookie material
    - supports_follow_up: Whether fetch_merged_format/fetch_direct_url work
    - timeout(): Per-call bound in seconds

    Example:
        class MyExtractor(BaseExtractor):
            name = "My Source"
            platforms = frozenset({Platform.VIMEO})

            async def extract(self, url, platform, auth, options):
                payload = await self._fetch(url)
                return parse_my_payload(payload, url, platform)
    """

    platforms: FrozenSet[Platform] = frozenset()
    uses_credentials: bool = False
    supports_follow_up: bool = False

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Human-readable extractor name."""
        pass

    @property
    def is_generic(self) -> bool:
        """Generic extractors apply to any URL, platform-specific ones don't."""
        return not self.platforms

    def can_handle(self, url: str, platform: Platform) -> bool:
        """Local check whether this extractor applies to the URL.

        Args:
            url: The URL to check
            platform: Classification result for the URL

        Returns:
            True if the orchestrator should try this extractor.
        """
        return self.is_generic or platform in self.platforms

    def timeout(self, options: ResolveOptions) -> float:
        """Seconds the orchestrator waits for extract() before giving up."""
        return options.api_timeout

    @abc.abstractmethod
    async def extract(
        self,
        url: str,
        platform: Platform,
        auth: Optional[AuthMaterial],
        options: ResolveOptions,
    ) -> MediaDescriptor:
        """Resolve a URL into a MediaDescriptor.

        Args:
            url: The media URL
            platform: Classification result for the URL
            auth: Credential material, None when unavailable
            options: Resolution configuration

        Returns:
            MediaDescriptor with at least one format

        Raises:
            ResolutionError: Classified failure of this source
        """
        pass

    async def fetch_merged_format(
        self,
        url: str,
        tier: QualityTier,
        auth: Optional[AuthMaterial],
        options: ResolveOptions,
    ) -> Format:
        """Ask the source for a rendition with both video and audio.

        Raises:
            NotImplementedError: If the extractor has no follow-up support
        """
        raise NotImplementedError(f"{self.name} does not support follow-up queries")

    async def fetch_direct_url(
        self,
        url: str,
        format_id: str,
        auth: Optional[AuthMaterial],
        options: ResolveOptions,
    ) -> str:
        """Materialize a direct URL for a format that came without one.

        Raises:
            NotImplementedError: If the extractor has no follow-up support
        """
        raise NotImplementedError(f"{self.name} does not support follow-up queries")

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name!r}>"


__all__ = [
    "BaseExtractor",
    "DEFAULT_USER_AGENT",
    "ResolveOptions",
]
