"""Resolver-specific exceptions with user-friendly error messages.

This module provides the exception hierarchy for media resolution. Every
exception carries a FailureKind so extractor failures can be classified
locally and aggregated by the orchestrator. All exceptions support
correlation IDs for request tracing and provide both technical details
(for logs) and user-friendly messages (for display).

Exception Hierarchy:
    ResolutionError (base)
        InvalidInputError
        UnsupportedSourceError
        AuthRequiredError
        UpstreamBlockedError
        ExtractionTimeoutError
        NetworkError
        MediaNotFoundError
        NoSuitableFormatError
        MalformedPayloadError
        DirectUrlUnavailableError
        ResolutionFailed (aggregate of per-extractor failures)
"""
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


class FailureKind(Enum):
    """Classification of why a resolution attempt failed."""

    INVALID_INPUT = "invalid_input"
    UNSUPPORTED_SOURCE = "unsupported_source"
    AUTH_REQUIRED = "auth_required"
    UPSTREAM_BLOCKED = "upstream_blocked"
    TIMEOUT = "timeout"
    NETWORK = "network"
    NOT_FOUND = "not_found"
    NO_SUITABLE_FORMAT = "no_suitable_format"
    INTERNAL = "internal"


class ErrorCode(str, Enum):
    """Machine-readable codes returned in failure responses."""

    INVALID_URL = "INVALID_URL"
    UNSUPPORTED_PLATFORM = "UNSUPPORTED_PLATFORM"
    MEDIA_UNAVAILABLE = "MEDIA_UNAVAILABLE"
    QUALITY_NOT_FOUND = "QUALITY_NOT_FOUND"
    EXTRACTION_ERROR = "EXTRACTION_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


ERROR_CODES = {
    FailureKind.INVALID_INPUT: ErrorCode.INVALID_URL,
    FailureKind.UNSUPPORTED_SOURCE: ErrorCode.UNSUPPORTED_PLATFORM,
    FailureKind.AUTH_REQUIRED: ErrorCode.MEDIA_UNAVAILABLE,
    FailureKind.NOT_FOUND: ErrorCode.MEDIA_UNAVAILABLE,
    FailureKind.NO_SUITABLE_FORMAT: ErrorCode.QUALITY_NOT_FOUND,
    FailureKind.UPSTREAM_BLOCKED: ErrorCode.EXTRACTION_ERROR,
    FailureKind.TIMEOUT: ErrorCode.EXTRACTION_ERROR,
    FailureKind.NETWORK: ErrorCode.EXTRACTION_ERROR,
    FailureKind.INTERNAL: ErrorCode.EXTRACTION_ERROR,
}

# User-facing messages, one remedy per kind
USER_MESSAGES = {
    FailureKind.INVALID_INPUT: (
        "La URL parece ser inválida. Debe empezar con http:// o https://."
    ),
    FailureKind.UNSUPPORTED_SOURCE: (
        "No sé cómo obtener contenido de este sitio. Prueba con un enlace de "
        "YouTube, Instagram, TikTok, Twitter/X, Facebook o Vimeo."
    ),
    FailureKind.AUTH_REQUIRED: (
        "Esta plataforma requiere iniciar sesión para ver el contenido. "
        "Actualiza el archivo de cookies e intenta de nuevo."
    ),
    FailureKind.UPSTREAM_BLOCKED: (
        "La plataforma está bloqueando las solicitudes en este momento. "
        "Intenta de nuevo más tarde."
    ),
    FailureKind.TIMEOUT: (
        "La plataforma tardó demasiado en responder. Intenta de nuevo en unos minutos."
    ),
    FailureKind.NETWORK: (
        "Error de conexión con la plataforma. Intenta de nuevo en unos minutos."
    ),
    FailureKind.NOT_FOUND: (
        "El contenido no está disponible. Puede ser privado, haber sido eliminado "
        "o tener restricciones de edad o región. Prueba con otro enlace."
    ),
    FailureKind.NO_SUITABLE_FORMAT: (
        "No encontré un formato con la calidad solicitada. Prueba con otra calidad."
    ),
    FailureKind.INTERNAL: (
        "No pude interpretar la respuesta de la plataforma. Intenta de nuevo más tarde."
    ),
}


class ResolutionError(Exception):
    """Base exception for all resolution-related errors.

    Attributes:
        message: Technical error message for logging
        url: The URL that was being processed (if available)
        correlation_id: Unique identifier for request tracing
    """

    kind = FailureKind.INTERNAL

    def __init__(
        self,
        message: str = "Media resolution failed",
        url: Optional[str] = None,
        correlation_id: Optional[str] = None
    ):
        self.message = message
        self.url = url
        self.correlation_id = correlation_id or self._generate_correlation_id()
        super().__init__(self.message)

    @staticmethod
    def _generate_correlation_id() -> str:
        """Generate a unique correlation ID for request tracing."""
        return str(uuid.uuid4())[:8]

    @property
    def error_code(self) -> ErrorCode:
        """Response code for this failure."""
        return ERROR_CODES[self.kind]

    def to_user_message(self) -> str:
        """Return a user-friendly error message.

        Returns:
            Human-readable, actionable message for display to users.
        """
        return USER_MESSAGES[self.kind]

    def __str__(self) -> str:
        """String representation with technical details for logging."""
        parts = [self.message]
        if self.url:
            parts.append(f"url={self.url}")
        if self.correlation_id:
            parts.append(f"correlation_id={self.correlation_id}")
        return f"[{self.__class__.__name__}] {' | '.join(parts)}"


class InvalidInputError(ResolutionError):
    """Raised when the URL or quality tier is malformed or missing."""

    kind = FailureKind.INVALID_INPUT


class UnsupportedSourceError(ResolutionError):
    """Raised when the URL is well-formed but no extractor can handle it."""

    kind = FailureKind.UNSUPPORTED_SOURCE


class AuthRequiredError(ResolutionError):
    """Raised when the target needs login and no credentials are available."""

    kind = FailureKind.AUTH_REQUIRED


class UpstreamBlockedError(ResolutionError):
    """Raised when a source was reached but refused, throttled or blocked us.

    Attributes:
        status: HTTP status returned by the source (if known)
    """

    kind = FailureKind.UPSTREAM_BLOCKED

    def __init__(
        self,
        message: str = "Upstream source refused the request",
        url: Optional[str] = None,
        correlation_id: Optional[str] = None,
        status: Optional[int] = None
    ):
        self.status = status
        super().__init__(message, url, correlation_id)


class ExtractionTimeoutError(ResolutionError):
    """Raised when an extractor exceeds its bounded wait.

    Attributes:
        timeout: The bound in seconds that was exceeded
    """

    kind = FailureKind.TIMEOUT

    def __init__(
        self,
        message: Optional[str] = None,
        url: Optional[str] = None,
        correlation_id: Optional[str] = None,
        timeout: Optional[float] = None
    ):
        self.timeout = timeout
        msg = message or f"Extraction timed out after {timeout}s"
        super().__init__(msg, url, correlation_id)


class NetworkError(ResolutionError):
    """Raised for transient network failures (DNS, connection reset, TLS)."""

    kind = FailureKind.NETWORK


class MediaNotFoundError(ResolutionError):
    """Raised when media is absent, private, age-gated or geo-restricted."""

    kind = FailureKind.NOT_FOUND


class NoSuitableFormatError(ResolutionError):
    """Raised when no format survives candidate filtering for the tier."""

    kind = FailureKind.NO_SUITABLE_FORMAT


class MalformedPayloadError(ResolutionError):
    """Raised when an upstream payload is empty or cannot be parsed."""

    kind = FailureKind.INTERNAL


class DirectUrlUnavailableError(ResolutionError):
    """Raised when the selected format has no URL and the follow-up fails."""

    kind = FailureKind.INTERNAL

    def to_user_message(self) -> str:
        return (
            "Encontré el contenido pero no pude obtener el enlace de descarga. "
            "Intenta de nuevo más tarde."
        )


ERRORS_BY_KIND = {
    FailureKind.INVALID_INPUT: InvalidInputError,
    FailureKind.UNSUPPORTED_SOURCE: UnsupportedSourceError,
    FailureKind.AUTH_REQUIRED: AuthRequiredError,
    FailureKind.UPSTREAM_BLOCKED: UpstreamBlockedError,
    FailureKind.TIMEOUT: ExtractionTimeoutError,
    FailureKind.NETWORK: NetworkError,
    FailureKind.NOT_FOUND: MediaNotFoundError,
    FailureKind.NO_SUITABLE_FORMAT: NoSuitableFormatError,
    FailureKind.INTERNAL: MalformedPayloadError,
}


@dataclass(frozen=True)
class AttemptFailure:
    """One extractor's failed attempt within an orchestrator run."""

    extractor: str
    kind: FailureKind
    message: str


# When causes are mixed, the first kind present in this order wins
_PRIMARY_KIND_PRECEDENCE = (
    FailureKind.NOT_FOUND,
    FailureKind.AUTH_REQUIRED,
    FailureKind.UPSTREAM_BLOCKED,
    FailureKind.TIMEOUT,
    FailureKind.NETWORK,
    FailureKind.NO_SUITABLE_FORMAT,
    FailureKind.INTERNAL,
    FailureKind.UNSUPPORTED_SOURCE,
)


class ResolutionFailed(ResolutionError):
    """Raised when every candidate extractor failed.

    Carries one AttemptFailure per attempted extractor so callers can tell
    "all failures were AUTH_REQUIRED" apart from "mixed TIMEOUT and
    UPSTREAM_BLOCKED".

    Attributes:
        attempts: Per-extractor failures in the order they were attempted
    """

    def __init__(
        self,
        attempts: Iterable[AttemptFailure],
        url: Optional[str] = None,
        correlation_id: Optional[str] = None
    ):
        self.attempts = list(attempts)
        summary = ", ".join(
            f"{a.extractor}={a.kind.value}" for a in self.attempts
        ) or "no extractors attempted"
        super().__init__(f"All extractors failed: {summary}", url, correlation_id)

    @property
    def kinds(self) -> set:
        """Set of distinct failure kinds across all attempts."""
        return {a.kind for a in self.attempts}

    @property
    def primary_kind(self) -> FailureKind:
        """Single kind that best describes the union of causes."""
        kinds = self.kinds
        if len(kinds) == 1:
            return next(iter(kinds))
        for kind in _PRIMARY_KIND_PRECEDENCE:
            if kind in kinds:
                return kind
        return FailureKind.INTERNAL

    @property
    def kind(self) -> FailureKind:  # type: ignore[override]
        return self.primary_kind

    def to_user_message(self) -> str:
        """Return the remedy for the primary cause, noting mixed causes."""
        message = USER_MESSAGES[self.primary_kind]
        if len(self.kinds) > 1:
            message += " (Se probaron varias fuentes y todas fallaron.)"
        return message


def classify_upstream_message(
    message: str,
    default: FailureKind = FailureKind.INTERNAL
) -> FailureKind:
    """Classify raw upstream error text into a FailureKind.

    Args:
        message: Error text from yt-dlp or a remote API
        default: Kind to return when nothing matches

    Returns:
        The best matching FailureKind
    """
    text = (message or "").lower()

    if "requested format" in text or "no video formats" in text:
        return FailureKind.NO_SUITABLE_FORMAT
    if any(k in text for k in ("sign in", "login", "log in", "cookies", "authentication", "not a bot")):
        return FailureKind.AUTH_REQUIRED
    if any(k in text for k in (
        "private", "unavailable", "not available", "removed", "deleted",
        "does not exist", "404", "not found", "age-restricted", "age restricted",
        "confirm your age", "geo", "country", "region",
    )):
        return FailureKind.NOT_FOUND
    if any(k in text for k in (
        "429", "too many requests", "rate limit", "rate-limit", "rate_exceeded",
        "403", "forbidden", "blocked", "captcha", "limit",
    )):
        return FailureKind.UPSTREAM_BLOCKED
    if "unsupported" in text:
        return FailureKind.UNSUPPORTED_SOURCE
    if "timed out" in text or "timeout" in text:
        return FailureKind.TIMEOUT
    if any(k in text for k in (
        "connection", "network", "name resolution", "unreachable", "ssl",
    )):
        return FailureKind.NETWORK
    return default


def error_from_message(
    message: str,
    url: Optional[str] = None,
    correlation_id: Optional[str] = None,
    default: FailureKind = FailureKind.INTERNAL
) -> ResolutionError:
    """Build the ResolutionError subclass matching some upstream error text."""
    kind = classify_upstream_message(message, default)
    return ERRORS_BY_KIND[kind](message, url=url, correlation_id=correlation_id)


def error_for_status(
    status: int,
    source: str,
    url: Optional[str] = None,
    correlation_id: Optional[str] = None
) -> ResolutionError:
    """Map a non-success HTTP status from an upstream source to an error.

    Args:
        status: HTTP status code
        source: Name of the upstream source (for the message)
        url: Media URL being resolved
        correlation_id: Request tracing ID

    Returns:
        ResolutionError subclass instance for the status
    """
    message = f"{source} returned HTTP {status}"
    if status in (404, 410):
        return MediaNotFoundError(message, url=url, correlation_id=correlation_id)
    if status in (401, 403, 429):
        return UpstreamBlockedError(
            message, url=url, correlation_id=correlation_id, status=status
        )
    if status >= 500:
        return NetworkError(message, url=url, correlation_id=correlation_id)
    return MalformedPayloadError(message, url=url, correlation_id=correlation_id)


__all__ = [
    "FailureKind",
    "ErrorCode",
    "ERROR_CODES",
    "ERRORS_BY_KIND",
    "AttemptFailure",
    "ResolutionError",
    "InvalidInputError",
    "UnsupportedSourceError",
    "AuthRequiredError",
    "UpstreamBlockedError",
    "ExtractionTimeoutError",
    "NetworkError",
    "MediaNotFoundError",
    "NoSuitableFormatError",
    "MalformedPayloadError",
    "DirectUrlUnavailableError",
    "ResolutionFailed",
    "classify_upstream_message",
    "error_from_message",
    "error_for_status",
]
