"""Configuration module for the Telegram bot and the resolver pipeline."""
import os
from dataclasses import dataclass
from typing import Optional, Tuple
from dotenv import load_dotenv

from mediagrab.resolvers.base import DEFAULT_USER_AGENT
from mediagrab.resolvers.models import Platform

# Load environment variables from .env file
load_dotenv()


@dataclass(frozen=True)
class BotConfig:
    """Bot configuration dataclass with validation.

    All configuration values are loaded from environment variables
    with sensible defaults. Validation occurs at initialization time
    to ensure fail-fast behavior on invalid configuration.

    BOT_TOKEN is only checked when the bot starts, so the resolver can be
    used (and tested) without one.
    """

    # Required to start the bot
    BOT_TOKEN: str = ""

    # Timeouts (seconds)
    YTDLP_TIMEOUT: int = 90
    API_TIMEOUT: int = 30
    HTML_TIMEOUT: int = 30
    FOLLOW_UP_TIMEOUT: int = 60

    # Credentials (Netscape cookie files)
    COOKIES_FILE: Optional[str] = None
    COOKIES_DIR: Optional[str] = None
    AUTH_REQUIRED_PLATFORMS: Tuple[str, ...] = ()

    # Upstream endpoints
    COBALT_API_URL: str = "https://api.cobalt.tools/"
    COBALT_API_KEY: Optional[str] = None
    TIKWM_API_URL: str = "https://www.tikwm.com/api/"

    # Request shaping
    USER_AGENT: str = DEFAULT_USER_AGENT

    # Optional Paths
    FFMPEG_LOCATION: Optional[str] = None

    # Logging
    LOG_LEVEL: str = "INFO"

    def __post_init__(self) -> None:
        """Validate configuration values after initialization."""
        errors = []

        # Validate timeout fields are positive
        timeout_fields = [
            ("YTDLP_TIMEOUT", self.YTDLP_TIMEOUT),
            ("API_TIMEOUT", self.API_TIMEOUT),
            ("HTML_TIMEOUT", self.HTML_TIMEOUT),
            ("FOLLOW_UP_TIMEOUT", self.FOLLOW_UP_TIMEOUT),
        ]
        for name, value in timeout_fields:
            if not isinstance(value, int) or value <= 0:
                errors.append(f"{name} must be a positive integer (got: {value})")

        # Validate endpoints
        for name, value in (
            ("COBALT_API_URL", self.COBALT_API_URL),
            ("TIKWM_API_URL", self.TIKWM_API_URL),
        ):
            if not value.startswith(("http://", "https://")):
                errors.append(f"{name} must be an http(s) URL (got: {value!r})")

        # Validate platform names
        valid_platforms = {p.value for p in Platform} - {"other", "unknown"}
        for value in self.AUTH_REQUIRED_PLATFORMS:
            if value not in valid_platforms:
                errors.append(
                    f"AUTH_REQUIRED_PLATFORMS entries must be one of "
                    f"{sorted(valid_platforms)} (got: {value!r})"
                )

        # Validate LOG_LEVEL
        valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.LOG_LEVEL not in valid_log_levels:
            errors.append(
                f"LOG_LEVEL must be one of {valid_log_levels} (got: {self.LOG_LEVEL})"
            )

        # Raise if any validation errors
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


def load_config() -> BotConfig:
    """Load configuration from environment variables.

    Reads all configuration values from environment variables with
    sensible defaults. Performs type conversion where needed.

    Returns:
        BotConfig instance with validated configuration values.

    Raises:
        ValueError: If any configuration validation fails.
    """
    # Helper to parse int from env var
    def _int_env(name: str, default: int) -> int:
        value = os.getenv(name)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            raise ValueError(
                f"{name} must be a valid integer (got: {value!r})"
            )

    # Helper to parse a comma-separated list
    def _list_env(name: str) -> Tuple[str, ...]:
        value = os.getenv(name) or ""
        return tuple(item.strip().lower() for item in value.split(",") if item.strip())

    return BotConfig(
        BOT_TOKEN=os.getenv("BOT_TOKEN", ""),
        YTDLP_TIMEOUT=_int_env("YTDLP_TIMEOUT", 90),
        API_TIMEOUT=_int_env("API_TIMEOUT", 30),
        HTML_TIMEOUT=_int_env("HTML_TIMEOUT", 30),
        FOLLOW_UP_TIMEOUT=_int_env("FOLLOW_UP_TIMEOUT", 60),
        COOKIES_FILE=os.getenv("COOKIES_FILE") or None,
        COOKIES_DIR=os.getenv("COOKIES_DIR") or None,
        AUTH_REQUIRED_PLATFORMS=_list_env("AUTH_REQUIRED_PLATFORMS"),
        COBALT_API_URL=os.getenv("COBALT_API_URL") or "https://api.cobalt.tools/",
        COBALT_API_KEY=os.getenv("COBALT_API_KEY") or None,
        TIKWM_API_URL=os.getenv("TIKWM_API_URL") or "https://www.tikwm.com/api/",
        USER_AGENT=os.getenv("USER_AGENT") or DEFAULT_USER_AGENT,
        FFMPEG_LOCATION=os.getenv("FFMPEG_LOCATION") or None,
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


# Global config instance
config = load_config()

__all__ = ["config", "BotConfig", "load_config"]
