"""Credential material lookup for extractors that need a logged-in session.

The resolver never acquires credentials itself. Operators drop Netscape-format
cookie files on disk; the provider only finds them. Absence is normal.
"""
import abc
import logging
from pathlib import Path
from typing import Optional

from .models import AuthMaterial, Platform

logger = logging.getLogger(__name__)


class CredentialProvider(abc.ABC):
    """Returns optional auth material for a URL."""

    @abc.abstractmethod
    def get_auth(self, url: str, platform: Platform) -> Optional[AuthMaterial]:
        """Look up credential material.

        Args:
            url: The URL being resolved
            platform: Classification result for the URL

        Returns:
            AuthMaterial, or None when nothing is configured
        """
        pass


class NoCredentials(CredentialProvider):
    """Provider used when no cookies are configured."""

    def get_auth(self, url: str, platform: Platform) -> Optional[AuthMaterial]:
        return None


class CookieFileProvider(CredentialProvider):
    """Finds cookie jars on disk.

    Lookup order:
    1. ``<cookies_dir>/<platform>.txt`` (e.g. ``instagram.txt``)
    2. The global ``cookies_file``

    Example:
        provider = CookieFileProvider(cookies_dir="/etc/mediagrab/cookies")
        auth = provider.get_auth(url, Platform.INSTAGRAM)
    """

    def __init__(
        self,
        cookies_file: Optional[str] = None,
        cookies_dir: Optional[str] = None,
    ):
        self.cookies_file = cookies_file
        self.cookies_dir = cookies_dir

    def get_auth(self, url: str, platform: Platform) -> Optional[AuthMaterial]:
        if self.cookies_dir:
            candidate = Path(self.cookies_dir) / f"{platform.value}.txt"
            if candidate.is_file():
                logger.debug(f"Using {platform.value} cookies: {candidate}")
                return AuthMaterial(cookie_file=str(candidate))

        if self.cookies_file:
            path = Path(self.cookies_file)
            if path.is_file():
                logger.debug(f"Using global cookies file: {path}")
                return AuthMaterial(cookie_file=str(path))
            logger.warning(f"Cookies file not found: {self.cookies_file}")

        return None

    @classmethod
    def from_config(cls, config=None) -> "CookieFileProvider":
        """Build a provider from COOKIES_FILE / COOKIES_DIR."""
        if config is None:
            from mediagrab.config import config

        return cls(cookies_file=config.COOKIES_FILE, cookies_dir=config.COOKIES_DIR)


__all__ = [
    "CredentialProvider",
    "CookieFileProvider",
    "NoCredentials",
]
