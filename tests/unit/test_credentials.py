"""Tests for cookie lookup and tool discovery."""
import pytest
from unittest.mock import patch

from mediagrab.config import BotConfig
from mediagrab.resolvers.capabilities import discover_capabilities
from mediagrab.resolvers.credentials import CookieFileProvider, NoCredentials
from mediagrab.resolvers.models import Platform

INSTAGRAM_URL = "https://www.instagram.com/p/Cxyz123/"


class TestCookieFileProvider:
    """Tests for CookieFileProvider.get_auth()."""

    def test_platform_file_wins(self, tmp_path):
        (tmp_path / "instagram.txt").write_text("# Netscape HTTP Cookie File\n")
        global_file = tmp_path / "cookies.txt"
        global_file.write_text("# Netscape HTTP Cookie File\n")

        provider = CookieFileProvider(cookies_file=str(global_file), cookies_dir=str(tmp_path))
        auth = provider.get_auth(INSTAGRAM_URL, Platform.INSTAGRAM)

        assert auth.cookie_file == str(tmp_path / "instagram.txt")

    def test_global_file_fallback(self, tmp_path):
        global_file = tmp_path / "cookies.txt"
        global_file.write_text("# Netscape HTTP Cookie File\n")

        provider = CookieFileProvider(cookies_file=str(global_file), cookies_dir=str(tmp_path))
        auth = provider.get_auth("https://youtu.be/dQw4w9WgXcQ", Platform.YOUTUBE)

        assert auth.cookie_file == str(global_file)

    def test_missing_files(self, tmp_path):
        provider = CookieFileProvider(
            cookies_file=str(tmp_path / "missing.txt"), cookies_dir=str(tmp_path)
        )
        assert provider.get_auth(INSTAGRAM_URL, Platform.INSTAGRAM) is None

    def test_nothing_configured(self):
        assert CookieFileProvider().get_auth(INSTAGRAM_URL, Platform.INSTAGRAM) is None
        assert NoCredentials().get_auth(INSTAGRAM_URL, Platform.INSTAGRAM) is None

    def test_from_config(self):
        provider = CookieFileProvider.from_config(
            BotConfig(COOKIES_FILE="/srv/cookies.txt", COOKIES_DIR="/srv/cookies")
        )
        assert provider.cookies_file == "/srv/cookies.txt"
        assert provider.cookies_dir == "/srv/cookies"


class TestDiscoverCapabilities:
    """Tests for discover_capabilities()."""

    @pytest.fixture(autouse=True)
    def clear_cache(self):
        discover_capabilities.cache_clear()
        yield
        discover_capabilities.cache_clear()

    def test_ffmpeg_on_path(self):
        with patch("mediagrab.resolvers.capabilities.shutil.which", return_value="/usr/bin/ffmpeg"):
            capabilities = discover_capabilities()
        assert capabilities.ffmpeg_location == "/usr/bin/ffmpeg"
        assert capabilities.can_merge
        assert capabilities.ytdlp_version

    def test_no_ffmpeg(self):
        with patch("mediagrab.resolvers.capabilities.shutil.which", return_value=None):
            capabilities = discover_capabilities()
        assert capabilities.ffmpeg_location is None
        assert not capabilities.can_merge

    def test_directory_hint(self, tmp_path):
        (tmp_path / "ffmpeg").write_text("")
        with patch("mediagrab.resolvers.capabilities.shutil.which", return_value=None):
            capabilities = discover_capabilities(str(tmp_path))
        assert capabilities.ffmpeg_location == str(tmp_path / "ffmpeg")

    def test_result_is_cached(self):
        with patch("mediagrab.resolvers.capabilities.shutil.which", return_value=None) as which:
            first = discover_capabilities()
            second = discover_capabilities()
        assert first is second
        which.assert_called_once()
