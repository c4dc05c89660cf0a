"""One-time discovery of local extraction tooling.

yt-dlp is imported as a library, so the only things worth probing are its
version (for diagnostics) and whether ffmpeg is available for merged
video+audio formats. Discovery runs once per process and the result is
injected into the extractors that need it.
"""
import functools
import logging
import shutil
from pathlib import Path
from typing import Optional

from yt_dlp.version import __version__ as YTDLP_VERSION

from .models import ToolCapabilities

logger = logging.getLogger(__name__)


def _find_ffmpeg(ffmpeg_hint: Optional[str]) -> Optional[str]:
    if ffmpeg_hint:
        hint = Path(ffmpeg_hint)
        if hint.is_dir():
            candidate = hint / "ffmpeg"
            if candidate.exists():
                return str(candidate)
        elif hint.exists():
            return str(hint)
        logger.warning(f"FFMPEG_LOCATION does not exist: {ffmpeg_hint}")

    return shutil.which("ffmpeg")


@functools.lru_cache(maxsize=None)
def discover_capabilities(ffmpeg_hint: Optional[str] = None) -> ToolCapabilities:
    """Probe the local tooling.

    Args:
        ffmpeg_hint: Configured ffmpeg binary or directory (optional)

    Returns:
        ToolCapabilities, cached for the life of the process
    """
    ffmpeg_location = _find_ffmpeg(ffmpeg_hint)
    capabilities = ToolCapabilities(
        ytdlp_version=YTDLP_VERSION,
        ffmpeg_location=ffmpeg_location,
    )
    logger.info(
        f"yt-dlp {capabilities.ytdlp_version}, "
        f"ffmpeg: {ffmpeg_location or 'not found (merged formats unavailable)'}"
    )
    return capabilities


__all__ = ["discover_capabilities"]
