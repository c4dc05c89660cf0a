"""Concrete extractors and the default priority order.

Platform-specific extractors come first, then the generic ones in the order
the orchestrator should try them.
"""
from typing import List, Optional

from ..base import BaseExtractor
from ..models import ToolCapabilities
from .cobalt import CobaltExtractor, parse_cobalt_payload
from .html_page import HtmlPageExtractor, parse_html_page
from .tikwm import TikWmExtractor, parse_tikwm_payload
from .ytdlp import YtDlpExtractor


def build_default_extractors(
    capabilities: Optional[ToolCapabilities] = None,
) -> List[BaseExtractor]:
    """Create the default extractor chain.

    Args:
        capabilities: Discovered tooling, injected into the yt-dlp extractor

    Returns:
        Extractors in priority order
    """
    return [
        TikWmExtractor(),
        YtDlpExtractor(capabilities),
        CobaltExtractor(),
        HtmlPageExtractor(),
    ]


__all__ = [
    "CobaltExtractor",
    "HtmlPageExtractor",
    "TikWmExtractor",
    "YtDlpExtractor",
    "build_default_extractors",
    "parse_cobalt_payload",
    "parse_html_page",
    "parse_tikwm_payload",
]
