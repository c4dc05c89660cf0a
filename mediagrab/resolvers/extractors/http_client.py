"""Shared aiohttp plumbing for the HTTP-based extractors.

Each call opens its own ClientSession, bounded by a total ClientTimeout, and
turns transport failures into classified ResolutionErrors so the orchestrator
can record them and move on.
"""
import asyncio
import logging
from typing import Any, Mapping, Optional, Tuple

import aiohttp
from aiohttp import ClientConnectorError, ClientResponseError

from ..exceptions import (
    ExtractionTimeoutError,
    MalformedPayloadError,
    NetworkError,
    error_for_status,
)

logger = logging.getLogger(__name__)


def build_headers(user_agent: str, extra: Optional[Mapping[str, str]] = None) -> dict:
    """Browser-like headers sent to every upstream."""
    headers = {
        "User-Agent": user_agent,
        "Accept-Language": "en-US,en;q=0.9",
    }
    if extra:
        headers.update(extra)
    return headers


async def request_json(
    method: str,
    endpoint: str,
    *,
    source: str,
    media_url: str,
    timeout: float,
    headers: Mapping[str, str],
    params: Optional[Mapping[str, str]] = None,
    json_body: Optional[Mapping[str, Any]] = None,
) -> Tuple[int, Any]:
    """Call a JSON API and return ``(status, decoded_body)``.

    Non-success statuses are returned rather than raised when the body is
    valid JSON, since some APIs explain their errors in the payload.

    Raises:
        ExtractionTimeoutError: If the call exceeds ``timeout``
        NetworkError: On connection failures
        UpstreamBlockedError/MediaNotFoundError: On an error status without
            a JSON body
        MalformedPayloadError: If a success response is not JSON
    """
    client_timeout = aiohttp.ClientTimeout(total=timeout)
    try:
        async with aiohttp.ClientSession(timeout=client_timeout) as session:
            async with session.request(
                method,
                endpoint,
                params=params,
                json=json_body,
                headers=dict(headers),
            ) as response:
                status = response.status
                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    if status >= 400:
                        raise error_for_status(status, source, url=media_url) from e
                    raise MalformedPayloadError(
                        f"{source} returned a non-JSON body", url=media_url
                    ) from e
                return status, data

    except ClientConnectorError as e:
        raise NetworkError(f"{source} connection failed: {e}", url=media_url) from e
    except asyncio.TimeoutError as e:
        raise ExtractionTimeoutError(url=media_url, timeout=timeout) from e
    except aiohttp.ClientError as e:
        raise NetworkError(f"{source} request failed: {e}", url=media_url) from e


async def fetch_text(
    url: str,
    *,
    source: str,
    timeout: float,
    headers: Mapping[str, str],
) -> Tuple[str, str]:
    """GET a page and return ``(text, final_url)`` after redirects.

    Raises:
        ExtractionTimeoutError: If the call exceeds ``timeout``
        NetworkError: On connection failures
        ResolutionError: Mapped from a non-success status
    """
    client_timeout = aiohttp.ClientTimeout(total=timeout)
    try:
        async with aiohttp.ClientSession(timeout=client_timeout) as session:
            async with session.get(url, headers=dict(headers)) as response:
                response.raise_for_status()
                text = await response.text(errors="replace")
                return text, str(response.url)

    except ClientResponseError as e:
        raise error_for_status(e.status, source, url=url) from e
    except ClientConnectorError as e:
        raise NetworkError(f"{source} connection failed: {e}", url=url) from e
    except asyncio.TimeoutError as e:
        raise ExtractionTimeoutError(url=url, timeout=timeout) from e
    except aiohttp.ClientError as e:
        raise NetworkError(f"{source} request failed: {e}", url=url) from e


__all__ = [
    "build_headers",
    "fetch_text",
    "request_json",
]
