"""
Upstream JSON client

Fetches JSON payloads from the listing provider and maps transport failures
onto the guide error taxonomy. Requests are never retried: a single failure
aborts the guide build.
"""
import json
import logging
from typing import Any

import httpx

from tvguide.config import CustomSettings
from tvguide.errors import MalformedResponse, UpstreamUnavailable
from tvguide.utils.logging_helpers import sanitize_url_for_logging


logger = logging.getLogger(__name__)


def create_http_client(settings: CustomSettings, transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    """
    Create the shared HTTP client for provider requests

    Args:
        settings: Application settings (timeout, user agent)
        transport: Optional transport override (used by tests)

    Returns:
        Configured httpx.AsyncClient
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.upstream_timeout_sec),
        headers={"User-Agent": settings.user_agent, "Accept": "application/json"},
        follow_redirects=True,
        transport=transport,
    )


async def fetch_json(client: httpx.AsyncClient, url: str) -> Any:
    """
    GET a URL and decode its JSON body

    Args:
        client: Shared HTTP client
        url: Absolute URL to fetch

    Returns:
        Decoded JSON value

    Raises:
        UpstreamUnavailable: On timeout, connection error or non-2xx status
        MalformedResponse: If the body is not valid JSON
    """
    safe_url = sanitize_url_for_logging(url)
    logger.debug(f"GET {safe_url}")

    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.TimeoutException as e:
        logger.error(f"Timed out fetching {safe_url}: {type(e).__name__}")
        raise UpstreamUnavailable(safe_url, "timeout") from e
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        logger.error(f"HTTP {status} from {safe_url}")
        raise UpstreamUnavailable(safe_url, f"HTTP {status}", status_code=status) from e
    except httpx.HTTPError as e:
        logger.error(f"Request to {safe_url} failed: {type(e).__name__}: {e}")
        raise UpstreamUnavailable(safe_url, type(e).__name__) from e

    try:
        payload = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.error(f"Invalid JSON from {safe_url}: {e}")
        raise MalformedResponse(safe_url, "body is not valid JSON") from e

    logger.debug(f"Received {len(response.content)} bytes from {safe_url}")
    return payload


def expect_list(payload: Any, url: str, what: str) -> list:
    """Ensure a decoded payload is a JSON array"""
    if not isinstance(payload, list):
        raise MalformedResponse(
            sanitize_url_for_logging(url),
            f"expected {what} to be a JSON array, got {type(payload).__name__}",
        )
    return payload
