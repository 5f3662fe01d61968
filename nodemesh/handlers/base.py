"""
Shared plumbing for the REST-backed handlers (weather, news).

Every upstream failure (transport error, timeout, HTTP >= 400, non-JSON body)
surfaces as UpstreamError so handlers can turn it into a display string.
"""

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """A weather or news source failed or returned an unusable body."""

    def __init__(self, source: str, message: str, status: Optional[int] = None):
        super().__init__(f"{source}: {message}")
        self.source = source
        self.status = status


class LocationNotFoundError(UpstreamError):
    """The forecast source did not recognise the requested location."""


def as_dict(value: Any) -> Dict[str, Any]:
    """Nested upstream object, or {} when the field is missing or the wrong shape."""
    return value if isinstance(value, dict) else {}


def as_text(value: Any) -> str:
    """Upstream string field, or "" when missing or not a string."""
    return value if isinstance(value, str) else ""


def build_http_client(timeout: float) -> httpx.AsyncClient:
    """One client per process; every call through it has a bounded timeout."""
    return httpx.AsyncClient(timeout=httpx.Timeout(timeout))


async def fetch_json(
    client: httpx.AsyncClient,
    source: str,
    url: str,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """
    GET a JSON document.

    Raises:
        UpstreamError: on transport failure, HTTP error status or bad body
    """
    try:
        response = await client.get(url, params=params, headers=headers)
    except httpx.TimeoutException as e:
        raise UpstreamError(source, f"request timed out: {e!r}") from e
    except httpx.HTTPError as e:
        raise UpstreamError(source, f"request failed: {e!r}") from e

    if response.status_code >= 400:
        raise UpstreamError(
            source,
            f"HTTP {response.status_code}: {response.text[:200]}",
            status=response.status_code,
        )

    try:
        body = response.json()
    except ValueError as e:
        raise UpstreamError(source, "response body is not JSON", status=response.status_code) from e

    if not isinstance(body, dict):
        raise UpstreamError(source, "response body is not a JSON object", status=response.status_code)
    return body
