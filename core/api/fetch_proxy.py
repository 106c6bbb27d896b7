"""
core.api.fetch_proxy

Retrieves the raw text of a monitored URL on behalf of a browser client
(which cannot fetch arbitrary origins itself because of CORS).

The proxy holds no state between calls and performs exactly one request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from exceptions.exceptions import FetchError, UnsupportedUrlError

from .http_client import build_http_client


logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = ("http://", "https://")


@dataclass
class FetchResult:
    """Body and metadata of a successful upstream response."""

    text: str
    status_code: int
    content_type: Optional[str] = None


def validate_url(url: str) -> None:
    """Raise UnsupportedUrlError unless url is an absolute http(s) URL."""
    if not isinstance(url, str) or not url.startswith(ALLOWED_SCHEMES):
        raise UnsupportedUrlError(url)


class FetchProxy:
    """Fetch a URL and return its text body.

    Parameters
    ----------
    timeout:
        Request timeout in seconds (defaults to settings.fetch_timeout).
    user_agent:
        User-Agent header (defaults to settings.user_agent).
    client:
        Optional pre-built httpx.Client. When given, the proxy uses it and
        leaves closing it to the caller.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._client = client

    def fetch(self, url: str) -> FetchResult:
        """Retrieve url.

        Raises
        ------
        UnsupportedUrlError
            If url is not http(s); no request is made.
        FetchError
            If the upstream answered with a non-2xx status (status_code set)
            or the request failed before a response (status_code None).
        """
        validate_url(url)

        client = self._client or build_http_client(self.timeout, self.user_agent)
        try:
            response = client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("[FETCH] Request to %s failed: %s", url, e)
            raise FetchError(url, reason=str(e)) from e
        finally:
            if self._client is None:
                client.close()

        if not response.is_success:
            logger.info("[FETCH] %s returned status %s", url, response.status_code)
            raise FetchError(url, response.status_code, response.reason_phrase)

        return FetchResult(
            text=response.text,
            status_code=response.status_code,
            content_type=response.headers.get("content-type"),
        )
