"""
core.api.http_client

Construction of the httpx clients used for outbound calls:

  - core/api/fetch_proxy.py (retrieving monitored URLs)
  - core/notify/providers.py (SendGrid / Mailgun APIs)

Timeout and User-Agent come from central settings unless overridden.
"""

from __future__ import annotations

from typing import Optional

import httpx

from configs.settings import settings


def build_http_client(
    timeout: Optional[float] = None,
    user_agent: Optional[str] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Return a new synchronous client. The caller owns (and closes) it."""
    return httpx.Client(
        timeout=settings.fetch_timeout if timeout is None else timeout,
        headers={"User-Agent": user_agent or settings.user_agent},
        follow_redirects=True,
        transport=transport,
    )
