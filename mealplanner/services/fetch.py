from __future__ import annotations

import logging
from typing import Optional

import httpx

from mealplanner.config import Settings
from .exceptions import FetchError

logger = logging.getLogger(__name__)


class PageFetcher:
    """
    Retrieves raw page content for the import cascade.

    One GET per call, identified by the configured User-Agent and bounded by
    ``fetch_timeout_s``. Non-2xx responses and transport failures surface as
    FetchError.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._timeout = settings.fetch_timeout_s
        self._headers = {
            "User-Agent": settings.user_agent,
            "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8",
        }
        self._transport = transport

    async def fetch(self, url: str) -> str:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                headers=self._headers,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to fetch {url}: {e}") from e

        if not response.is_success:
            raise FetchError(
                f"Failed to fetch {url}: HTTP {response.status_code}",
                status_code=response.status_code,
            )
        logger.debug("Fetched %s (%d chars)", url, len(response.text))
        return response.text
