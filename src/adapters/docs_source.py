"""HTTP source for the documentation corpus."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

LOGGER = logging.getLogger(__name__)

DEFAULT_DOCS_URL = "https://console.groq.com/llms-full.txt"


class HttpDocsSource:
    """Fetches the full-text documentation dump; satisfies DocsSourcePort."""

    def __init__(
        self,
        url: str = DEFAULT_DOCS_URL,
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url = url
        self._timeout = timeout_seconds
        self._transport = transport

    async def fetch_text(self) -> str:
        LOGGER.info("Fetching documentation from %s", self._url)
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            response = await client.get(self._url, follow_redirects=True)
            response.raise_for_status()
            return response.text
