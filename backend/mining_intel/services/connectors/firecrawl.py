# backend/mining_intel/services/connectors/firecrawl.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx
from tenacity import retry, wait_exponential, stop_after_attempt, retry_if_exception_type

from .base import BaseConnector, ConnectorResult
from ...core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


class FirecrawlConnector(BaseConnector):
    """
    Firecrawl /search connector: web search plus scrape of each hit in one call.

    - Requests only the "main content" markdown of each page so navigation,
      footers and cookie banners never reach the LLM.
    - Normalises results into a "pages" list of {"url": ..., "markdown": ...}.
    - Transport errors get one quick local retry; HTTP errors are raised for
      the caller to decide what a failed search means.
    """

    name = "firecrawl"

    def __init__(
        self,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.FIRECRAWL_API_KEY
        self.search_url = f"{settings.FIRECRAWL_BASE_URL.rstrip('/')}/search"
        # Scraping is slow; a search with several scraped hits can take a minute
        self.timeout = int(settings.FIRECRAWL_TIMEOUT_SECONDS or 90)
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "accept": "application/json",
        }

    def _build_search_payload(self, query: str, limit: int) -> Dict[str, Any]:
        return {
            "query": query,
            "limit": int(limit),
            "scrapeOptions": {
                "formats": ["markdown"],
                "onlyMainContent": True,
            },
        }

    def _parse_results(self, data: Dict[str, Any]) -> List[Dict[str, Any]]:
        pages: List[Dict[str, Any]] = []
        for r in data.get("data") or []:
            if not isinstance(r, dict):
                continue
            markdown = r.get("markdown")
            if not isinstance(markdown, str):
                markdown = ""
            url = r.get("url") or (r.get("metadata") or {}).get("sourceURL")
            pages.append({"url": url, "markdown": markdown})
        return pages

    @retry(
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        stop=stop_after_attempt(2),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _post(self, client: httpx.AsyncClient, payload: Dict[str, Any]) -> httpx.Response:
        return await client.post(
            self.search_url,
            headers=self._headers(),
            json=payload,
            timeout=self.timeout,
        )

    async def fetch(self, **params: Any) -> ConnectorResult:
        """
        Expected params:
          - query: str
          - limit: int (number of search hits to scrape)

        Returns:
            ConnectorResult({"pages": [{"url": ..., "markdown": ...}, ...]})
        """
        if not self.api_key:
            logger.warning(
                "FIRECRAWL_API_KEY not configured; returning no pages",
                extra={"provider": self.name},
            )
            return ConnectorResult({})

        query = str(params.get("query") or "").strip()
        if not query:
            return ConnectorResult({})
        limit = params.get("limit") or 2

        payload = self._build_search_payload(query, limit)

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            resp = await self._post(client, payload)

            # Handle rate limits with a local, single retry
            if resp.status_code == 429:
                retry_after = resp.headers.get("Retry-After")
                delay = int(retry_after) if retry_after and retry_after.isdigit() else 5
                await asyncio.sleep(min(delay, 30))
                resp = await self._post(client, payload)

            resp.raise_for_status()
            data = resp.json()

        return ConnectorResult({"pages": self._parse_results(data)})
