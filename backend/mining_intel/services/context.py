# backend/mining_intel/services/context.py
"""
Context Fetcher: gathers the web context the extractor reads.

Two scopes are searched concurrently: leadership (board / executives) and
assets (mines / projects / locations). A failing scope degrades to a
placeholder instead of failing the run, so extraction still sees whatever the
other scope produced.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List

from celery.exceptions import SoftTimeLimitExceeded

from ..core.config import get_settings
from .connectors import BaseConnector, FirecrawlConnector

logger = logging.getLogger(__name__)

settings = get_settings()

LEADERSHIP_HEADER = "--- LEADERSHIP CONTEXT ---"
ASSETS_HEADER = "--- ASSETS CONTEXT ---"
NO_DATA_PLACEHOLDER = "No data found for this section."


@dataclass(frozen=True)
class ScopeQuery:
    scope: str
    query: str
    limit: int
    max_chars: int


def build_scope_queries(company_name: str) -> List[ScopeQuery]:
    name = company_name.strip()
    return [
        ScopeQuery(
            scope="leadership",
            query=f"{name} mining company board of directors executive management team",
            limit=settings.FIRECRAWL_LEADERSHIP_LIMIT,
            # Biographies are terse
            max_chars=settings.LEADERSHIP_CONTEXT_MAX_CHARS,
        ),
        ScopeQuery(
            scope="assets",
            query=f"{name} mining company active operations assets mines projects location",
            limit=settings.FIRECRAWL_ASSETS_LIMIT,
            # Tables of mines and coordinates need more room
            max_chars=settings.ASSETS_CONTEXT_MAX_CHARS,
        ),
    ]


def format_pages(pages: List[Dict[str, str]]) -> str:
    """Markdown bodies with a provenance line each; empty pages are skipped."""
    parts: List[str] = []
    for page in pages:
        markdown = (page.get("markdown") or "").strip()
        if not markdown:
            continue
        parts.append(f"Source URL: {page.get('url') or 'Unknown'}\n{markdown}\n\n")
    return "".join(parts)


def has_context(text: str) -> bool:
    """True if at least one scope carried real scraped data."""
    return bool(text) and text.count(NO_DATA_PLACEHOLDER) < 2


class ContextFetcher:
    def __init__(self, connector: BaseConnector | None = None) -> None:
        self.connector = connector or FirecrawlConnector()

    async def _fetch_scope(self, company_name: str, sq: ScopeQuery) -> str:
        try:
            result = await self.connector.fetch(query=sq.query, limit=sq.limit)
        except SoftTimeLimitExceeded:
            raise
        except Exception as e:
            logger.error(
                "Search failed for %s scope: %s",
                sq.scope,
                e,
                extra={"company": company_name, "provider": self.connector.name, "step": sq.scope},
            )
            return NO_DATA_PLACEHOLDER

        text = format_pages(result.get("pages") or [])
        if not text:
            logger.warning(
                "No content returned for %s scope",
                sq.scope,
                extra={"company": company_name, "provider": self.connector.name, "step": sq.scope},
            )
            return NO_DATA_PLACEHOLDER

        if len(text) > sq.max_chars:
            text = text[: sq.max_chars]
        return text

    async def fetch_async(self, company_name: str) -> str:
        leadership_q, assets_q = build_scope_queries(company_name)
        leadership, assets = await asyncio.gather(
            self._fetch_scope(company_name, leadership_q),
            self._fetch_scope(company_name, assets_q),
        )
        return f"{LEADERSHIP_HEADER}\n{leadership}\n\n{ASSETS_HEADER}\n{assets}"

    def fetch(self, company_name: str) -> str:
        logger.info(
            "Fetching web context",
            extra={"company": company_name, "step": "fetch"},
        )
        # Use a dedicated event loop; Celery workers are synchronous
        try:
            return asyncio.run(self.fetch_async(company_name))
        except RuntimeError:
            # Fallback: create a new loop manually
            loop = asyncio.new_event_loop()
            try:
                asyncio.set_event_loop(loop)
                return loop.run_until_complete(self.fetch_async(company_name))
            finally:
                loop.close()
