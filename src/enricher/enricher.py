"""Prompt enrichment from the retail site.

Stages:
1. Extract allow-listed product URLs from the message
2. Fetch and scrape each product page concurrently
3. Otherwise, for product-intent messages, run one site search
4. Attach static store facts whose trigger words appear in the message

Fails open: any failure degrades the context, nothing is raised to the caller.
No caching and no coalescing; every call hits the network again.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

from src.enricher.extraction import (
    EnrichmentConfig,
    extract_product,
    parse_search_results,
)
from src.enricher.urls import extract_urls, is_allowed_host
from src.models import ClassificationResult, EnrichmentContext, ProductSnippet

logger = logging.getLogger(__name__)

FETCH_ERROR = "Could not fetch product details."


class ProductEnricher:
    """Builds an EnrichmentContext for in-domain messages."""

    def __init__(
        self,
        config: EnrichmentConfig,
        timeout_seconds: float = 8.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._timeout = timeout_seconds
        self._transport = transport

    async def enrich(
        self, text: str, classification: ClassificationResult,
    ) -> EnrichmentContext:
        try:
            return await self._enrich(text, classification)
        except Exception as exc:  # fail open with an empty context
            logger.warning("Enrichment failed, continuing without context: %s", exc)
            return EnrichmentContext()

    async def _enrich(
        self, text: str, classification: ClassificationResult,
    ) -> EnrichmentContext:
        # dict.fromkeys keeps the first occurrence order
        urls = list(dict.fromkeys(
            u for u in extract_urls(text)
            if is_allowed_host(u, self._config.allowed_hosts)
        ))

        scraped: list[ProductSnippet] = []
        search_results: list[ProductSnippet] | None = None

        if urls or classification.product_intent:
            async with self._client() as client:
                if urls:
                    scraped = await self._fetch_all(client, urls)
                else:
                    search_results = await self._search_within_budget(
                        client, text.strip(),
                    )

        facts = self._match_facts(text) if classification.in_domain else None

        return EnrichmentContext(
            scraped_products=scraped,
            search_results=search_results,
            static_facts=facts or None,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers={"User-Agent": self._config.user_agent},
            timeout=self._timeout,
            follow_redirects=True,
            transport=self._transport,
        )

    async def _fetch_all(
        self, client: httpx.AsyncClient, urls: list[str],
    ) -> list[ProductSnippet]:
        """Fetch pages concurrently under one overall budget, keeping URL order.

        httpx timeouts apply per read, so a slowly trickling page is only
        bounded by this budget. Pages still pending when it runs out are
        cancelled and reported as failed fetches.
        """
        tasks = [
            asyncio.create_task(self.fetch_product(client, url)) for url in urls
        ]
        _, pending = await asyncio.wait(tasks, timeout=self._timeout)
        if pending:
            logger.warning(
                "%d product fetch(es) exceeded %.1fs budget", len(pending), self._timeout,
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        return [
            ProductSnippet(source_url=url, error=FETCH_ERROR)
            if task in pending else task.result()
            for task, url in zip(tasks, urls)
        ]

    async def _search_within_budget(
        self, client: httpx.AsyncClient, query: str,
    ) -> list[ProductSnippet] | None:
        try:
            async with asyncio.timeout(self._timeout):
                return await self.search(client, query)
        except TimeoutError:
            logger.warning("Product search exceeded %.1fs budget", self._timeout)
            return None

    async def fetch_product(self, client: httpx.AsyncClient, url: str) -> ProductSnippet:
        """Fetch one product page; failures yield an error-marker snippet."""
        try:
            resp = await client.get(url)
            resp.raise_for_status()
            return extract_product(resp.text, url, self._config.product_fields)
        except httpx.HTTPError as exc:
            logger.warning("Product fetch failed for %s: %r", url, exc)
        except Exception as exc:  # malformed markup degrades like a failed fetch
            logger.warning("Product parse failed for %s: %r", url, exc)
        return ProductSnippet(source_url=url, error=FETCH_ERROR)

    async def search(
        self, client: httpx.AsyncClient, query: str,
    ) -> list[ProductSnippet] | None:
        """Run a single site search; returns None when the search fails."""
        try:
            resp = await client.get(
                self._config.search_url,
                params={self._config.search_param: query},
            )
            resp.raise_for_status()
            return parse_search_results(resp.text, self._config)
        except httpx.HTTPError as exc:
            logger.warning("Product search failed: %r", exc)
        except Exception as exc:  # malformed markup degrades like a failed fetch
            logger.warning("Search result parse failed: %r", exc)
        return None

    def _match_facts(self, text: str) -> dict[str, str]:
        lowered = text.lower()
        return {
            topic: entry.fact
            for topic, entry in self._config.static_facts.items()
            if any(t.lower() in lowered for t in entry.triggers)
        }
