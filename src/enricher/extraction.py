"""Ordered extraction strategies for scraped product pages.

Each field has a list of CSS selectors tried in order; the first one that
yields non-empty text wins. A selector may end in ``@attr`` to read an
attribute instead of the element text (``a.core@href``,
``meta[property='og:title']@content``).

The remote page structure is outside our control, so the whole strategy set
is loaded from config and can be swapped without code changes.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag
from pydantic import BaseModel, ConfigDict, Field

from src.models import ProductSnippet

_ATTR_SUFFIX = re.compile(r"^(?P<css>.+)@(?P<attr>[\w-]+)$")


class SearchResultStrategies(BaseModel):
    model_config = ConfigDict(frozen=True)

    entry: list[str]
    name: list[str]
    price: list[str] = Field(default_factory=list)
    link: list[str]


class StaticFact(BaseModel):
    model_config = ConfigDict(frozen=True)

    triggers: list[str]
    fact: str


class EnrichmentConfig(BaseModel):
    """Allow-list, search endpoint and extraction strategies for the Enricher."""

    model_config = ConfigDict(frozen=True)

    allowed_hosts: list[str]
    base_origin: str
    search_path: str = "/catalog/"
    search_param: str = "q"
    max_search_results: int = Field(default=3, gt=0)
    user_agent: str = "Mozilla/5.0"
    product_fields: dict[str, list[str]]
    search_result: SearchResultStrategies
    static_facts: dict[str, StaticFact] = Field(default_factory=dict)

    @property
    def search_url(self) -> str:
        return urljoin(self.base_origin, self.search_path)

    @classmethod
    def from_file(cls, path: str) -> EnrichmentConfig:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Enrichment config not found: {path}")
        try:
            raw = json.loads(config_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in enrichment config: {e}") from e
        return cls.model_validate(raw)


def first_match(node: BeautifulSoup | Tag, selectors: list[str]) -> str | None:
    """Return the first non-empty value produced by the ordered selectors."""
    for selector in selectors:
        css, attr = selector, None
        m = _ATTR_SUFFIX.match(selector)
        if m:
            css, attr = m.group("css"), m.group("attr")

        element = node.select_one(css)
        if element is None:
            continue
        if attr:
            value = element.get(attr)
            if isinstance(value, list):
                value = " ".join(value)
        else:
            value = element.get_text(" ", strip=True)
        if value and value.strip():
            return value.strip()
    return None


def extract_product(
    html: str, source_url: str, fields: dict[str, list[str]],
) -> ProductSnippet:
    """Build a snippet from a product page using per-field strategies."""
    soup = BeautifulSoup(html, "html.parser")
    return ProductSnippet(
        source_url=source_url,
        title=first_match(soup, fields.get("title", [])),
        price=first_match(soup, fields.get("price", [])),
        availability=first_match(soup, fields.get("availability", [])),
    )


def parse_search_results(html: str, config: EnrichmentConfig) -> list[ProductSnippet]:
    """Parse the first N search entries, keeping those with a name and a link.

    Relative links are resolved against the configured base origin.
    """
    soup = BeautifulSoup(html, "html.parser")
    strategies = config.search_result

    entries: list[Tag] = []
    for selector in strategies.entry:
        entries = soup.select(selector)
        if entries:
            break

    results: list[ProductSnippet] = []
    for entry in entries[: config.max_search_results]:
        name = first_match(entry, strategies.name)
        link = first_match(entry, strategies.link)
        if not name or not link:
            continue
        results.append(ProductSnippet(
            source_url=urljoin(config.base_origin, link),
            title=name,
            price=first_match(entry, strategies.price),
        ))
    return results
