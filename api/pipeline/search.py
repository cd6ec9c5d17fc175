"""
Reference discovery

Search backends share one contract (text query in, ordered candidates out);
which one runs is decided once from settings. ReferenceFinder turns raw
candidates into a short list of external, article-like links.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Protocol, Sequence, Set
from urllib.parse import urlparse

from config import Settings
from .errors import ConfigurationError
from .fetcher import HttpFetcher
from .types import ReferenceLink, SearchResult
from .utils import belongs_to_domain, is_http_url, normalize_text

logger = logging.getLogger(__name__)

DEFAULT_ARTICLE_PATH_TOKENS = ("blog", "blogs", "article", "news", "posts")


class SearchProvider(Protocol):
    name: str

    async def query(self, text: str) -> List[SearchResult]:
        """Submit ``text`` and return candidates in ranking order."""


def _text(value) -> Optional[str]:
    return value if isinstance(value, str) else None


def _results(data, key: str) -> List[SearchResult]:
    """Map the backend payload's result list to candidates, dropping malformed items."""
    if not isinstance(data, dict):
        logger.warning("Search payload is not an object, treating as no results")
        return []
    items = data.get(key)
    if not isinstance(items, list):
        return []
    return [
        SearchResult(title=_text(item.get("title")), url=_text(item.get("link")))
        for item in items
        if isinstance(item, dict)
    ]


class SerpApiSearch:
    name = "serpapi"

    def __init__(self, fetcher: HttpFetcher, api_key: Optional[str], endpoint: str):
        if not api_key:
            raise ConfigurationError("SERPAPI_KEY is required for serpapi provider")
        self.fetcher = fetcher
        self.api_key = api_key
        self.endpoint = endpoint

    async def query(self, text: str) -> List[SearchResult]:
        data = await self.fetcher.get_json(
            self.endpoint,
            params={"engine": "google", "q": text, "api_key": self.api_key},
        )
        return _results(data, "organic_results")


class GoogleCseSearch:
    name = "cse"

    def __init__(
        self,
        fetcher: HttpFetcher,
        api_key: Optional[str],
        cx: Optional[str],
        endpoint: str,
    ):
        if not api_key or not cx:
            raise ConfigurationError("GOOGLE_CSE_KEY and GOOGLE_CSE_CX are required for cse provider")
        self.fetcher = fetcher
        self.api_key = api_key
        self.cx = cx
        self.endpoint = endpoint

    async def query(self, text: str) -> List[SearchResult]:
        data = await self.fetcher.get_json(
            self.endpoint,
            params={"key": self.api_key, "cx": self.cx, "q": text},
        )
        return _results(data, "items")


def get_search_provider(settings: Settings, fetcher: HttpFetcher) -> SearchProvider:
    """Build the configured backend, validating its credentials up front."""
    provider = (settings.search_provider or "").strip().lower()
    if provider == "serpapi":
        return SerpApiSearch(fetcher, settings.serpapi_key, settings.serpapi_endpoint)
    if provider == "cse":
        return GoogleCseSearch(
            fetcher,
            settings.google_cse_key,
            settings.google_cse_cx,
            settings.google_cse_endpoint,
        )
    raise ConfigurationError(f"Unsupported SEARCH_PROVIDER: {settings.search_provider}")


def is_article_url(url: str, tokens: Sequence[str] = DEFAULT_ARTICLE_PATH_TOKENS) -> bool:
    """True when a non-final path segment is one of the content-path tokens."""
    segments = urlparse(url).path.split("/")[1:-1]
    wanted = {t.lower() for t in tokens}
    return any(segment.lower() in wanted for segment in segments)


def filter_reference_links(
    results: Iterable[SearchResult],
    exclude_domain: str,
    count: int = 2,
    article_path_tokens: Sequence[str] = DEFAULT_ARTICLE_PATH_TOKENS,
) -> List[ReferenceLink]:
    """
    Pick up to ``count`` external references from raw search candidates.

    Candidates without title/url, non-http(s) URLs, links back to
    ``exclude_domain`` and repeated URLs are dropped. Article-like paths are
    taken first; remaining slots are filled from the other survivors in order.
    """
    candidates: List[ReferenceLink] = []
    seen: Set[str] = set()
    for item in results:
        title = normalize_text(item.title) if isinstance(item.title, str) else ""
        url = item.url.strip() if isinstance(item.url, str) else ""
        if not title or not url:
            continue
        if not is_http_url(url):
            continue
        if belongs_to_domain(url, exclude_domain):
            continue
        if url in seen:
            continue
        seen.add(url)
        candidates.append(ReferenceLink(title=title, url=url))

    selected = [c for c in candidates if is_article_url(c.url, article_path_tokens)][:count]
    if len(selected) < count:
        chosen = {c.url for c in selected}
        for candidate in candidates:
            if len(selected) >= count:
                break
            if candidate.url not in chosen:
                selected.append(candidate)

    return selected


class ReferenceFinder:
    def __init__(
        self,
        provider: SearchProvider,
        exclude_domain: str,
        count: int = 2,
        article_path_tokens: Sequence[str] = DEFAULT_ARTICLE_PATH_TOKENS,
    ):
        self.provider = provider
        self.exclude_domain = exclude_domain
        self.count = count
        self.article_path_tokens = tuple(article_path_tokens)

    async def find_references(self, query: str) -> List[ReferenceLink]:
        results = await self.provider.query(query)
        references = filter_reference_links(
            results,
            exclude_domain=self.exclude_domain,
            count=self.count,
            article_path_tokens=self.article_path_tokens,
        )
        logger.info(
            "Search '%s' via %s: %d candidates, %d references",
            query, self.provider.name, len(results), len(references),
        )
        return references
