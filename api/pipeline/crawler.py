"""
Backward Crawler

Listings are newest-first, so walking from the last page toward page 1
surfaces the oldest articles first and bounds the crawl by ``limit``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Set

from .fetcher import HttpFetcher
from .listing import parse_articles
from .pagination import extract_last_page_info, page_url
from .types import ArticleSummary

logger = logging.getLogger(__name__)

# Missing timestamps sort after every real one
_UNBOUNDED_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


def sort_oldest_first(articles: List[ArticleSummary]) -> List[ArticleSummary]:
    return sorted(articles, key=lambda a: a.published_at or _UNBOUNDED_FUTURE)


class BackwardCrawler:
    def __init__(self, fetcher: HttpFetcher, base_url: str):
        self.fetcher = fetcher
        self.base_url = base_url

    async def collect_oldest(self, limit: int) -> List[ArticleSummary]:
        """
        Collect up to ``limit`` distinct articles, oldest first.

        Pages are kept whole and truncated only after sorting, so the result is
        the ``limit`` oldest of everything fetched even when a page is unsorted.

        Any fetch failure propagates and aborts the whole crawl.
        """
        if limit <= 0:
            return []

        root_html = await self.fetcher.get_text(self.base_url)
        info = extract_last_page_info(root_html, self.base_url)
        logger.info(
            "Crawling backward from page %d (%s), limit=%d",
            info.last_page_number, info.last_page_url, limit,
        )

        seen: Set[str] = set()
        collected: List[ArticleSummary] = []

        for page in range(info.last_page_number, 0, -1):
            if len(collected) >= limit:
                break

            url = info.last_page_url if page == info.last_page_number else page_url(self.base_url, page)
            html = await self.fetcher.get_text(url)
            articles = parse_articles(html, base_url=url)
            logger.info("Page %d: %d articles", page, len(articles))

            # Whole pages are kept; truncation to limit happens after sorting
            for article in articles:
                if article.url in seen:
                    continue
                seen.add(article.url)
                collected.append(article)

        result = sort_oldest_first(collected)[:limit]
        logger.info("Collected %d oldest articles", len(result))
        return result
