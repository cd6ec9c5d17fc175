"""
Article generation pipeline

original page -> references -> reference pages -> rewrite -> publish,
strictly in sequence and failing fast at each required step.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List

from .errors import ExtractionEmpty, InsufficientReferences
from .extractor import DEFAULT_MAX_CHARS, extract_main_content
from .fetcher import HttpFetcher
from .publisher import Publisher
from .rewriter import RewriteEngine
from .search import ReferenceFinder
from .types import ReferenceLink

if TYPE_CHECKING:
    from services.articles_service import Article

logger = logging.getLogger(__name__)


class ArticleGenerator:
    def __init__(
        self,
        fetcher: HttpFetcher,
        reference_finder: ReferenceFinder,
        rewrite_engine: RewriteEngine,
        publisher: Publisher,
        max_chars: int = DEFAULT_MAX_CHARS,
    ):
        self.fetcher = fetcher
        self.reference_finder = reference_finder
        self.rewrite_engine = rewrite_engine
        self.publisher = publisher
        self.max_chars = max_chars

    async def scrape_content(self, url: str) -> str:
        html = await self.fetcher.get_text(url)
        return extract_main_content(html, max_chars=self.max_chars)

    async def generate(self, article: "Article") -> "Article":
        """Produce and publish a refreshed version of ``article``."""
        logger.info("Generating refreshed article for '%s' (%s)", article.title, article.url)

        original_content = await self.scrape_content(article.url)
        if not original_content:
            raise ExtractionEmpty(f"Failed to extract original article content from {article.url}")

        required = self.reference_finder.count
        references = await self.reference_finder.find_references(article.title)
        if len(references) < required:
            raise InsufficientReferences(
                f"Could not find {required} reference articles from search results "
                f"(found {len(references)}).",
                found=len(references),
                required=required,
            )

        # One at a time, in list order
        enriched: List[ReferenceLink] = []
        for ref in references:
            enriched.append(ref.enriched(await self.scrape_content(ref.url)))

        result = await self.rewrite_engine.rewrite(article.title, original_content, enriched)

        return self.publisher.publish(
            title=result.title or article.title,
            content=result.content or original_content,
            references=references,
        )
