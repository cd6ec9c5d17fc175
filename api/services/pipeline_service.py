"""
Wires pipeline components from Settings and runs the two batch pipelines
(listing refresh and single-article generation) against an article store.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import httpx

from config import Settings
from pipeline.crawler import BackwardCrawler
from pipeline.errors import PipelineError
from pipeline.fetcher import HttpFetcher, build_ssl_context
from pipeline.generator import ArticleGenerator
from pipeline.llm_factory import CompletionBackend, get_completion_backend
from pipeline.publisher import Publisher
from pipeline.rewriter import RewriteEngine
from pipeline.search import ReferenceFinder, get_search_provider
from pipeline.store import ArticleStore
from services.articles_service import Article, ArticleNotFound

logger = logging.getLogger(__name__)


def build_crawler(settings: Settings, fetcher: HttpFetcher) -> BackwardCrawler:
    return BackwardCrawler(fetcher, settings.blog_base_url)


def build_generator(
    settings: Settings,
    fetcher: HttpFetcher,
    store: ArticleStore,
    backend: CompletionBackend,
) -> ArticleGenerator:
    """Assemble the generation pipeline. Raises ConfigurationError for a bad search setup."""
    finder = ReferenceFinder(
        get_search_provider(settings, fetcher),
        exclude_domain=settings.blog_domain,
        count=settings.reference_count,
        article_path_tokens=settings.article_path_tokens,
    )
    return ArticleGenerator(
        fetcher=fetcher,
        reference_finder=finder,
        rewrite_engine=RewriteEngine(backend),
        publisher=Publisher(store),
        max_chars=settings.content_max_chars,
    )


async def scrape_and_store(
    store: ArticleStore,
    settings: Settings,
    limit: Optional[int] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[Article]:
    """
    Crawl the oldest articles and upsert each by url.

    The crawl completes before the first write, so a failed crawl stores nothing.
    """
    limit = limit or settings.scrape_batch_size
    async with HttpFetcher.from_settings(settings, transport=transport) as fetcher:
        summaries = await build_crawler(settings, fetcher).collect_oldest(limit)

    saved = [store.upsert_by_url(summary.url, summary.to_fields()) for summary in summaries]
    logger.info("Upserted %d scraped articles", len(saved))
    return saved


def _pick_article(store: ArticleStore, article_id: Optional[str]) -> Article:
    if article_id:
        article = store.get_by_id(article_id)
        if article is None:
            raise ArticleNotFound("Article not found")
        return article

    articles = store.list_articles()
    if not articles:
        raise PipelineError("No articles found. Run the scrape endpoint first.")
    return articles[0]


async def generate_refreshed_article(
    store: ArticleStore,
    settings: Settings,
    article_id: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    backend: Optional[CompletionBackend] = None,
) -> Article:
    """
    Rewrite one stored article (the oldest, unless ``article_id`` is given)
    against external references and publish the result.
    """
    ssl_context = build_ssl_context(settings.extra_ca_certs_path)
    async with httpx.AsyncClient(verify=ssl_context, timeout=settings.http_timeout_seconds) as llm_client:
        # Configuration is validated here, before any request goes out
        backend = backend or get_completion_backend(settings, http_async_client=llm_client)
        async with HttpFetcher(
            user_agent=settings.user_agent,
            timeout=settings.http_timeout_seconds,
            verify=ssl_context,
            transport=transport,
        ) as fetcher:
            generator = build_generator(settings, fetcher, store, backend)
            article = _pick_article(store, article_id)
            return await generator.generate(article)
