"""Shared fixtures: settings, an in-memory article store, listing HTML builders
and a recording httpx mock transport."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Union

import httpx
import pytest
from pydantic import ValidationError

from config import Settings
from services.articles_service import (
    Article,
    ArticleConflict,
    ArticleIn,
    ArticleUpdate,
    ArticleValidationError,
)

BASE_URL = "https://blog.test/blogs/"
SERPAPI_URL = "https://serpapi.com/search.json"

_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


class InMemoryArticleStore:
    """ArticleStore kept in a dict, with the same ordering and url uniqueness
    rules as the Snowflake store."""

    def __init__(self) -> None:
        self.articles: Dict[str, Article] = {}

    def _by_url(self, url: str) -> Optional[Article]:
        return next((a for a in self.articles.values() if a.url == url), None)

    def list_articles(self) -> List[Article]:
        return sorted(
            self.articles.values(),
            key=lambda a: (a.published_at or _FAR_FUTURE, a.created_at or _FAR_FUTURE),
        )

    def create(self, payload: dict) -> Article:
        try:
            article_in = ArticleIn.model_validate(payload)
        except ValidationError as e:
            raise ArticleValidationError(str(e)) from e
        if self._by_url(article_in.url):
            raise ArticleConflict(f"Article with url {article_in.url} already exists")

        now = datetime.now(timezone.utc)
        article = Article(id=uuid.uuid4().hex, created_at=now, updated_at=now, **article_in.model_dump())
        self.articles[article.id] = article
        return article

    def upsert_by_url(self, url: str, fields: dict) -> Article:
        fields = {k: v for k, v in fields.items() if v is not None}
        fields["url"] = url
        existing = self._by_url(url)
        if existing is None:
            if not fields.get("title"):
                raise ArticleValidationError("Article title is required")
            return self.create(fields)

        merged = {**existing.model_dump(), **fields, "updated_at": datetime.now(timezone.utc)}
        self.articles[existing.id] = Article.model_validate(merged)
        return self.articles[existing.id]

    def get_by_id(self, article_id: str) -> Optional[Article]:
        return self.articles.get(article_id)

    def update_by_id(self, article_id: str, fields: dict) -> Optional[Article]:
        article = self.articles.get(article_id)
        if article is None:
            return None
        changes = ArticleUpdate.model_validate(fields).model_dump(exclude_unset=True)
        other = self._by_url(changes["url"]) if "url" in changes else None
        if other is not None and other.id != article_id:
            raise ArticleConflict(f"Article with url {changes['url']} already exists")
        merged = {**article.model_dump(), **changes}
        self.articles[article_id] = Article.model_validate(merged)
        return self.articles[article_id]

    def delete_by_id(self, article_id: str) -> bool:
        return self.articles.pop(article_id, None) is not None


Route = Union[str, dict, int, Exception]


class FakeWeb:
    """
    Routes keyed by ``scheme://host/path`` (query ignored). A str is served as
    HTML, a dict as JSON, an int as an empty response with that status and an
    exception instance is raised. Every request is recorded in order.
    """

    def __init__(self, routes: Optional[Dict[str, Route]] = None) -> None:
        self.routes: Dict[str, Route] = dict(routes or {})
        self.requests: List[httpx.Request] = []

    @staticmethod
    def key(request: httpx.Request) -> str:
        return f"{request.url.scheme}://{request.url.host}{request.url.path}"

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(self.key(request))
        if route is None:
            return httpx.Response(404, text="not found")
        if isinstance(route, Exception):
            raise route
        if isinstance(route, int):
            return httpx.Response(route)
        if isinstance(route, dict):
            return httpx.Response(200, json=route)
        return httpx.Response(200, text=route, headers={"content-type": "text/html"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def requested(self) -> List[str]:
        return [self.key(r) for r in self.requests]


def card_html(
    title: Optional[str],
    url: Optional[str],
    date: Optional[str] = None,
    author: Optional[str] = None,
    excerpt: Optional[str] = None,
) -> str:
    link = f'<a href="{url}">{title}</a>' if url is not None else (title or "")
    parts = [f'<article class="entry-card"><h2 class="entry-title">{link}</h2>']
    if author:
        parts.append(
            f'<ul class="meta-author"><li class="ct-meta-element-author"><span>{author}</span></li></ul>'
        )
    if date:
        parts.append(f'<time class="ct-meta-element-date" datetime="{date}">{date[:10]}</time>')
    if excerpt:
        parts.append(f'<div class="entry-excerpt"><p>{excerpt}</p></div>')
    parts.append("</article>")
    return "".join(parts)


def listing_html(cards: List[str], last_page: Optional[int] = None, base_url: str = BASE_URL) -> str:
    nav = ""
    if last_page:
        links = "".join(
            f'<a class="page-numbers" href="{base_url}page/{n}/">{n}</a>' for n in range(2, last_page + 1)
        )
        nav = f'<nav><span class="page-numbers current">1</span>{links}</nav>'
    return f"<html><body><main>{''.join(cards)}</main>{nav}</body></html>"


def article_page(*paragraphs: str) -> str:
    body = "".join(f"<p>{p}</p>" for p in paragraphs)
    return (
        "<html><head><script>var tracking = 1;</script></head>"
        f"<body><nav><p>Menu</p></nav><article>{body}</article></body></html>"
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        blog_base_url=BASE_URL,
        blog_domain="blog.test",
        SEARCH_PROVIDER="serpapi",
        SERPAPI_KEY="serp-test-key",
        serpapi_endpoint=SERPAPI_URL,
        COMPLETION_PROVIDER="openai",
        OPENAI_API_KEY="sk-test",
        EXTRA_CA_CERTS_PATH=None,
        reference_count=2,
        scrape_batch_size=5,
        content_max_chars=4000,
    )


@pytest.fixture
def store() -> InMemoryArticleStore:
    return InMemoryArticleStore()
