import asyncio
import json
import re

import pytest

from pipeline.errors import ConfigurationError, PipelineError, TransportError
from services import pipeline_service
from services.articles_service import ArticleNotFound

from conftest import BASE_URL, SERPAPI_URL, FakeWeb, article_page, card_html, listing_html

PAGE_1 = f"{BASE_URL}page/1/"
PAGE_2 = f"{BASE_URL}page/2/"


class FakeBackend:
    model = "fake-model"

    def __init__(self, reply: str):
        self.reply = reply
        self.prompts = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.reply


def _listing_site():
    newest = [card_html(f"New {i}", f"{BASE_URL}new-{i}/", date=f"2023-0{i}-01") for i in range(1, 5)]
    oldest = [card_html(f"Old {i}", f"{BASE_URL}old-{i}/", date=f"2022-0{i}-01") for i in range(1, 4)]
    return {
        BASE_URL: listing_html(newest, last_page=2),
        PAGE_2: listing_html(oldest, last_page=2),
        PAGE_1: listing_html(newest, last_page=2),
    }


class TestScrapeAndStore:
    def test_upserts_the_oldest_batch(self, store, settings):
        web = FakeWeb(_listing_site())

        saved = asyncio.run(pipeline_service.scrape_and_store(store, settings, transport=web.transport))

        assert [a.title for a in saved] == ["Old 1", "Old 2", "Old 3", "New 1", "New 2"]
        assert all(a.source == "beyondchats" for a in saved)
        assert len(store.list_articles()) == 5

    def test_rescraping_does_not_duplicate(self, store, settings):
        web = FakeWeb(_listing_site())

        asyncio.run(pipeline_service.scrape_and_store(store, settings, transport=web.transport))
        asyncio.run(pipeline_service.scrape_and_store(store, settings, transport=web.transport))

        assert len(store.list_articles()) == 5

    def test_failed_crawl_stores_nothing(self, store, settings):
        site = _listing_site()
        site[PAGE_1] = 502
        web = FakeWeb(site)

        with pytest.raises(TransportError):
            asyncio.run(pipeline_service.scrape_and_store(store, settings, limit=6, transport=web.transport))

        assert store.list_articles() == []


class TestGenerateRefreshedArticle:
    def _seed(self, store):
        older = store.create({"title": "Oldest post", "url": f"{BASE_URL}oldest/", "publishedAt": "2021-01-01T00:00:00Z"})
        store.create({"title": "Newer post", "url": f"{BASE_URL}newer/", "publishedAt": "2023-01-01T00:00:00Z"})
        return older

    def _web(self):
        return FakeWeb({
            f"{BASE_URL}oldest/": article_page("Oldest body."),
            f"{BASE_URL}newer/": article_page("Newer body."),
            SERPAPI_URL: {"organic_results": [
                {"title": "X", "link": "https://x.example/blog/x"},
                {"title": "Y", "link": "https://y.example/posts/y"},
            ]},
            "https://x.example/blog/x": article_page("X body."),
            "https://y.example/posts/y": article_page("Y body."),
        })

    def test_refreshes_the_oldest_article(self, store, settings):
        self._seed(store)
        web = self._web()
        backend = FakeBackend(json.dumps({"title": "Oldest post, refreshed", "content": "<p>Fresh</p>"}))

        published = asyncio.run(pipeline_service.generate_refreshed_article(
            store, settings, transport=web.transport, backend=backend,
        ))

        assert web.requested[0] == f"{BASE_URL}oldest/"
        assert re.fullmatch(r"generated://oldest-post-refreshed-\d+", published.url)
        assert published.source == "generated"
        assert store.get_by_id(published.id) == published
        search = next(r for r in web.requests if "serpapi" in r.url.host)
        assert search.url.params["q"] == "Oldest post"

    def test_explicit_article_id(self, store, settings):
        self._seed(store)
        newer = next(a for a in store.list_articles() if a.title == "Newer post")
        web = self._web()
        backend = FakeBackend(json.dumps({"title": "T", "content": "C"}))

        asyncio.run(pipeline_service.generate_refreshed_article(
            store, settings, article_id=newer.id, transport=web.transport, backend=backend,
        ))

        assert web.requested[0] == f"{BASE_URL}newer/"

    def test_unknown_article_id(self, store, settings):
        self._seed(store)

        with pytest.raises(ArticleNotFound):
            asyncio.run(pipeline_service.generate_refreshed_article(
                store, settings, article_id="missing", transport=FakeWeb().transport, backend=FakeBackend("{}"),
            ))

    def test_empty_store(self, store, settings):
        with pytest.raises(PipelineError, match="No articles found"):
            asyncio.run(pipeline_service.generate_refreshed_article(
                store, settings, transport=FakeWeb().transport, backend=FakeBackend("{}"),
            ))

    def test_missing_search_key_fails_before_any_request(self, store, settings):
        self._seed(store)
        settings = settings.model_copy(update={"serpapi_key": None})
        web = self._web()

        with pytest.raises(ConfigurationError):
            asyncio.run(pipeline_service.generate_refreshed_article(
                store, settings, transport=web.transport, backend=FakeBackend("{}"),
            ))
        assert web.requests == []

    def test_missing_completion_key_fails_before_any_request(self, store, settings):
        self._seed(store)
        settings = settings.model_copy(update={"openai_api_key": None})
        web = self._web()

        with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
            asyncio.run(pipeline_service.generate_refreshed_article(store, settings, transport=web.transport))
        assert web.requests == []
