from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Protocol

if TYPE_CHECKING:
    from services.articles_service import Article


class ArticleStore(Protocol):
    """Persistence the pipeline writes to. ``url`` is the natural key."""

    def list_articles(self) -> List["Article"]:
        """All articles ordered by (published_at, created_at)."""

    def create(self, payload: dict) -> "Article":
        ...

    def upsert_by_url(self, url: str, fields: dict) -> "Article":
        """Insert or replace the article keyed by ``url``."""

    def get_by_id(self, article_id: str) -> Optional["Article"]:
        ...

    def update_by_id(self, article_id: str, fields: dict) -> Optional["Article"]:
        ...

    def delete_by_id(self, article_id: str) -> bool:
        ...
