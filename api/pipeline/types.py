from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class PageInfo:
    """Last page of a paginated listing."""
    last_page_url: str
    last_page_number: int = 1


@dataclass
class ArticleSummary:
    title: str
    url: str
    author: Optional[str] = None
    published_at: Optional[datetime] = None
    excerpt: Optional[str] = None

    def to_fields(self) -> dict:
        """Fields written to the store when the summary is upserted."""
        return {
            "title": self.title,
            "url": self.url,
            "author": self.author,
            "published_at": self.published_at,
            "excerpt": self.excerpt,
        }


@dataclass
class ReferenceLink:
    title: str
    url: str
    content: Optional[str] = None

    def enriched(self, content: str) -> "ReferenceLink":
        return ReferenceLink(title=self.title, url=self.url, content=content)

    def to_dict(self) -> dict:
        # Extracted content stays out of the persisted reference list
        return {"title": self.title, "url": self.url}


@dataclass
class RewriteResult:
    title: str
    content: str
    degraded: bool = False


@dataclass
class SearchResult:
    """Raw candidate returned by a search backend."""
    title: Optional[str]
    url: Optional[str]


@dataclass
class GenerationOutcome:
    """Result handed back to the caller of a generation run."""
    ok: bool
    article_id: Optional[str] = None
    url: Optional[str] = None
    error: Optional[str] = None
    references: List[dict] = field(default_factory=list)
