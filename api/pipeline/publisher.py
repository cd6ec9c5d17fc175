from __future__ import annotations

import html
import logging
import re
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Sequence

from .store import ArticleStore
from .types import ReferenceLink

if TYPE_CHECKING:
    from services.articles_service import Article

logger = logging.getLogger(__name__)

GENERATED_SCHEME = "generated://"
GENERATED_SOURCE = "generated"
GENERATED_AUTHOR = "auto"
SLUG_MAX_LENGTH = 80

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_last_stamp_ms = 0


def slugify(value: str, max_length: int = SLUG_MAX_LENGTH) -> str:
    slug = _NON_ALNUM.sub("-", value.lower()).strip("-")
    return slug[:max_length].strip("-")


def _unique_millis() -> int:
    # Strictly increasing within the process so two publishes never share a URL
    global _last_stamp_ms
    now = int(time.time() * 1000)
    if now <= _last_stamp_ms:
        now = _last_stamp_ms + 1
    _last_stamp_ms = now
    return now


def generated_url(title: str) -> str:
    return f"{GENERATED_SCHEME}{slugify(title) or 'article'}-{_unique_millis()}"


def render_references(references: Sequence[ReferenceLink]) -> str:
    items = "".join(
        f'<li><a href="{html.escape(ref.url, quote=True)}" target="_blank" '
        f'rel="noopener noreferrer">{html.escape(ref.title)}</a></li>'
        for ref in references
    )
    return f"\n\n<h3>References</h3>\n<ul>{items}</ul>"


class Publisher:
    def __init__(self, store: ArticleStore):
        self.store = store

    def publish(self, title: str, content: str, references: Sequence[ReferenceLink]) -> "Article":
        """Store a generated article under a fresh ``generated://`` URL."""
        url = generated_url(title)
        fields = {
            "title": title,
            "url": url,
            "content": content + render_references(references),
            "references": [ref.to_dict() for ref in references],
            "source": GENERATED_SOURCE,
            "author": GENERATED_AUTHOR,
            "published_at": datetime.now(timezone.utc),
        }
        article = self.store.upsert_by_url(url, fields)
        logger.info("Published generated article %s (%s)", article.id, url)
        return article
