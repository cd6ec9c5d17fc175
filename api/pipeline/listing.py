from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from .types import ArticleSummary
from .utils import normalize_text, parse_published_date

logger = logging.getLogger(__name__)

CARD_SELECTOR = ".entry-card"
TITLE_LINK_SELECTOR = "h2.entry-title a"
AUTHOR_SELECTOR = (
    ".meta-author .ct-meta-element-author span, "
    ".meta-author .ct-meta-element-author"
)
DATE_SELECTOR = "time.ct-meta-element-date"
EXCERPT_SELECTOR = ".entry-excerpt"


def _optional_text(card: Tag, selector: str) -> Optional[str]:
    element = card.select_one(selector)
    if element is None:
        return None
    return normalize_text(element.get_text()) or None


def _published_at(card: Tag):
    time_tag = card.select_one(DATE_SELECTOR)
    if time_tag is None:
        return None
    return parse_published_date(time_tag.get("datetime") or time_tag.get_text())


def parse_articles(html: str, base_url: Optional[str] = None) -> List[ArticleSummary]:
    """Parse the article cards of one listing page, in page order.

    Cards without a title or link are skipped.
    """
    soup = BeautifulSoup(html, "html.parser")
    articles: List[ArticleSummary] = []

    for card in soup.select(CARD_SELECTOR):
        link = card.select_one(TITLE_LINK_SELECTOR)
        title = normalize_text(link.get_text()) if link else ""
        href = (link.get("href") or "").strip() if link else ""
        if not title or not href:
            logger.debug("Skipping malformed card")
            continue

        articles.append(
            ArticleSummary(
                title=title,
                url=urljoin(base_url, href) if base_url else href,
                author=_optional_text(card, AUTHOR_SELECTOR),
                published_at=_published_at(card),
                excerpt=_optional_text(card, EXCERPT_SELECTOR),
            )
        )

    return articles
