from __future__ import annotations

import logging
import re
from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from .types import PageInfo

logger = logging.getLogger(__name__)

PAGINATION_SELECTOR = ".page-numbers"
_PAGE_SEGMENT = re.compile(r"/page/(\d+)")


def page_url(base_url: str, page: int) -> str:
    """Listing URL for ``page`` under ``base_url`` (``<base>/page/<n>/``)."""
    if not base_url.endswith("/"):
        base_url += "/"
    return f"{base_url}page/{page}/"


def _page_number(label: str, href: Optional[str]) -> Optional[int]:
    label = label.strip()
    if label.isdigit():
        return int(label)
    if href:
        match = _PAGE_SEGMENT.search(href)
        if match:
            return int(match.group(1))
    return None


def extract_last_page_info(html: str, base_url: str) -> PageInfo:
    """
    Find the highest page number among the pagination controls of a listing.

    A numeric label wins; otherwise the ``/page/<n>/`` segment of the link is
    used (covers "Next »" style controls). Controls without a link get a
    synthesized URL. A listing with no controls is its own last page.
    """
    soup = BeautifulSoup(html, "html.parser")
    info = PageInfo(last_page_url=base_url, last_page_number=1)

    for element in soup.select(PAGINATION_SELECTOR):
        href = element.get("href")
        number = _page_number(element.get_text(), href)
        if number is None or number < info.last_page_number:
            continue

        info.last_page_number = number
        info.last_page_url = urljoin(base_url, href) if href else page_url(base_url, number)

    logger.debug("Last listing page: %s (%s)", info.last_page_number, info.last_page_url)
    return info
