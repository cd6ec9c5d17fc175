"""
Main-content extraction

Paragraph text from the most specific content container present, falling back
to the whole body. Output is hard-capped to keep downstream prompts bounded.
"""

from __future__ import annotations

import logging
from typing import Sequence

from bs4 import BeautifulSoup

from .utils import normalize_text

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHARS = 4000
NOISE_TAGS = ["script", "style", "noscript", "iframe"]
CONTENT_CANDIDATES: Sequence[str] = ("article", "main", ".post-content", ".entry-content", "body")


def extract_main_content(
    html: str,
    max_chars: int = DEFAULT_MAX_CHARS,
    candidates: Sequence[str] = CONTENT_CANDIDATES,
) -> str:
    soup = BeautifulSoup(html, "html.parser")

    for tag in soup(NOISE_TAGS):
        tag.decompose()

    text = ""
    for selector in candidates:
        container = soup.select_one(selector)
        if container is None:
            continue

        paragraphs = [normalize_text(p.get_text()) for p in container.find_all("p")]
        paragraphs = [p for p in paragraphs if p]
        if paragraphs:
            logger.debug("Extracted %d paragraphs from %r", len(paragraphs), selector)
            text = "\n\n".join(paragraphs)
            break

    if not text:
        body = soup.body or soup
        text = normalize_text(body.get_text(" "))

    return text[:max_chars]
