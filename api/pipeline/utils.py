from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_text(value: Optional[str]) -> str:
    """Collapse whitespace runs to a single space and trim."""
    if not value:
        return ""
    return _WHITESPACE.sub(" ", value).strip()


def parse_published_date(value: Optional[str]) -> Optional[datetime]:
    """Parse a listing timestamp into an aware UTC datetime.

    Accepts ISO 8601 (the machine-readable ``datetime`` attribute) and the
    visible "March 5, 2024" style labels. Returns None for anything else so
    callers never default an unparseable date to "now".
    """
    text = normalize_text(value)
    if not text:
        return None

    parsed: Optional[datetime] = None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        for fmt in ("%B %d, %Y", "%b %d, %Y", "%d %B %Y", "%d %b %Y", "%Y/%m/%d"):
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        logger.debug("Dropping unparseable date: %r", text)
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def is_http_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme.lower() in ("http", "https") and bool(parsed.netloc)


def belongs_to_domain(url: str, domain: str) -> bool:
    """True when the URL's host is ``domain`` or one of its subdomains."""
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return False
    domain = domain.lower().lstrip(".")
    return host == domain or host.endswith("." + domain)
