"""
Content-ingestion pipeline

Backward listing crawl, reference discovery, main-content extraction,
model rewrite and publication of refreshed articles.
"""

from .errors import (
    ConfigurationError,
    ExtractionEmpty,
    InsufficientReferences,
    PipelineError,
    TransportError,
)
from .types import ArticleSummary, PageInfo, ReferenceLink, RewriteResult

__all__ = [
    "ArticleSummary",
    "ConfigurationError",
    "ExtractionEmpty",
    "InsufficientReferences",
    "PageInfo",
    "PipelineError",
    "ReferenceLink",
    "RewriteResult",
    "TransportError",
]
