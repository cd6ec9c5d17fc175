#!/usr/bin/env python3
"""
One-shot generation run.

Refreshes the oldest stored article (or the one given with --article-id)
and publishes the rewrite. Exits non-zero when the run fails.
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from dotenv import load_dotenv

from config import get_settings
from pipeline.errors import PipelineError
from pipeline.store import ArticleStore
from pipeline.types import GenerationOutcome
from services.articles_service import ArticleNotFound, ArticleValidationError, SnowflakeArticleStore
from services.db import SnowflakeConnectionError
from services.pipeline_service import generate_refreshed_article

logger = logging.getLogger(__name__)


async def run(store: ArticleStore, article_id: Optional[str] = None) -> GenerationOutcome:
    """Run the generation pipeline and report the outcome instead of raising."""
    settings = get_settings()
    try:
        published = await generate_refreshed_article(store, settings, article_id=article_id)
    except PipelineError as e:
        return GenerationOutcome(ok=False, error=e.message)
    except (ArticleNotFound, ArticleValidationError, SnowflakeConnectionError) as e:
        return GenerationOutcome(ok=False, error=str(e))

    return GenerationOutcome(
        ok=True,
        article_id=published.id,
        url=published.url,
        references=[ref.model_dump() for ref in published.references],
    )


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Publish a refreshed version of a stored article.")
    parser.add_argument("--article-id", default=None, help="Article to refresh (default: the oldest)")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    load_dotenv(".env.local")
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = parse_args(argv)

    # Without a bound connection every store call opens and closes its own
    outcome = asyncio.run(run(SnowflakeArticleStore(None), article_id=args.article_id))
    if not outcome.ok:
        logger.error(f"❌ Generation failed: {outcome.error}")
        return 1

    logger.info(f"✅ Published generated article: {outcome.article_id} ({outcome.url})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
