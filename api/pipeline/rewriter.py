"""
Rewrite Engine

Builds the restyle prompt from the original post and its references, runs a
single completion, and parses the structured reply. Unstructured replies are
not an error: the raw text becomes the content under the original title.
"""

from __future__ import annotations

import json
import logging
from typing import Optional, Sequence

from .llm_factory import CompletionBackend
from .types import ReferenceLink, RewriteResult

logger = logging.getLogger(__name__)


def build_rewrite_prompt(
    title: str,
    original_content: str,
    references: Sequence[ReferenceLink],
) -> str:
    reference_summaries = "\n\n".join(
        f"Reference {index}: {ref.title}\n{ref.content or ''}"
        for index, ref in enumerate(references, 1)
    )

    return f"""You are rewriting a blog post.

Original title: {title}

Original content:
{original_content}

Reference articles:
{reference_summaries}

Rewrite the original article so that its formatting and content style is similar to the reference articles, while preserving the core topic. Return JSON with keys "title" and "content". The content should be in HTML with headings and paragraphs."""


def _strip_code_fence(text: str) -> str:
    # Models often wrap JSON in ```json ... ``` blocks
    if not text.startswith("```"):
        return text
    lines = [line for line in text.split("\n") if not line.strip().startswith("```")]
    return "\n".join(lines)


def parse_rewrite_response(raw: str, original_title: str) -> RewriteResult:
    """
    Parse a model reply into a RewriteResult. Never raises.

    Both ``title`` and ``content`` must be non-empty strings; anything else
    degrades to ``(original_title, raw)``.
    """
    raw = raw or ""
    try:
        data = json.loads(_strip_code_fence(raw.strip()))
    except (json.JSONDecodeError, ValueError, RecursionError) as exc:
        logger.warning(f"⚠️ Model reply is not JSON, using raw text: {exc}")
        return RewriteResult(title=original_title, content=raw, degraded=True)

    title: Optional[str] = data.get("title") if isinstance(data, dict) else None
    content: Optional[str] = data.get("content") if isinstance(data, dict) else None
    if not isinstance(title, str) or not isinstance(content, str) or not title.strip() or not content.strip():
        logger.warning("⚠️ Model reply lacks title/content, using raw text")
        return RewriteResult(title=original_title, content=raw, degraded=True)

    return RewriteResult(title=title.strip(), content=content)


class RewriteEngine:
    def __init__(self, backend: CompletionBackend):
        self.backend = backend

    async def rewrite(
        self,
        title: str,
        original_content: str,
        references: Sequence[ReferenceLink],
    ) -> RewriteResult:
        prompt = build_rewrite_prompt(title, original_content, references)
        logger.info(f"Rewriting '{title}' with {len(references)} references ({len(prompt)} chars prompt)")

        raw = await self.backend.complete(prompt)
        result = parse_rewrite_response(raw, title)
        logger.info(f"✅ Rewrite done: '{result.title}' (degraded={result.degraded})")
        return result
