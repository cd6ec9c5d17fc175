from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Response, status
from pydantic import BaseModel, Field

from config import Settings
from dependencies import get_app_settings, get_article_store
from pipeline.store import ArticleStore
from services import pipeline_service
from services.articles_service import Article, ArticleIn, ArticleUpdate

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/articles", tags=["articles"])


class ScrapeResponse(BaseModel):
    count: int
    articles: List[Article]


class GenerateRequest(BaseModel):
    article_id: Optional[str] = Field(default=None, alias="articleId")


@router.get("", response_model=List[Article])
async def list_articles(store: ArticleStore = Depends(get_article_store)):
    """Lists all articles, oldest first."""
    return store.list_articles()


@router.post("", response_model=Article, status_code=201)
async def create_article(payload: ArticleIn, store: ArticleStore = Depends(get_article_store)):
    return store.create(payload.model_dump())


@router.post("/scrape", response_model=ScrapeResponse)
async def scrape_articles(
    store: ArticleStore = Depends(get_article_store),
    settings: Settings = Depends(get_app_settings),
):
    """Crawls the oldest blog articles and upserts them by url."""
    logger.info("/api/articles/scrape request: batch=%s", settings.scrape_batch_size)
    saved = await pipeline_service.scrape_and_store(store, settings)
    return ScrapeResponse(count=len(saved), articles=saved)


@router.post("/generate", response_model=Article, status_code=201)
async def generate_article(
    payload: Optional[GenerateRequest] = Body(default=None),
    store: ArticleStore = Depends(get_article_store),
    settings: Settings = Depends(get_app_settings),
):
    """Publishes a refreshed version of the oldest (or the given) article."""
    article_id = payload.article_id if payload else None
    logger.info("/api/articles/generate request: article_id=%s", article_id)
    return await pipeline_service.generate_refreshed_article(store, settings, article_id=article_id)


@router.get("/{article_id}", response_model=Article)
async def get_article(article_id: str, store: ArticleStore = Depends(get_article_store)):
    article = store.get_by_id(article_id)
    if not article:
        raise HTTPException(status_code=404, detail="Article not found")
    return article


@router.put("/{article_id}", response_model=Article)
async def update_article(
    article_id: str,
    payload: ArticleUpdate,
    store: ArticleStore = Depends(get_article_store),
):
    article = store.update_by_id(article_id, payload.model_dump(exclude_unset=True))
    if not article:
        raise HTTPException(status_code=404, detail="Article not found")
    return article


@router.delete("/{article_id}", status_code=204)
async def delete_article(article_id: str, store: ArticleStore = Depends(get_article_store)):
    if not store.delete_by_id(article_id):
        raise HTTPException(status_code=404, detail="Article not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
