from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Query, Response

from src.api.dependencies import get_category_repository, get_current_user, get_news_service
from src.models.user import User
from src.news.schemas.articles import Article
from src.news.schemas.responses import CategoriesResponse
from src.news.services.news_service import NewsService
from src.repositories.category_repository import CategoryRepository

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/categories", response_model=CategoriesResponse)
async def get_categories(
    news_service: NewsService = Depends(get_news_service),
    categories: CategoryRepository = Depends(get_category_repository)
):
    """All known categories; the defaults are seeded on first use"""
    return CategoriesResponse(categories=news_service.get_categories(categories))


@router.get("/category/{topic}", response_model=List[Article])
async def get_news_by_category(
    topic: str,
    language: str = Query("en", description="Article language"),
    country: str = Query("us", description="Primary country of the search"),
    news_service: NewsService = Depends(get_news_service),
    current_user: User = Depends(get_current_user)
):
    """Live articles for a category. Upstream outages yield an empty list."""
    return await news_service.get_news_by_category(topic, language, country)


@router.get("/all", response_model=List[Article])
async def get_all_news(
    categories: List[str] = Query(default=[], description="Topics kept on a paginated page"),
    page_number: int = Query(0, ge=0, description="1-based page; 0 returns the whole balanced corpus"),
    page_size: Optional[int] = Query(None, ge=1, le=100, description="Page length"),
    news_service: NewsService = Depends(get_news_service),
    current_user: User = Depends(get_current_user)
):
    """Balanced corpus articles"""
    return await news_service.get_all_news(categories, page_number, page_size)


@router.get("/{article_id}", response_model=Article)
async def get_news_by_id(
    article_id: str,
    news_service: NewsService = Depends(get_news_service),
    current_user: User = Depends(get_current_user)
):
    article = await news_service.get_news_by_id(current_user.id, article_id)
    if article is None:
        return Response(status_code=204)
    return article
