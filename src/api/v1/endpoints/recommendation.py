from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from src.api.dependencies import get_container, get_current_user
from src.core.container import ServiceContainer
from src.exceptions import ExternalServiceError
from src.models.user import User
from src.news.schemas.articles import Article
from src.news.schemas.requests import RecommendationRequest

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/getRecommendations", response_model=List[Article])
async def get_recommendations(
    request: RecommendationRequest,
    container: ServiceContainer = Depends(get_container),
    current_user: User = Depends(get_current_user)
):
    topics = [topic for topic in request.topics if topic and topic.strip()]
    if not topics:
        return JSONResponse(status_code=400, content={"error": "At least one topic is required"})

    try:
        return await container.recommendation_client.get_recommended_articles(topics, current_user.id)
    except ExternalServiceError as e:
        logger.error("recommendations_failed", user_id=current_user.id, error=str(e))
        return JSONResponse(status_code=500, content={"error": str(e)})


@router.post("/get-latest", response_model=List[Article])
async def get_latest_recommendations(
    page_number: int = Query(0, alias="pageNumber", description="1-based page; 0 returns everything"),
    page_size: Optional[int] = Query(None, alias="pageSize", ge=1, description="Page length"),
    container: ServiceContainer = Depends(get_container),
    current_user: User = Depends(get_current_user)
):
    """
    Cached recommendations for the caller. Paginated calls drop duplicate
    titles after slicing, so a page may be shorter than pageSize.
    """
    try:
        return await container.recommendation_client.get_latest_recommendations(
            current_user.id, page_number, page_size
        )
    except ExternalServiceError as e:
        logger.error("latest_recommendations_failed", user_id=current_user.id, error=str(e))
        return JSONResponse(status_code=500, content={"error": str(e)})
