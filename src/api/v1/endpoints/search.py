import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from src.api.dependencies import get_container, get_current_user
from src.core.container import ServiceContainer
from src.exceptions import ExternalServiceError
from src.models.user import User
from src.news.schemas.articles import SearchResponse
from src.news.schemas.requests import SearchRequest

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("", response_model=SearchResponse)
async def search_news(
    request: SearchRequest,
    container: ServiceContainer = Depends(get_container),
    current_user: User = Depends(get_current_user)
):
    try:
        return await container.search_client.search(request.query)
    except ExternalServiceError as e:
        logger.error("search_failed", query=request.query, error=str(e))
        return JSONResponse(status_code=500, content={"error": str(e)})
