from datetime import datetime, timezone
from typing import Any, Dict, List

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from sqlalchemy import text

from ...dependencies import get_db
from ....config import get_settings
from ....news.schemas.responses import JobStatusResponse

logger = structlog.get_logger(__name__)
settings = get_settings()

router = APIRouter()


def _job_status(request: Request) -> List[Dict[str, Any]]:
    container = getattr(request.app.state, "container", None)
    if container is None or container.scheduler is None:
        return []
    return container.scheduler.get_status()


@router.get("/health")
async def health_check(
    request: Request,
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("Database health check failed", error=str(e))
        raise HTTPException(
            status_code=503,
            detail={
                "status": "unhealthy",
                "database": "unhealthy",
                "error": "Database connectivity failed",
                "timestamp": datetime.now(timezone.utc).isoformat()
            }
        )

    container = getattr(request.app.state, "container", None)
    return {
        "status": "healthy",
        "service": "News Aggregator API",
        "version": "0.1.0",
        "environment": "development" if settings.debug else "production",
        "database": "healthy",
        "category_cache": container.category_cache.get_cache_stats() if container else None,
        "jobs": _job_status(request),
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/health/jobs", response_model=List[JobStatusResponse])
async def jobs_status(request: Request):
    return _job_status(request)
