from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from ..core.container import ServiceContainer
from ..core.database import get_db
from ..core.exceptions import AuthenticationRequiredError
from ..models.user import User
from ..news.services.news_service import NewsService
from ..repositories.category_repository import CategoryRepository
from ..repositories.notification_repository import NotificationRepository
from ..repositories.user_repository import UserRepository

__all__ = [
    "get_db",
    "get_container",
    "get_news_service",
    "get_user_repository",
    "get_category_repository",
    "get_notification_repository",
    "get_current_user",
]


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_news_service(container: ServiceContainer = Depends(get_container)) -> NewsService:
    return container.news_service


def get_user_repository(db: Session = Depends(get_db)) -> UserRepository:
    return UserRepository(db)


def get_category_repository(db: Session = Depends(get_db)) -> CategoryRepository:
    return CategoryRepository(db)


def get_notification_repository(db: Session = Depends(get_db)) -> NotificationRepository:
    return NotificationRepository(db)


async def get_current_user(
    x_user_id: Optional[str] = Header(default=None),
    users: UserRepository = Depends(get_user_repository)
) -> User:
    """
    Resolve the caller from the x-user-id header set by the identity gateway.
    Missing or unknown ids are rejected with 401.
    """
    if not x_user_id or not x_user_id.strip():
        raise AuthenticationRequiredError()

    user = users.find_by_id(x_user_id.strip())
    if user is None:
        raise AuthenticationRequiredError()
    return user
