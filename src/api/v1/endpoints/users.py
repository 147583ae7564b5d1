from typing import List

import structlog
from fastapi import APIRouter, Depends, Query

from src.api.dependencies import (
    get_container,
    get_current_user,
    get_notification_repository,
    get_user_repository,
)
from src.core.container import ServiceContainer
from src.core.exceptions import AccountDeletedError, ValidationError
from src.models.user import User
from src.news.schemas.requests import PreferredCategoriesRequest
from src.news.schemas.responses import (
    CategoriesResponse,
    DeletionRequestResponse,
    LoginResponse,
    NotificationDto,
)
from src.repositories.notification_repository import NotificationRepository
from src.repositories.user_repository import UserRepository
from src.utils.datetime_utils import utcnow

logger = structlog.get_logger(__name__)

router = APIRouter()


def _deletion_response(user: User, message: str) -> DeletionRequestResponse:
    return DeletionRequestResponse(
        user_id=user.id,
        is_pending_deletion=user.is_pending_deletion,
        deletion_requested_at=user.deletion_requested_at,
        message=message
    )


@router.get("/me/categories", response_model=CategoriesResponse)
async def get_preferred_categories(
    current_user: User = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repository)
):
    return CategoriesResponse(categories=users.get_preferred_category_names(current_user.id))


@router.put("/me/categories", response_model=CategoriesResponse)
async def set_preferred_categories(
    request: PreferredCategoriesRequest,
    current_user: User = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repository)
):
    try:
        user = users.set_preferred_categories(current_user, [name.strip() for name in request.categories])
    except ValueError as e:
        raise ValidationError(str(e), error_code="UNKNOWN_CATEGORY") from e

    logger.info("preferred_categories_updated", user_id=user.id, count=len(user.categories))
    return CategoriesResponse(categories=[category.name for category in user.categories])


@router.get("/me/notifications", response_model=List[NotificationDto])
async def get_notifications(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    notifications: NotificationRepository = Depends(get_notification_repository)
):
    items = notifications.list_for_user(current_user.id, limit=limit, offset=offset)
    return [NotificationDto.model_validate(item) for item in items]


@router.post("/me/deletion-request", response_model=DeletionRequestResponse)
async def request_account_deletion(
    current_user: User = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repository),
    container: ServiceContainer = Depends(get_container)
):
    if current_user.is_pending_deletion:
        return _deletion_response(current_user, "Account deletion already requested.")

    user = users.request_deletion(current_user, utcnow())
    grace_days = container.deletion_service.grace_period.days
    logger.info("account_deletion_requested", user_id=user.id)
    return _deletion_response(
        user,
        f"Account deletion requested. Log in within {grace_days} days to cancel."
    )


@router.delete("/me/deletion-request", response_model=DeletionRequestResponse)
async def cancel_account_deletion(
    current_user: User = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repository)
):
    user = users.cancel_deletion(current_user)
    logger.info("account_deletion_cancelled", user_id=user.id)
    return _deletion_response(user, "Deletion request canceled.")


@router.post("/me/login", response_model=LoginResponse)
async def login(
    current_user: User = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repository),
    container: ServiceContainer = Depends(get_container)
):
    """Session start for an identified user; cancels a deletion request still inside its grace period"""
    resolution = container.deletion_service.resolve_pending_deletion(users, current_user)
    if not resolution.can_proceed:
        raise AccountDeletedError(current_user.id)

    message = "Login successful. Deletion request canceled." if resolution.cancelled else "Login successful."
    return LoginResponse(user_id=current_user.id, is_deletion_cancelled=resolution.cancelled, message=message)
