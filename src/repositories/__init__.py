from .user_repository import UserRepository
from .category_repository import CategoryRepository
from .notification_repository import NotificationRepository

__all__ = ["UserRepository", "CategoryRepository", "NotificationRepository"]
