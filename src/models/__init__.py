from .category import Category, user_categories
from .user import User
from .notification import Notification

__all__ = ["Category", "User", "Notification", "user_categories"]
