from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session

from ..models.user import User
from ..models.category import Category


class UserRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_all_users(self) -> List[User]:
        return self.session.query(User).order_by(User.created_at).all()

    def find_by_id(self, user_id: str) -> Optional[User]:
        return self.session.query(User).filter(User.id == user_id).first()

    def create(self, user: User) -> User:
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def update(self, user: User) -> User:
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def delete(self, user: User) -> None:
        self.session.delete(user)
        self.session.commit()

    def get_pending_deletion_users(self) -> List[User]:
        """Users with an open deletion request"""
        return (
            self.session.query(User)
            .filter(
                User.is_pending_deletion == True,
                User.deletion_requested_at.isnot(None)
            )
            .all()
        )

    def get_preferred_category_names(self, user_id: str) -> List[str]:
        user = self.find_by_id(user_id)
        if user is None:
            raise ValueError(f"User {user_id} not found")
        return [category.name for category in user.categories]

    def set_preferred_categories(self, user: User, category_names: List[str]) -> User:
        """
        Replace the user's preferred categories.

        Raises:
            ValueError: If any of the names is not a known category
        """
        unique_names = list(dict.fromkeys(category_names))
        categories = self.session.query(Category).filter(Category.name.in_(unique_names)).all()

        if len(categories) != len(unique_names):
            known = {category.name for category in categories}
            unknown = [name for name in unique_names if name not in known]
            raise ValueError(f"Unknown category names: {', '.join(unknown)}")

        user.categories = categories
        return self.update(user)

    def request_deletion(self, user: User, requested_at: datetime) -> User:
        user.is_pending_deletion = True
        user.deletion_requested_at = requested_at
        return self.update(user)

    def cancel_deletion(self, user: User) -> User:
        user.is_pending_deletion = False
        user.deletion_requested_at = None
        return self.update(user)
