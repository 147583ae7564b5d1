from typing import List
from sqlalchemy.orm import Session

from ..models.category import Category


class CategoryRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_all_names(self) -> List[str]:
        return [name for (name,) in self.session.query(Category.name).order_by(Category.id).all()]

    def seed_defaults(self, names: List[str]) -> int:
        """Insert the default categories when the table is still empty. Returns the number inserted."""
        if self.session.query(Category.id).first() is not None:
            return 0

        for name in names:
            if not name or not name.strip():
                raise ValueError("Category name cannot be null or empty.")
            self.session.add(Category(name=name.strip()))

        self.session.commit()
        return len(names)
