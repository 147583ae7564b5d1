import uuid
from sqlalchemy import Column, String, DateTime, Boolean
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..core.database import Base
from .category import user_categories

def generate_uuid():
    return str(uuid.uuid4())

class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True, default=generate_uuid)
    user_name = Column(String(100), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=True, index=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)

    # Deletion request: timestamp is only set while the request is pending
    is_pending_deletion = Column(Boolean, nullable=False, default=False)
    deletion_requested_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    categories = relationship("Category", secondary=user_categories, lazy="selectin")

    def __repr__(self):
        return f"<User(id={self.id}, user_name='{self.user_name}')>"
