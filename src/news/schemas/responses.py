"""Response schemas for notifications, deletion requests and job status"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator


class NotificationDto(BaseModel):
    """Notification payload persisted per user and rendered into the notification email"""
    user_id: str
    article_id: str = "No Id available"
    article_title: str = "No title available"
    article_url: str = "No url available"
    article_description: str = "No excerpt available"
    category: str = "No topic available"
    created_at: datetime

    @field_validator("article_id", "article_title", "article_url", "article_description", "category", mode="before")
    @classmethod
    def fill_missing(cls, value, info):
        # Stored rows may hold NULL or empty strings for these columns
        if value is None or value == "":
            return cls.model_fields[info.field_name].default
        return value

    class Config:
        from_attributes = True


class DeletionRequestResponse(BaseModel):
    user_id: str
    is_pending_deletion: bool
    deletion_requested_at: Optional[datetime] = None
    message: str


class JobStatusResponse(BaseModel):
    name: str
    interval_seconds: float
    state: str
    last_run_at: Optional[datetime] = None
    last_error: Optional[str] = None
    run_count: int = 0


class CategoriesResponse(BaseModel):
    categories: list[str] = Field(default_factory=list)


class LoginResponse(BaseModel):
    user_id: str
    is_deletion_cancelled: bool = False
    message: str
