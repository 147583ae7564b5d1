from typing import List
from sqlalchemy import desc
from sqlalchemy.orm import Session

from ..models.notification import Notification


class NotificationRepository:
    def __init__(self, session: Session):
        self.session = session

    def add(self, notification: Notification) -> Notification:
        self.session.add(notification)
        self.session.commit()
        self.session.refresh(notification)
        return notification

    def list_for_user(self, user_id: str, limit: int = 50, offset: int = 0) -> List[Notification]:
        return (
            self.session.query(Notification)
            .filter(Notification.user_id == user_id)
            .order_by(desc(Notification.created_at), desc(Notification.id))
            .offset(offset)
            .limit(limit)
            .all()
        )
