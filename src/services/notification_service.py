"""
Notification Service
Picks one article per user per tick, stores it as a Notification and
emails it. A failure for one user is logged and the batch moves on.
"""

import asyncio
import functools
import logging
import random
from datetime import datetime
from typing import Callable, Dict, List, NamedTuple, Optional

from ..models.notification import Notification
from ..news.schemas.articles import Article
from ..news.schemas.responses import NotificationDto
from ..news.services.news_service import NewsService
from ..news.services.recommendation_merge import RecommendationMerge
from ..repositories.notification_repository import NotificationRepository
from ..repositories.user_repository import UserRepository
from ..utils.datetime_utils import utcnow
from .mail_service import Mailer

logger = logging.getLogger(__name__)


class Recipient(NamedTuple):
    user_id: str
    email: Optional[str]


def build_notification_dto(user_id: str, article: Article, created_at: datetime) -> NotificationDto:
    fields = {
        "article_id": article.id,
        "article_title": article.title,
        "article_url": article.link or article.domain_url,
        "article_description": article.description,
        "category": article.topic,
    }
    # Missing article fields fall back to the DTO's "No ... available" defaults
    return NotificationDto(
        user_id=user_id,
        created_at=created_at,
        **{name: value for name, value in fields.items() if value}
    )


class NotificationJob:
    """Article notification dispatch, run by the scheduler every few minutes"""

    def __init__(
        self,
        news_service: NewsService,
        merge: RecommendationMerge,
        mailer: Mailer,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.news_service = news_service
        self.merge = merge
        self.mailer = mailer
        self.rng = rng or random.Random()
        self.clock = clock

    async def _in_thread(self, func, *args):
        # Session work runs off the event loop, one call at a time
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args))

    async def run(self, users: UserRepository, notifications: NotificationRepository) -> Dict[str, int]:
        """
        Notify every known user once.

        Returns:
            Dict with users / sent / skipped / failed counts
        """
        stats = {"users": 0, "sent": 0, "skipped": 0, "failed": 0}

        recipients = await self._in_thread(self._load_recipients, users)
        stats["users"] = len(recipients)
        logger.info(f"Sending notifications to {len(recipients)} users")

        for recipient in recipients:
            try:
                sent = await self.notify_user(recipient, users, notifications)
                stats["sent" if sent else "skipped"] += 1
            except Exception as e:
                stats["failed"] += 1
                await self._in_thread(notifications.session.rollback)
                logger.error(f"Error sending notification to user {recipient.user_id}: {e}")

        logger.info(
            f"Finished sending notifications: {stats['sent']} sent, "
            f"{stats['skipped']} skipped, {stats['failed']} failed"
        )
        return stats

    @staticmethod
    def _load_recipients(users: UserRepository) -> List[Recipient]:
        return [Recipient(user.id, user.email) for user in users.get_all_users()]

    async def notify_user(
        self, recipient: Recipient, users: UserRepository, notifications: NotificationRepository
    ) -> bool:
        """Returns False when there is nothing to send to this user."""
        categories = await self._in_thread(users.get_preferred_category_names, recipient.user_id)
        if not categories:
            logger.info(f"User {recipient.user_id} has no preferred categories, skipping")
            return False

        article = await self.pick_article(recipient.user_id, categories)
        if article is None:
            logger.info(f"No article available for user {recipient.user_id}")
            return False

        dto = build_notification_dto(recipient.user_id, article, self.clock())
        await self._in_thread(notifications.add, Notification(**dto.model_dump()))
        await self.mailer.send_notification_email(dto, recipient.email)

        logger.info(f"Notification sent at {dto.created_at} to user {recipient.user_id}")
        return True

    async def pick_article(self, user_id: str, categories: List[str]) -> Optional[Article]:
        candidates = await self.news_service.get_articles_by_categories(categories)
        if not candidates:
            candidates = await self.news_service.get_live_articles_by_categories(categories)
        if not candidates:
            candidates = await self.merge.get_recommendations_for_user(user_id)
        if not candidates:
            return None
        return self.rng.choice(candidates)
