"""
Background jobs
Registers the notification dispatch and the account deletion sweep on the
scheduler. Every tick gets its own database session, closed when the tick ends.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Callable, Dict

from sqlalchemy.orm import Session

from ..config import Settings
from ..core.container import ServiceContainer
from ..core.scheduler import PeriodicScheduler
from ..repositories.notification_repository import NotificationRepository
from ..repositories.user_repository import UserRepository
from .account_deletion_service import AccountDeletionService
from .notification_service import NotificationJob

logger = logging.getLogger(__name__)

NOTIFICATION_JOB = "article_notifications"
ACCOUNT_DELETION_JOB = "account_deletion_sweep"


async def run_notification_tick(job: NotificationJob, session_factory: Callable[[], Session]) -> Dict[str, int]:
    db = session_factory()
    try:
        return await job.run(UserRepository(db), NotificationRepository(db))
    finally:
        db.close()


def run_deletion_sweep(service: AccountDeletionService, session_factory: Callable[[], Session]) -> Dict[str, int]:
    """Blocking sweep; called from a worker thread"""
    db = session_factory()
    try:
        return service.delete_expired_accounts(UserRepository(db))
    finally:
        db.close()


async def run_deletion_tick(service: AccountDeletionService, session_factory: Callable[[], Session]) -> Dict[str, int]:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, run_deletion_sweep, service, session_factory)


def build_scheduler(container: ServiceContainer, session_factory: Callable[[], Session], settings: Settings) -> PeriodicScheduler:
    """
    Args:
        container: Holds the notification job and the deletion service
        session_factory: Creates a fresh database session per tick
        settings: Interval settings
    """
    scheduler = PeriodicScheduler()

    async def notification_tick():
        return await run_notification_tick(container.notification_job, session_factory)

    async def deletion_tick():
        return await run_deletion_tick(container.deletion_service, session_factory)

    scheduler.register(
        NOTIFICATION_JOB,
        timedelta(minutes=settings.notification_interval_minutes),
        notification_tick,
    )
    scheduler.register(
        ACCOUNT_DELETION_JOB,
        timedelta(hours=settings.account_deletion_interval_hours),
        deletion_tick,
    )

    logger.info(
        f"Scheduled {NOTIFICATION_JOB} every {settings.notification_interval_minutes} minutes "
        f"and {ACCOUNT_DELETION_JOB} every {settings.account_deletion_interval_hours} hours"
    )
    return scheduler
