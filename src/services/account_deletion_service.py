"""
Account Deletion Service
Finalizes deletion requests once their grace period has passed, and applies
the login-time rule that cancels a request still inside the grace period.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, List

from ..models.user import User
from ..repositories.user_repository import UserRepository
from ..utils.datetime_utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)

DEFAULT_GRACE_PERIOD = timedelta(days=14)


@dataclass
class DeletionResolution:
    can_proceed: bool
    cancelled: bool
    message: str


class AccountDeletionService:
    def __init__(self, grace_period: timedelta = DEFAULT_GRACE_PERIOD, clock: Callable[[], datetime] = utcnow):
        self.grace_period = grace_period
        self.clock = clock

    def is_expired(self, user: User, now: datetime) -> bool:
        requested_at = ensure_utc(user.deletion_requested_at)
        if not user.is_pending_deletion or requested_at is None:
            return False
        return now - requested_at >= self.grace_period

    def find_expired(self, users: UserRepository) -> List[User]:
        now = self.clock()
        return [user for user in users.get_pending_deletion_users() if self.is_expired(user, now)]

    def delete_expired_accounts(self, users: UserRepository) -> Dict[str, int]:
        """
        Delete every account whose deletion request is at least one grace period old.
        Each deletion is independent; a failed one is rolled back and logged.

        Returns:
            Dict with candidates / deleted / failed counts
        """
        expired = self.find_expired(users)
        stats = {"candidates": len(expired), "deleted": 0, "failed": 0}

        for user in expired:
            user_id, user_name = user.id, user.user_name
            try:
                users.delete(user)
                stats["deleted"] += 1
                logger.info(f"Deleted user {user_name} ({user_id}) after {self.grace_period.days} days")
            except Exception as e:
                users.session.rollback()
                stats["failed"] += 1
                logger.error(f"Failed to delete user {user_name} ({user_id}): {e}")

        if expired:
            logger.info(f"Account deletion sweep finished: {stats['deleted']} deleted, {stats['failed']} failed")
        return stats

    def resolve_pending_deletion(self, users: UserRepository, user: User) -> DeletionResolution:
        """
        Login-time handling of a pending deletion request.

        Inside the grace period the request is cancelled and the user may
        continue. Past it the account counts as deleted, even if the sweep
        has not removed it yet.
        """
        if not user.is_pending_deletion or user.deletion_requested_at is None:
            return DeletionResolution(can_proceed=True, cancelled=False, message="")

        if not self.is_expired(user, self.clock()):
            users.cancel_deletion(user)
            logger.info(f"Deletion request cancelled for user {user.id}")
            return DeletionResolution(can_proceed=True, cancelled=True, message="Deletion request canceled.")

        logger.warning(f"Login refused for user {user.id}: deletion grace period expired")
        return DeletionResolution(can_proceed=False, cancelled=False, message="Account has been deleted.")
