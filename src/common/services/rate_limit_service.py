import logging

from common.repository.rate_limit_repo import RateLimitRepository
from common.utils.custom_exceptions import RateLimited
from common.utils.datetime_normaliser import utc_now

logger = logging.getLogger(__name__)


class RateLimitService:
    """Per actor and action cooldowns kept in the table, not in process memory."""

    def __init__(self, rate_limit_repo: RateLimitRepository):
        self.rate_limit_repo = rate_limit_repo

    def enforce(self, actor_id: str, action: str, window_seconds: int):
        if window_seconds <= 0:
            return
        acquired = self.rate_limit_repo.try_acquire(
            key=f"{actor_id}#{action}",
            now_epoch=int(utc_now().timestamp()),
            window_seconds=window_seconds,
        )
        if not acquired:
            logger.info(f"Rate limited {action} for {actor_id}")
            raise RateLimited(action, window_seconds)
