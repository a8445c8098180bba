# inkwell/utils/rate_limiting.py
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from inkwell.config import settings
from inkwell.database.rate_limit_repository import RateLimitRepository

logger = logging.getLogger(__name__)

HOUR = 3600

@dataclass(frozen=True)
class RateLimitRule:
    endpoint: str
    max_requests: int
    window_seconds: int = HOUR

@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: datetime

RATE_LIMITS = {
    "subscribe": RateLimitRule("/api/subscribe", settings.rate_limit_subscribe_per_hour),
    "send_test": RateLimitRule("/api/send/test", settings.rate_limit_send_test_per_hour),
}

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

class RateLimiter:
    """Fixed-window request counter per identifier and endpoint.

    Storage errors never block a request: the limiter fails open.
    """

    def __init__(self, repository: RateLimitRepository, clock: Optional[Callable[[], datetime]] = None):
        self.repository = repository
        self.clock = clock or _utcnow

    async def check_rate_limit(
        self,
        identifier: str,
        endpoint: str,
        max_requests: int = 5,
        window_seconds: int = HOUR
    ) -> RateLimitResult:
        """Check if request is within rate limits, counting it when allowed"""
        now = self.clock()
        window = timedelta(seconds=window_seconds)

        try:
            existing = await self.repository.get_current_window(identifier, endpoint, now - window)

            if not existing:
                await self.repository.create_window(identifier, endpoint, now)
                return RateLimitResult(True, max_requests - 1, now + window)

            reset_at = existing["window_start"] + window
            if existing["count"] >= max_requests:
                logger.warning(f"Rate limit exceeded for {identifier} on {endpoint}")
                return RateLimitResult(False, 0, reset_at)

            await self.repository.increment_window(existing["id"])
            return RateLimitResult(True, max_requests - (existing["count"] + 1), reset_at)

        except Exception as e:
            logger.error(f"Rate limiting check failed: {e}")
            # Allow request if rate limiting fails
            return RateLimitResult(True, max_requests, now + window)

    async def check_rule(self, identifier: str, rule: RateLimitRule) -> RateLimitResult:
        return await self.check_rate_limit(identifier, rule.endpoint, rule.max_requests, rule.window_seconds)

    async def cleanup_old_rate_limits(self, max_age_seconds: int = HOUR):
        """Delete windows older than max_age_seconds"""
        try:
            result = await self.repository.delete_windows_before(self.clock() - timedelta(seconds=max_age_seconds))
            logger.info(f"Rate limit cleanup: {result}")
        except Exception as e:
            logger.error(f"Rate limit cleanup error: {e}")
