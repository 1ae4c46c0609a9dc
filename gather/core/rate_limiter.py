"""Rate limiting implementation using Redis with fixed window algorithm."""

from typing import Optional

import redis

from gather.core.config import settings
from gather.core.logging import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """Redis-based rate limiter using fixed window algorithm."""

    def __init__(self, redis_client: Optional[redis.Redis] = None):
        self.redis_client = redis_client or redis.Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=1,
            socket_timeout=1,
        )

    def _get_user_key(self, user_id: str, endpoint: str) -> str:
        """Get rate limit key based on user ID."""
        return f"rate_limit:user:{user_id}:{endpoint}"

    async def check_rate_limit(self, key: str, limit: int, window: int) -> bool:
        """Check if request is within rate limit using fixed window algorithm."""
        try:
            pipe = self.redis_client.pipeline()
            pipe.incr(key)
            pipe.ttl(key)
            current_count, ttl = pipe.execute()

            # Start the window on first hit; later hits must not extend it
            if ttl < 0:
                self.redis_client.expire(key, window)

            return bool(current_count <= limit)

        except Exception as e:
            # If Redis is down, allow request (fail open)
            logger.warning(f"Rate limit check failed for {key}, allowing: {e}")
            return True

    async def check_user_rate_limit(
        self, user_id: str, endpoint: str, limit: int, window: int = 60
    ) -> bool:
        """Check rate limit based on user ID."""
        key = self._get_user_key(user_id, endpoint)
        return await self.check_rate_limit(key, limit, window)

    async def get_user_rate_limit_info(
        self, user_id: str, endpoint: str, limit: int, window: int = 60
    ) -> dict:
        """Get rate limit information for a user and endpoint."""
        key = self._get_user_key(user_id, endpoint)
        return await self.get_rate_limit_info(key, limit, window)

    async def get_rate_limit_info(self, key: str, limit: int, window: int) -> dict:
        """Get current rate limit information."""
        try:
            current_count = self.redis_client.get(key)
            if current_count is None:
                current_count = 0
            else:
                current_count = int(current_count)

            remaining = max(0, limit - current_count)
            ttl = self.redis_client.ttl(key)

            return {
                "limit": limit,
                "remaining": remaining,
                "reset": ttl if ttl > 0 else window,
            }
        except redis.RedisError:
            return {"limit": limit, "remaining": limit, "reset": window}


# Global rate limiter instance
rate_limiter = RateLimiter()


def get_rate_limiter() -> RateLimiter:
    """FastAPI dependency for the shared rate limiter."""
    return rate_limiter
