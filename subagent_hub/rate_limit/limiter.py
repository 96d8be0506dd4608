import math
from dataclasses import dataclass
from enum import StrEnum

import structlog
from fastapi import Request

from subagent_hub.auth import AuthenticatedUser
from subagent_hub.config import settings
from subagent_hub.exceptions import RateLimitError
from subagent_hub.rate_limit.store import TTLStore

logger = structlog.get_logger()


class RateLimitType(StrEnum):
    api = "api"
    search = "search"
    heavy = "heavy"


# (requests, window in seconds)
RATE_LIMITS: dict[RateLimitType, tuple[int, int]] = {
    RateLimitType.api: (100, 3600),
    RateLimitType.search: (200, 3600),
    RateLimitType.heavy: (5, 3600),
}


@dataclass(frozen=True)
class RateLimitStatus:
    allowed: bool
    limit: int
    remaining: int
    reset_after: int


class RateLimiter:
    """Fixed-window request counter per limit type and caller."""

    def __init__(self, store: TTLStore) -> None:
        self._store = store

    async def check(self, limit_type: RateLimitType, identifier: str) -> RateLimitStatus:
        limit, window = RATE_LIMITS[limit_type]
        key = f"rate:{limit_type}:{identifier}"

        count = await self._store.incr(key, window)
        remaining_ttl = await self._store.ttl(key)
        reset_after = math.ceil(remaining_ttl) if remaining_ttl is not None else window

        return RateLimitStatus(
            allowed=count <= limit,
            limit=limit,
            remaining=max(limit - count, 0),
            reset_after=reset_after,
        )

    async def reset(self, limit_type: RateLimitType, identifier: str) -> None:
        await self._store.delete(f"rate:{limit_type}:{identifier}")


def rate_limited(limit_type: RateLimitType):
    """Build a dependency that counts the request against ``limit_type``."""

    async def dependency(request: Request) -> RateLimitStatus | None:
        if not settings.rate_limit_enabled:
            return None

        user = getattr(request.state, "user", None)
        if isinstance(user, AuthenticatedUser):
            identifier = f"user:{user.id}"
        else:
            identifier = f"ip:{request.client.host if request.client else 'unknown'}"

        limiter = RateLimiter(request.app.state.rate_limit_store)
        status = await limiter.check(limit_type, identifier)
        if not status.allowed:
            logger.warning("rate_limit_exceeded", limit_type=limit_type, identifier=identifier)
            raise RateLimitError(
                f"Rate limit exceeded for {limit_type} requests", retry_after=status.reset_after
            )
        return status

    return dependency
