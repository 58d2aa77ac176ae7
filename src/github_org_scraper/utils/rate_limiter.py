"""Local rate limit tracking for GitHub API requests."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping, Optional

from github_org_scraper.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)


def format_time_remaining(seconds: float) -> str:
    """Format seconds into a human-friendly string."""
    if seconds <= 0:
        return "now"

    seconds = int(seconds)
    if seconds < 60:
        return f"{seconds} second{'s' if seconds != 1 else ''}"
    if seconds < 3600:
        minutes, secs = divmod(seconds, 60)
        if secs:
            return f"{minutes} min {secs} sec"
        return f"{minutes} minute{'s' if minutes != 1 else ''}"

    hours, rest = divmod(seconds, 3600)
    minutes = rest // 60
    if minutes:
        return f"{hours} hr {minutes} min"
    return f"{hours} hour{'s' if hours != 1 else ''}"


@dataclass
class RateLimitState:
    """Track rate limit state for one API family."""

    limit: int
    remaining: int
    reset_time: float  # Unix timestamp

    @property
    def seconds_until_reset(self) -> float:
        return max(0, self.reset_time - time.time())

    def update_from_headers(self, headers: Mapping[str, str]) -> None:
        """Update state from GitHub API response headers."""
        if "x-ratelimit-limit" in headers:
            self.limit = int(headers["x-ratelimit-limit"])
        if "x-ratelimit-remaining" in headers:
            self.remaining = int(headers["x-ratelimit-remaining"])
        if "x-ratelimit-reset" in headers:
            self.reset_time = float(headers["x-ratelimit-reset"])


@dataclass
class RateLimiter:
    """Rate limiter supporting REST, Search, and GraphQL APIs."""

    rest: RateLimitState = field(
        default_factory=lambda: RateLimitState(
            limit=5000, remaining=5000, reset_time=time.time() + 3600
        )
    )
    # Search API: 30/minute, separate from REST
    search: RateLimitState = field(
        default_factory=lambda: RateLimitState(
            limit=30, remaining=30, reset_time=time.time() + 60
        )
    )
    graphql: RateLimitState = field(
        default_factory=lambda: RateLimitState(
            limit=5000, remaining=5000, reset_time=time.time() + 3600
        )
    )
    # Longest reset worth sleeping for; covers the Search window but not REST's hour
    max_wait: float = 90.0

    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    async def acquire_rest(self, cost: int = 1) -> None:
        await self._acquire(self.rest, cost, "REST")

    async def acquire_search(self, cost: int = 1) -> None:
        await self._acquire(self.search, cost, "Search")

    async def acquire_graphql(self, cost: int = 1) -> None:
        await self._acquire(self.graphql, cost, "GraphQL")

    async def _acquire(self, state: RateLimitState, cost: int, api_name: str) -> None:
        """Deduct ``cost`` from the budget.

        An exhausted budget whose reset is at most ``max_wait`` seconds away is
        waited out; a later reset raises ``RateLimitExceededError``.
        """
        while True:
            async with self._lock:
                if state.remaining >= cost:
                    state.remaining -= cost
                    return

                wait_time = state.seconds_until_reset
                if wait_time <= 0:
                    # Window rolled over without fresh headers
                    state.remaining = state.limit - cost
                    return

                reset_at = datetime.fromtimestamp(state.reset_time).strftime("%H:%M:%S")
                human_time = format_time_remaining(wait_time)
                if wait_time > self.max_wait:
                    logger.error(
                        "%s API rate limit exhausted; resets in %s (at %s)",
                        api_name,
                        human_time,
                        reset_at,
                    )
                    raise RateLimitExceededError(
                        f"{api_name} rate limit exceeded. Resets in {human_time} (at {reset_at})",
                        reset_time=state.reset_time,
                    )
                seen_reset = state.reset_time

            logger.warning(
                "%s API rate limit exhausted; waiting %s for reset", api_name, human_time
            )
            await asyncio.sleep(wait_time)

            async with self._lock:
                if state.remaining < cost and state.reset_time == seen_reset:
                    state.remaining = state.limit


# Global rate limiter instance
_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """Get or create the global rate limiter instance."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter()
    return _rate_limiter


def reset_rate_limiter() -> None:
    """Reset the global rate limiter (useful for testing)."""
    global _rate_limiter
    _rate_limiter = None
