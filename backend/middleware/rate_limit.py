"""
In-memory rate limiting for expensive endpoints (headless runs, captures).

A single process keeps its own counters; for multiple workers, move this to
a shared store.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import UTC, datetime, timedelta

from fastapi import HTTPException, status


class RateLimiter:
    """
    Sliding-window counter per key.

    Keys are "<bucket>:<user id>", e.g. "capture:3f0c...".
    """

    def __init__(self) -> None:
        self._requests: dict[str, list[datetime]] = defaultdict(list)

    def check_rate_limit(self, key: str, max_requests: int, window_minutes: int = 60) -> bool:
        """
        Record a request for `key` if it is under the limit.

        Returns:
            True if under the limit, False if limit exceeded
        """
        now = datetime.now(UTC)
        cutoff = now - timedelta(minutes=window_minutes)

        recent = [ts for ts in self._requests[key] if ts > cutoff]
        if len(recent) >= max_requests:
            self._requests[key] = recent
            return False

        recent.append(now)
        self._requests[key] = recent
        return True

    def enforce(self, key: str, max_requests: int, window_minutes: int = 60) -> None:
        """Raise 429 when `key` is over its limit."""
        if not self.check_rate_limit(key, max_requests, window_minutes):
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests. Please wait and try again.",
                headers={"Retry-After": str(window_minutes * 60)},
            )

    def cleanup_old_entries(self, max_age_hours: int = 2) -> None:
        """Drop keys whose entries are all older than `max_age_hours`."""
        cutoff = datetime.now(UTC) - timedelta(hours=max_age_hours)
        for key in list(self._requests.keys()):
            self._requests[key] = [ts for ts in self._requests[key] if ts > cutoff]
            if not self._requests[key]:
                del self._requests[key]

    def reset(self) -> None:
        self._requests.clear()


# Global rate limiter instance
rate_limiter = RateLimiter()
