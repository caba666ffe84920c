"""
Per-user rate limiting for the AI endpoints.
"""
import asyncio
import math
import threading
import time
from collections import defaultdict
from typing import Callable, Dict, List, Optional

from permaculture_planner.config import Config
from permaculture_planner.logging_config import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    In-memory sliding window limiter keyed by ``"{user_id}:{endpoint}"``.
    Single-process only; state is lost on restart.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self.requests: Dict[str, List[float]] = defaultdict(list)
        self.lock = threading.Lock()
        self.clock = clock

    def check(
        self,
        user_id: str,
        endpoint: str,
        max_requests: int = Config.AI_RATE_LIMIT_REQUESTS,
        window_seconds: int = Config.AI_RATE_LIMIT_WINDOW_SECONDS,
    ) -> Dict[str, object]:
        """
        Check and consume one request for the user and endpoint.

        Returns:
            Dict with ``allowed``, ``remaining`` and ``reset_ms`` (time until the
            oldest request in the window expires)
        """
        key = f"{user_id}:{endpoint}"
        window_ms = window_seconds * 1000
        with self.lock:
            now = self.clock() * 1000
            timestamps = [t for t in self.requests[key] if now - t < window_ms]
            self.requests[key] = timestamps

            if len(timestamps) >= max_requests:
                return {
                    "allowed": False,
                    "remaining": 0,
                    "reset_ms": timestamps[0] + window_ms - now,
                }

            timestamps.append(now)
            return {
                "allowed": True,
                "remaining": max_requests - len(timestamps),
                "reset_ms": timestamps[0] + window_ms - now,
            }

    def cleanup_old_entries(self, max_age_seconds: int = Config.AI_RATE_LIMIT_WINDOW_SECONDS):
        """Drop keys whose requests have all aged out."""
        with self.lock:
            now = self.clock() * 1000
            for key in list(self.requests):
                recent = [t for t in self.requests[key] if now - t < max_age_seconds * 1000]
                if recent:
                    self.requests[key] = recent
                else:
                    del self.requests[key]

    def reset(self):
        with self.lock:
            self.requests.clear()


def rate_limit_headers(result: Dict[str, object]) -> Dict[str, str]:
    return {
        "X-RateLimit-Remaining": str(result["remaining"]),
        "X-RateLimit-Reset": str(math.ceil(float(result["reset_ms"]) / 1000)),
    }


# Global rate limiter instance
rate_limiter = RateLimiter()


def check_rate_limit(
    key: str,
    max_requests: int = Config.AI_RATE_LIMIT_REQUESTS,
    window_seconds: int = Config.AI_RATE_LIMIT_WINDOW_SECONDS,
) -> Dict[str, object]:
    """Consume one request for a ``"{user_id}:{endpoint}"`` key on the global limiter."""
    user_id, _, endpoint = key.partition(":")
    return rate_limiter.check(user_id, endpoint, max_requests, window_seconds)


CLEANUP_INTERVAL_SECONDS = 600

_cleanup_task: Optional[asyncio.Task] = None


async def cleanup_periodically(
    limiter: Optional[RateLimiter] = None, interval_seconds: float = CLEANUP_INTERVAL_SECONDS
) -> None:
    limiter = limiter or rate_limiter
    while True:
        await asyncio.sleep(interval_seconds)
        limiter.cleanup_old_entries()
        logger.debug("Rate limiter cleanup left %d keys", len(limiter.requests))


def start_cleanup_task() -> asyncio.Task:
    """Start the periodic cleanup on the running loop, once."""
    global _cleanup_task
    if _cleanup_task is None or _cleanup_task.done():
        _cleanup_task = asyncio.create_task(cleanup_periodically())
    return _cleanup_task


async def stop_cleanup_task() -> None:
    global _cleanup_task
    if _cleanup_task is not None and not _cleanup_task.done():
        _cleanup_task.cancel()
        try:
            await _cleanup_task
        except asyncio.CancelledError:
            pass
    _cleanup_task = None
