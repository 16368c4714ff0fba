# storefront/ratelimit.py
import logging
import time
from typing import Dict, Tuple

from fastapi import Depends, HTTPException, Request
from redis.asyncio import Redis

from .config import Settings, get_settings

logger = logging.getLogger(__name__)


class MemoryWindowStore:
    """
    Fixed-window counters kept in this process. Fine for a single worker.
    Expired windows are dropped once ``prune_at`` keys are held.
    """

    def __init__(self, prune_at: int = 1024):
        self.prune_at = prune_at
        self._windows: Dict[str, Tuple[int, float, int]] = {}

    def __len__(self) -> int:
        return len(self._windows)

    def _prune(self, now: float) -> None:
        stale = [k for k, (_, started, window) in self._windows.items() if now - started >= window]
        for k in stale:
            del self._windows[k]

    async def hit(self, key: str, window_seconds: int) -> int:
        now = time.monotonic()
        if len(self._windows) >= self.prune_at:
            self._prune(now)
        count, started, _ = self._windows.get(key, (0, now, window_seconds))
        if now - started >= window_seconds:
            count, started = 0, now
        count += 1
        self._windows[key] = (count, started, window_seconds)
        return count

    async def reset(self) -> None:
        self._windows.clear()


class RedisWindowStore:
    """Fixed-window counters shared by every worker through redis."""

    def __init__(self, url: str):
        self.redis = Redis.from_url(url, decode_responses=True)

    async def hit(self, key: str, window_seconds: int) -> int:
        # key and expiry are created in the same MULTI as the increment
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.set(key, 0, ex=window_seconds, nx=True)
            pipe.incr(key)
            _, count = await pipe.execute()
        return int(count)

    async def reset(self) -> None:
        async for key in self.redis.scan_iter("ratelimit:*"):
            await self.redis.delete(key)


_store = None


def get_store():
    global _store
    if _store is None:
        url = get_settings().redis_url
        _store = RedisWindowStore(url) if url else MemoryWindowStore()
    return _store


def client_ip(request: Request) -> str:
    # X-Forwarded-For is only honoured through uvicorn --proxy-headers / --forwarded-allow-ips
    return request.client.host if request.client else "unknown"


class RateLimit:
    """
    FastAPI dependency allowing ``limit`` calls per ``window_seconds`` per
    client IP for one named route.
    """

    def __init__(self, name: str, limit: int, window_seconds: int, message: str):
        self.name = name
        self.limit = limit
        self.window_seconds = window_seconds
        self.message = message

    async def __call__(self, request: Request, settings: Settings = Depends(get_settings)) -> None:
        if not settings.rate_limit_enabled:
            return
        ip = client_ip(request)
        count = await get_store().hit(f"ratelimit:{self.name}:{ip}", self.window_seconds)
        if count > self.limit:
            logger.warning("[RATELIMIT] %s blocked ip=%s count=%d", self.name, ip, count)
            raise HTTPException(status_code=429, detail=self.message)


register_limiter = RateLimit(
    "register", 5, 15 * 60,
    "Too many accounts created from this IP, please try again after 15 minutes",
)
login_limiter = RateLimit(
    "login", 5, 5 * 60,
    "Too many login attempts from this IP, please try again after 5 minutes",
)
forgot_password_limiter = RateLimit(
    "forgot-password", 5, 5 * 60,
    "Too many password reset request from this IP, please try again after 5 minutes",
)
