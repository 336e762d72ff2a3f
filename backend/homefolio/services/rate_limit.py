"""Rate limiting for report generation.

Two backends share the ``RateLimiter`` contract:

  - ``InMemoryRateLimiter``: fixed window counter held in process memory.
  - ``DatabaseRateLimiter``: trailing window over the ``rate_limit_logs``
    table. Fails open when the table cannot be read or written (configurable).

The report service only depends on the protocol, so either backend can be
selected through ``settings.rate_limit_backend``.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Protocol

from fastapi import Request
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from homefolio.models.rate_limit_log import RateLimitLog

logger = logging.getLogger(__name__)

PURGE_PROBABILITY = 0.001


@dataclass(frozen=True)
class RateLimitConfig:
    max_requests: int
    window_seconds: int
    operation: str


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: datetime
    error: Optional[str] = None


class RateLimiter(Protocol):
    async def check(self, identity: str, config: RateLimitConfig) -> RateLimitResult:
        ...


def _exceeded_message(reset_at: datetime) -> str:
    return f"Rate limit exceeded. Try again after {reset_at.isoformat()}"


@dataclass
class _Window:
    count: int
    reset_at: float


class InMemoryRateLimiter:
    """Fixed-window counter keyed by ``operation:identity``.

    State is local to the process; use the database backend when several
    replicas serve the same clients.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        rng: Callable[[], float] = random.random,
        purge_probability: float = PURGE_PROBABILITY,
    ):
        self._clock = clock
        self._rng = rng
        self._purge_probability = purge_probability
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._windows)

    async def check(self, identity: str, config: RateLimitConfig) -> RateLimitResult:
        key = f"{config.operation}:{identity}"

        with self._lock:
            now = self._clock()
            window = self._windows.get(key)
            if window is None or window.reset_at <= now:
                window = _Window(count=0, reset_at=now + config.window_seconds)
                self._windows[key] = window

            window.count += 1
            count = window.count
            reset_ts = window.reset_at

            if self._rng() < self._purge_probability:
                self._purge_expired(now)

        allowed = count <= config.max_requests
        reset_at = datetime.fromtimestamp(reset_ts, tz=timezone.utc)
        return RateLimitResult(
            allowed=allowed,
            remaining=max(0, config.max_requests - count),
            reset_at=reset_at,
            error=None if allowed else _exceeded_message(reset_at),
        )

    def _purge_expired(self, now: float) -> None:
        expired = [key for key, window in self._windows.items() if window.reset_at <= now]
        for key in expired:
            del self._windows[key]
        if expired:
            logger.debug("Purged %d expired rate limit windows", len(expired))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class DatabaseRateLimiter:
    """Trailing-window limiter backed by the ``rate_limit_logs`` table.

    Count-then-insert is not atomic across replicas; concurrent requests can
    slightly overshoot the limit.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        fail_open: bool = True,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._session_factory = session_factory
        self._fail_open = fail_open
        self._clock = clock

    async def check(self, identity: str, config: RateLimitConfig) -> RateLimitResult:
        now = self._clock()
        window_start = now - timedelta(seconds=config.window_seconds)
        reset_at = (now + timedelta(seconds=config.window_seconds)).replace(tzinfo=timezone.utc)

        try:
            async with self._session_factory() as session:
                count = await session.scalar(
                    select(func.count())
                    .select_from(RateLimitLog)
                    .where(
                        RateLimitLog.user_id == identity,
                        RateLimitLog.operation == config.operation,
                        RateLimitLog.created_at >= window_start,
                    )
                )
                count = count or 0
                allowed = count < config.max_requests
                if allowed:
                    session.add(RateLimitLog(
                        user_id=identity, operation=config.operation, created_at=now,
                    ))
                    await session.commit()
        except Exception as exc:
            logger.error(
                "Rate limit store failed for %s (%s): %s", identity, config.operation, exc,
            )
            if self._fail_open:
                return RateLimitResult(
                    allowed=True, remaining=config.max_requests, reset_at=reset_at,
                )
            return RateLimitResult(
                allowed=False, remaining=0, reset_at=reset_at,
                error="Rate limiting unavailable",
            )

        return RateLimitResult(
            allowed=allowed,
            remaining=max(0, config.max_requests - count - 1),
            reset_at=reset_at,
            error=None if allowed else (
                f"Rate limit exceeded for {config.operation}. Maximum "
                f"{config.max_requests} requests per {config.window_seconds} seconds. "
                f"Try again after {reset_at.isoformat()}"
            ),
        )


# ──────────────────────────────────────────────────────────────────
# IDENTITY
# ──────────────────────────────────────────────────────────────────

def get_client_ip(request: Request) -> str:
    """Client address, honouring proxy headers."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    if request.client:
        return request.client.host

    return "unknown"


def get_rate_limit_identifier(
    request: Request,
    user_id: Optional[str] = None,
) -> str:
    """Rate limit key: authenticated user, else client IP."""
    if user_id:
        return f"user:{user_id}"
    return f"ip:{get_client_ip(request)}"


# ──────────────────────────────────────────────────────────────────
# BACKEND SELECTION
# ──────────────────────────────────────────────────────────────────

_memory_limiter: Optional[InMemoryRateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """Return the limiter configured by ``settings.rate_limit_backend``."""
    global _memory_limiter
    from homefolio.config import settings

    backend = settings.rate_limit_backend.lower()
    if backend == "database":
        from homefolio.database import get_session_factory
        return DatabaseRateLimiter(
            get_session_factory(), fail_open=settings.rate_limit_fail_open,
        )
    if backend != "memory":
        logger.warning("Unknown rate limit backend %r, using in-memory limiter", backend)

    if _memory_limiter is None:
        _memory_limiter = InMemoryRateLimiter()
    return _memory_limiter
