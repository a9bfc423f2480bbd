# ABOUTME: Fixed-window request counter keyed by client identifier.
# ABOUTME: Provides lenient and strict limiter instances plus a periodic sweeper task.

import asyncio
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

import structlog

from ward_bulletin.config import Settings
from ward_bulletin.errors import RateLimitError

log = structlog.get_logger()


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    """Allows at most ``max_requests`` per identifier in each window.

    A window starts at the first request after the previous one expired.
    """

    def __init__(
        self,
        name: str,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}

    def allow(self, identifier: str) -> bool:
        """Count a request for ``identifier`` and report whether it may proceed."""
        now = self._clock()
        window = self._windows.get(identifier)

        if window is None or now > window.reset_at:
            self._windows[identifier] = _Window(count=1, reset_at=now + self.window_seconds)
            return True

        if window.count >= self.max_requests:
            return False

        window.count += 1
        return True

    def check(self, identifier: str) -> None:
        """Count a request and raise RateLimitError if it must wait."""
        if not self.allow(identifier):
            raise RateLimitError(context=self.name)

    def sweep(self) -> int:
        """Drop expired windows. Returns how many were removed."""
        now = self._clock()
        expired = [key for key, window in self._windows.items() if now > window.reset_at]
        for key in expired:
            del self._windows[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._windows)


@dataclass
class RateLimiters:
    """The limiter instances owned by the application."""

    lenient: RateLimiter
    strict: RateLimiter

    def __iter__(self):
        return iter((self.lenient, self.strict))


def build_rate_limiters(
    settings: Settings, clock: Callable[[], float] = time.monotonic
) -> RateLimiters:
    """Lenient guards the public lookup; strict is for sensitive endpoints."""
    return RateLimiters(
        lenient=RateLimiter(
            "lenient",
            settings.lenient_rate_limit_requests,
            settings.lenient_rate_limit_window_seconds,
            clock=clock,
        ),
        strict=RateLimiter(
            "strict",
            settings.strict_rate_limit_requests,
            settings.strict_rate_limit_window_seconds,
            clock=clock,
        ),
    )


async def run_sweeper(limiters: Iterable[RateLimiter], interval_seconds: float = 60) -> None:
    """Sweep expired windows forever. Cancel the task to stop."""
    limiters = list(limiters)
    while True:
        await asyncio.sleep(interval_seconds)
        for limiter in limiters:
            removed = limiter.sweep()
            if removed:
                log.debug("rate_limit_swept", limiter=limiter.name, removed=removed)
