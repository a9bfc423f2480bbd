# ABOUTME: Tests for the fixed-window rate limiter and its sweeper.
# ABOUTME: Uses a controllable clock so window expiry is deterministic.

import asyncio

import pytest

from ward_bulletin.config import Settings
from ward_bulletin.errors import ERROR_MESSAGES, RateLimitError
from ward_bulletin.ratelimit import RateLimiter, build_rate_limiters, run_sweeper


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class TestRateLimiter:
    """Tests for RateLimiter.allow and sweep."""

    def test_denies_after_max_requests(self, clock: FakeClock) -> None:
        limiter = RateLimiter("test", max_requests=3, window_seconds=60, clock=clock)

        results = [limiter.allow("1.2.3.4") for _ in range(5)]

        assert results == [True, True, True, False, False]

    def test_check_raises_rate_limit_error(self, clock: FakeClock) -> None:
        limiter = RateLimiter("lenient", max_requests=1, window_seconds=60, clock=clock)
        limiter.check("a")

        with pytest.raises(RateLimitError) as exc_info:
            limiter.check("a")

        assert exc_info.value.message == ERROR_MESSAGES["RATE_LIMIT_EXCEEDED"]
        assert exc_info.value.context == "lenient"

    def test_allows_again_after_window(self, clock: FakeClock) -> None:
        limiter = RateLimiter("test", max_requests=2, window_seconds=60, clock=clock)
        limiter.allow("a")
        limiter.allow("a")
        assert limiter.allow("a") is False

        clock.advance(60.5)

        assert limiter.allow("a") is True

    def test_still_denied_at_window_edge(self, clock: FakeClock) -> None:
        limiter = RateLimiter("test", max_requests=1, window_seconds=60, clock=clock)
        limiter.allow("a")

        clock.advance(60)

        assert limiter.allow("a") is False

    def test_identifiers_are_independent(self, clock: FakeClock) -> None:
        limiter = RateLimiter("test", max_requests=1, window_seconds=60, clock=clock)

        assert limiter.allow("a") is True
        assert limiter.allow("b") is True
        assert limiter.allow("a") is False

    def test_denied_requests_do_not_extend_window(self, clock: FakeClock) -> None:
        limiter = RateLimiter("test", max_requests=1, window_seconds=10, clock=clock)
        limiter.allow("a")
        clock.advance(5)
        limiter.allow("a")
        clock.advance(5.5)

        assert limiter.allow("a") is True

    def test_sweep_removes_only_expired(self, clock: FakeClock) -> None:
        limiter = RateLimiter("test", max_requests=5, window_seconds=60, clock=clock)
        limiter.allow("old")
        clock.advance(30)
        limiter.allow("new")
        clock.advance(31)

        removed = limiter.sweep()

        assert removed == 1
        assert len(limiter) == 1


class TestBuildRateLimiters:
    def test_lenient_and_strict_from_settings(self, mock_settings: Settings) -> None:
        limiters = build_rate_limiters(mock_settings)

        assert limiters.lenient.max_requests == 100
        assert limiters.lenient.window_seconds == 900
        assert limiters.strict.max_requests == 10
        assert limiters.strict.window_seconds == 60
        assert [limiter.name for limiter in limiters] == ["lenient", "strict"]


class TestRunSweeper:
    async def test_sweeper_clears_expired_windows(self, clock: FakeClock) -> None:
        limiter = RateLimiter("test", max_requests=5, window_seconds=1, clock=clock)
        limiter.allow("a")
        clock.advance(2)

        task = asyncio.create_task(run_sweeper([limiter], interval_seconds=0.01))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert len(limiter) == 0
