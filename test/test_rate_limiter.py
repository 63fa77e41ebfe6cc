"""Tests for request pacing and the throttling-aware retry driver."""

from __future__ import annotations

import sys
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from LogLens.core.errors import (
    RetryExhaustedError,
    SearchDecodeError,
    SearchTimeoutError,
    SearchTransportError,
    ThrottledError,
)
from LogLens.sources.elastic.ratelimit import (
    RateLimiter,
    RetryPolicy,
    call_with_retry,
    is_throttling_error,
)


class _FakeClock:
    def __init__(self) -> None:
        self.now = 100.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _limiter(clock: _FakeClock, **kwargs) -> RateLimiter:
    params = {"initial_delay": 0.1, "max_delay": 5.0, "multiplier": 2.0}
    params.update(kwargs)
    return RateLimiter(**params, clock=clock, sleep=clock.sleep)


class TestRateLimiter(unittest.TestCase):
    def test_first_wait_does_not_sleep(self) -> None:
        clock = _FakeClock()
        _limiter(clock).wait()
        self.assertEqual(clock.sleeps, [])

    def test_wait_spaces_requests(self) -> None:
        clock = _FakeClock()
        limiter = _limiter(clock)
        limiter.wait()
        limiter.wait()
        self.assertEqual(len(clock.sleeps), 1)
        self.assertAlmostEqual(clock.sleeps[0], 0.1)

    def test_no_sleep_when_delay_already_elapsed(self) -> None:
        clock = _FakeClock()
        limiter = _limiter(clock)
        limiter.wait()
        clock.now += 1.0
        limiter.wait()
        self.assertEqual(clock.sleeps, [])

    def test_backoff_grows_and_caps(self) -> None:
        limiter = _limiter(_FakeClock(), max_delay=0.5)
        self.assertAlmostEqual(limiter.handle_throttled(), 0.2)
        self.assertAlmostEqual(limiter.handle_throttled(), 0.4)
        self.assertAlmostEqual(limiter.handle_throttled(), 0.5)
        self.assertAlmostEqual(limiter.handle_throttled(), 0.5)
        self.assertEqual(limiter.consecutive_throttles, 4)

    def test_server_hint_raises_delay_within_cap(self) -> None:
        limiter = _limiter(_FakeClock())
        self.assertAlmostEqual(limiter.handle_throttled(hint=3.0), 3.0)
        self.assertAlmostEqual(limiter.handle_throttled(hint=60.0), 5.0)

    def test_reset_returns_to_baseline(self) -> None:
        limiter = _limiter(_FakeClock())
        limiter.handle_throttled()
        limiter.handle_throttled()
        limiter.reset()
        self.assertAlmostEqual(limiter.retry_after(), 0.1)
        self.assertEqual(limiter.consecutive_throttles, 0)

    def test_throttled_delay_is_applied_to_next_wait(self) -> None:
        clock = _FakeClock()
        limiter = _limiter(clock)
        limiter.wait()
        limiter.handle_throttled()
        limiter.wait()
        self.assertAlmostEqual(clock.sleeps[-1], 0.2)

    def test_invalid_settings(self) -> None:
        with self.assertRaises(ValueError):
            RateLimiter(multiplier=1.0)
        with self.assertRaises(ValueError):
            RateLimiter(initial_delay=2.0, max_delay=1.0)
        with self.assertRaises(ValueError):
            RateLimiter(initial_delay=-1.0)


class TestThrottlingClassifier(unittest.TestCase):
    def test_classification(self) -> None:
        self.assertTrue(is_throttling_error(ThrottledError("slow down")))
        self.assertTrue(is_throttling_error(SearchTransportError("HTTP 429 from POST x")))
        self.assertTrue(is_throttling_error(SearchTransportError("es_rejected: too_many_requests")))
        self.assertFalse(is_throttling_error(SearchTransportError("HTTP 500", status_code=500)))
        self.assertFalse(is_throttling_error(SearchTransportError("HTTP 400 from POST logs-20240429/_search", status_code=400)))
        self.assertFalse(is_throttling_error(SearchDecodeError("bad json")))
        self.assertFalse(is_throttling_error(SearchDecodeError("invalid JSON from POST logs-20240429/_search")))
        self.assertFalse(is_throttling_error(SearchTimeoutError("POST logs-20240429/_search timed out")))
        self.assertFalse(is_throttling_error(RuntimeError("429")))


class _CountingLimiter(RateLimiter):
    def __init__(self, clock: _FakeClock) -> None:
        super().__init__(0.1, 5.0, 2.0, clock=clock, sleep=clock.sleep)
        self.throttled_calls = 0
        self.reset_calls = 0

    def handle_throttled(self, hint: float | None = None) -> float:
        self.throttled_calls += 1
        return super().handle_throttled(hint)

    def reset(self) -> None:
        self.reset_calls += 1
        super().reset()


class TestCallWithRetry(unittest.TestCase):
    def test_throttled_twice_then_success(self) -> None:
        clock = _FakeClock()
        limiter = _CountingLimiter(clock)
        outcomes: list[object] = [ThrottledError("429"), ThrottledError("429"), "ok"]
        statuses: list[str] = []

        def _call() -> str:
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        result = call_with_retry(
            _call,
            policy=RetryPolicy(max_attempts=3),
            limiter=limiter,
            on_status=statuses.append,
            clock=clock,
        )
        self.assertEqual(result, "ok")
        self.assertEqual(limiter.throttled_calls, 2)
        self.assertEqual(limiter.reset_calls, 1)
        self.assertEqual(
            statuses,
            [
                "Rate limited (attempt 1/3), retrying in 0.2s...",
                "Rate limited (attempt 2/3), retrying in 0.4s...",
            ],
        )

    def test_exhaustion_chains_last_throttle(self) -> None:
        clock = _FakeClock()
        limiter = _CountingLimiter(clock)
        last = ThrottledError("third")
        errors = [ThrottledError("first"), ThrottledError("second"), last]

        def _call() -> None:
            raise errors.pop(0)

        with self.assertRaises(RetryExhaustedError) as ctx:
            call_with_retry(_call, policy=RetryPolicy(max_attempts=3), limiter=limiter, clock=clock)
        self.assertIs(ctx.exception.__cause__, last)
        self.assertEqual(limiter.throttled_calls, 3)
        self.assertEqual(limiter.reset_calls, 0)

    def test_non_throttling_error_is_not_retried(self) -> None:
        clock = _FakeClock()
        limiter = _CountingLimiter(clock)
        calls = []

        def _call() -> None:
            calls.append(1)
            raise SearchTransportError("HTTP 500", status_code=500)

        with self.assertRaises(SearchTransportError):
            call_with_retry(_call, policy=RetryPolicy(), limiter=limiter, clock=clock)
        self.assertEqual(len(calls), 1)
        self.assertEqual(limiter.throttled_calls, 0)

    def test_status_error_mentioning_429_fails_immediately(self) -> None:
        clock = _FakeClock()
        limiter = _CountingLimiter(clock)
        calls = []

        def _call() -> None:
            calls.append(1)
            raise SearchTransportError("HTTP 400 from POST logs-20240429/_search: bad query", status_code=400)

        with self.assertRaises(SearchTransportError):
            call_with_retry(_call, policy=RetryPolicy(max_attempts=3), limiter=limiter, clock=clock)
        self.assertEqual(len(calls), 1)
        self.assertEqual(limiter.throttled_calls, 0)

    def test_expired_deadline_skips_the_call(self) -> None:
        clock = _FakeClock()
        calls = []
        with self.assertRaises(SearchTimeoutError):
            call_with_retry(
                lambda: calls.append(1),
                policy=RetryPolicy(),
                limiter=_limiter(clock),
                deadline=clock.now - 1,
                clock=clock,
            )
        self.assertEqual(calls, [])

    def test_policy_requires_an_attempt(self) -> None:
        with self.assertRaises(ValueError):
            RetryPolicy(max_attempts=0)


if __name__ == "__main__":
    unittest.main()
