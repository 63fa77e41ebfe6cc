"""Request pacing and throttling-aware retries.

`RateLimiter` spaces requests and grows its delay while the backend keeps
answering 429. `call_with_retry` is the single retry driver used by every
backend operation.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from LogLens.core.errors import (
    RetryExhaustedError,
    SearchTimeoutError,
    SearchTransportError,
    ThrottledError,
)
from LogLens.utils.log import log

T = TypeVar("T")

DEFAULT_INITIAL_DELAY = 0.1
DEFAULT_MAX_DELAY = 5.0
DEFAULT_MULTIPLIER = 2.0
DEFAULT_MAX_ATTEMPTS = 3


class RateLimiter:
    """Thread-safe request spacer with multiplicative backoff.

    `wait()` blocks until the current delay has elapsed since the previous
    request. Each `handle_throttled()` multiplies the delay, capped at
    `max_delay`; `reset()` returns it to `initial_delay`.
    """

    def __init__(
        self,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        max_delay: float = DEFAULT_MAX_DELAY,
        multiplier: float = DEFAULT_MULTIPLIER,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if initial_delay < 0:
            raise ValueError("initial_delay must be non-negative")
        if max_delay < initial_delay:
            raise ValueError("max_delay must be >= initial_delay")
        if multiplier <= 1:
            raise ValueError("multiplier must be greater than 1")
        self._initial_delay = initial_delay
        self._max_delay = max_delay
        self._multiplier = multiplier
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._delay = initial_delay
        self._throttles = 0
        self._last_request: float | None = None

    def wait(self) -> None:
        """Block until the current delay has passed since the last request."""
        with self._lock:
            now = self._clock()
            pause = 0.0
            if self._last_request is not None:
                pause = max(0.0, self._last_request + self._delay - now)
            # Reserve the slot before sleeping so concurrent callers queue up.
            self._last_request = now + pause
        if pause > 0:
            log.debug("Rate limiter sleeping %.3fs", pause)
            self._sleep(pause)

    def handle_throttled(self, hint: float | None = None) -> float:
        """Grow the delay after a throttling response.

        Args:
            hint: Optional server-provided Retry-After seconds; the delay
                never drops below it (still capped at `max_delay`).

        Returns:
            The new delay in seconds.
        """
        with self._lock:
            self._throttles += 1
            grown = self._delay * self._multiplier if self._delay > 0 else self._initial_delay
            if hint is not None:
                grown = max(grown, hint)
            self._delay = min(grown, self._max_delay)
            return self._delay

    def reset(self) -> None:
        """Return to the baseline delay after a successful request."""
        with self._lock:
            self._delay = self._initial_delay
            self._throttles = 0

    def retry_after(self) -> float:
        with self._lock:
            return self._delay

    @property
    def consecutive_throttles(self) -> int:
        with self._lock:
            return self._throttles


def is_throttling_error(error: BaseException) -> bool:
    """Return True when `error` signals backend throttling.

    Besides an explicit `ThrottledError`, connection-level transport errors
    (no HTTP status) whose text mentions 429 or `too_many_requests` count as
    throttling. Errors carrying a status were already classified by the client.
    """
    if isinstance(error, ThrottledError):
        return True
    if not isinstance(error, SearchTransportError) or error.status_code is not None:
        return False
    text = str(error).lower()
    return "429" in text or "too_many_requests" in text


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """How many attempts a call gets and what counts as retryable."""

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    is_throttled: Callable[[BaseException], bool] = is_throttling_error

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")


def call_with_retry(
    call: Callable[[], T],
    *,
    policy: RetryPolicy,
    limiter: RateLimiter,
    on_status: Callable[[str], None] | None = None,
    deadline: float | None = None,
    operation: str = "request",
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """Run `call` under the rate limiter, retrying throttled attempts.

    Args:
        call: Zero-argument network call.
        policy: Attempt budget and throttling classifier.
        limiter: Shared rate limiter.
        on_status: Optional sink for user-facing status messages.
        deadline: Optional monotonic deadline for the whole operation.
        operation: Label used in log messages.
        clock: Monotonic clock used for the deadline.

    Returns:
        Result of the first successful attempt.

    Raises:
        SearchTimeoutError: If the deadline passes before an attempt.
        RetryExhaustedError: If every attempt was throttled.
        Exception: Any non-throttling error from `call`, unchanged.
    """
    last_error: BaseException | None = None
    for attempt in range(1, policy.max_attempts + 1):
        _check_deadline(deadline, clock, operation)
        limiter.wait()
        _check_deadline(deadline, clock, operation)
        try:
            result = call()
        except Exception as e:
            if not policy.is_throttled(e):
                raise
            last_error = e
            hint = e.retry_after if isinstance(e, ThrottledError) else None
            delay = limiter.handle_throttled(hint)
            log.debug("%s throttled on attempt %d/%d: %s", operation, attempt, policy.max_attempts, e)
            if attempt < policy.max_attempts:
                message = f"Rate limited (attempt {attempt}/{policy.max_attempts}), retrying in {delay:.1f}s..."
                if on_status is not None:
                    on_status(message)
                else:
                    log.warning(message)
            continue
        limiter.reset()
        return result

    raise RetryExhaustedError(
        f"{operation} still rate limited after {policy.max_attempts} attempts"
    ) from last_error


def _check_deadline(deadline: float | None, clock: Callable[[], float], operation: str) -> None:
    if deadline is not None and clock() >= deadline:
        raise SearchTimeoutError(f"{operation} exceeded its time budget")
