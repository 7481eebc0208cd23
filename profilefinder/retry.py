"""
Retry, circuit breaking and rate limiting around the search capability.

The search API enforces per-minute, per-hour and per-day quotas. RateLimiter
keeps the resolver under them; exponential_backoff retries transient network
failures; CircuitBreaker stops issuing calls after repeated failures.
"""

import functools
import time
from collections import deque
from datetime import datetime
from typing import Callable, Deque, Optional, Tuple, Type

from .errors import CircuitOpenError, QuotaExceededError


class RetryError(Exception):
    """Raised when all retry attempts are exhausted."""
    pass


def exponential_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable] = None,
):
    """
    Decorator for retrying functions with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts (0 = no retries)
        base_delay: Initial delay in seconds
        max_delay: Maximum delay between retries in seconds
        exponential_base: Base for exponential calculation (delay *= base)
        exceptions: Tuple of exceptions to catch and retry
        on_retry: Optional callback function(attempt, exception, delay)

    Example:
        @exponential_backoff(max_retries=2, base_delay=1.0)
        def fetch_results(params):
            return requests.get(ENDPOINT, params=params)
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            delay = base_delay

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt >= max_retries:
                        raise RetryError(
                            f"Failed after {max_retries + 1} attempts: {e}"
                        ) from e

                    current_delay = min(delay, max_delay)
                    if on_retry:
                        on_retry(attempt + 1, e, current_delay)
                    time.sleep(current_delay)
                    delay *= exponential_base

        return wrapper
    return decorator


class CircuitBreaker:
    """
    Blocks calls to a failing service until it had time to recover.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: Too many failures, requests are blocked
    - HALF_OPEN: One trial request is allowed through
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60,
        expected_exception: Type[Exception] = Exception,
    ):
        """
        Args:
            failure_threshold: Consecutive failures before opening the circuit
            recovery_timeout: Seconds to wait before a trial request
            expected_exception: Exception type that counts as failure
        """
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exception = expected_exception

        self.failure_count = 0
        self.last_failure_time: Optional[datetime] = None
        self.state = self.CLOSED

    def call(self, func: Callable, *args, **kwargs):
        """
        Execute function with circuit breaker protection.

        Raises:
            CircuitOpenError: If circuit is OPEN
            Original exception: If function fails in CLOSED/HALF_OPEN state
        """
        if self.state == self.OPEN:
            if self._should_attempt_reset():
                self.state = self.HALF_OPEN
            else:
                raise CircuitOpenError(
                    f"Circuit breaker is OPEN. Search unavailable. "
                    f"Retry after {self._time_until_reset():.0f}s"
                )

        try:
            result = func(*args, **kwargs)
        except self.expected_exception:
            self._on_failure()
            raise
        self._on_success()
        return result

    def _elapsed(self) -> float:
        return (datetime.now() - self.last_failure_time).total_seconds()

    def _should_attempt_reset(self) -> bool:
        if self.last_failure_time is None:
            return True
        return self._elapsed() >= self.recovery_timeout

    def _time_until_reset(self) -> float:
        if self.last_failure_time is None:
            return 0
        return max(0, self.recovery_timeout - self._elapsed())

    def _on_success(self):
        self.failure_count = 0
        self.state = self.CLOSED

    def _on_failure(self):
        self.failure_count += 1
        self.last_failure_time = datetime.now()
        if self.state == self.HALF_OPEN or self.failure_count >= self.failure_threshold:
            self.state = self.OPEN

    def reset(self):
        """Manually reset the circuit breaker."""
        self.failure_count = 0
        self.last_failure_time = None
        self.state = self.CLOSED


class RateLimiter:
    """
    Enforces a fixed minimum delay between search calls plus rolling quotas.

    The minute quota is waited out; hour and day quotas raise
    QuotaExceededError so the caller can skip the strategy instead of
    blocking for hours.
    """

    MINUTE = 60.0
    HOUR = 3600.0
    DAY = 86400.0

    def __init__(
        self,
        min_delay: float = 1.0,
        per_minute: int = 60,
        per_hour: int = 1000,
        per_day: int = 10000,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_delay = min_delay
        self.per_minute = per_minute
        self.per_hour = per_hour
        self.per_day = per_day
        self._clock = clock
        self._sleep = sleep
        self._calls: Deque[float] = deque()
        self._last_call: Optional[float] = None

    def _prune(self, now: float):
        while self._calls and now - self._calls[0] >= self.DAY:
            self._calls.popleft()

    def _count_since(self, now: float, window: float) -> int:
        return sum(1 for t in self._calls if now - t < window)

    def calls_in_window(self, window: float) -> int:
        now = self._clock()
        self._prune(now)
        return self._count_since(now, window)

    def wait(self):
        """Block until the next call is allowed, then record it."""
        now = self._clock()
        self._prune(now)

        if self._count_since(now, self.DAY) >= self.per_day:
            raise QuotaExceededError(f"Daily search quota of {self.per_day} calls reached")
        if self._count_since(now, self.HOUR) >= self.per_hour:
            raise QuotaExceededError(f"Hourly search quota of {self.per_hour} calls reached")

        delay = 0.0
        if self._last_call is not None:
            delay = max(delay, self.min_delay - (now - self._last_call))
        in_minute = [t for t in self._calls if now - t < self.MINUTE]
        if len(in_minute) >= self.per_minute:
            oldest = in_minute[len(in_minute) - self.per_minute]
            delay = max(delay, self.MINUTE - (now - oldest))

        if delay > 0:
            self._sleep(delay)
            now = self._clock()

        self._last_call = now
        self._calls.append(now)


def is_transient_error(exception: Exception) -> bool:
    """
    Determine if an exception is likely transient and worth retrying.

    Args:
        exception: Exception to check

    Returns:
        True if error is likely transient (timeout, connection, 5xx, 429)
    """
    error_str = str(exception).lower()

    transient_keywords = [
        "timeout",
        "timed out",
        "connection",
        "temporary failure",
        "service unavailable",
        "503",
        "502",
        "500",
        "429",
    ]

    return any(keyword in error_str for keyword in transient_keywords)


def should_retry_http_status(status_code: int) -> bool:
    """Check if an HTTP status code from the search API is retryable."""
    retryable_codes = {
        408,  # Request Timeout
        429,  # Too Many Requests
        500,  # Internal Server Error
        502,  # Bad Gateway
        503,  # Service Unavailable
        504,  # Gateway Timeout
    }

    return status_code in retryable_codes
