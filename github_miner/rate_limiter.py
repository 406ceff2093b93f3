"""
Rate limiter for GitHub API requests.

Tracks the quota reported in response headers, waits until the reset time
when the quota is exhausted, and optionally spreads the remaining requests
across the window once the quota runs low.
"""

import math
import time
import threading
import requests
from typing import Callable, Optional
from dataclasses import dataclass


@dataclass
class RateLimitStatus:
    """Current rate limit status."""
    remaining: Optional[int]
    limit: Optional[int]
    reset_at: Optional[int]  # Unix timestamp


def _int_header(response: requests.Response, name: str) -> Optional[int]:
    value = response.headers.get(name)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        return None


class RateLimiter:
    """
    Manages GitHub API rate limits.

    Respects:
    - 403/429 with X-RateLimit-Remaining: 0 -> sleep until X-RateLimit-Reset + margin
    - Low remaining quota -> proportional pause before each request (capped)

    The clock and sleep function are injectable so tests never sleep for real.
    """

    RESET_MARGIN = 5.0  # seconds added after the reset time
    LOW_WATER_MARK = 1000
    MAX_THROTTLE_DELAY = 5.0

    def __init__(
        self,
        low_water_mark: int = LOW_WATER_MARK,
        max_throttle_delay: float = MAX_THROTTLE_DELAY,
        reset_margin: float = RESET_MARGIN,
        proactive: bool = True,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], object] = time.sleep,
    ):
        """
        Initialize rate limiter.

        Args:
            low_water_mark: Remaining quota below which requests are spread out
            max_throttle_delay: Upper bound for one proactive pause (seconds)
            reset_margin: Safety margin added to the reset wait (seconds)
            proactive: Whether to throttle before the quota is exhausted
            clock: Returns the current Unix time
            sleep: Blocks for the given number of seconds
        """
        self.low_water_mark = low_water_mark
        self.max_throttle_delay = max_throttle_delay
        self.reset_margin = reset_margin
        self.proactive = proactive
        self.clock = clock
        self.sleep = sleep
        self.cached_status: Optional[RateLimitStatus] = None
        self._lock = threading.Lock()

    def check_rate_limit(self, response: requests.Response) -> RateLimitStatus:
        """
        Extract rate limit info from GitHub API response headers.

        Args:
            response: requests.Response from GitHub API

        Returns:
            RateLimitStatus with current limits
        """
        status = RateLimitStatus(
            remaining=_int_header(response, "X-RateLimit-Remaining"),
            limit=_int_header(response, "X-RateLimit-Limit"),
            reset_at=_int_header(response, "X-RateLimit-Reset"),
        )

        if status.remaining is not None:
            with self._lock:
                self.cached_status = status

        return status

    def is_exhausted(self, response: requests.Response) -> bool:
        """True for a 403/429 response that reports zero remaining quota."""
        if response.status_code not in (403, 429):
            return False
        return response.headers.get("X-RateLimit-Remaining") == "0"

    def reset_wait_seconds(self, response: requests.Response) -> Optional[float]:
        """
        Seconds to wait before retrying an exhausted request.

        Returns:
            max(0, reset - now) + margin, or None without a reset header
        """
        reset_at = _int_header(response, "X-RateLimit-Reset")
        if reset_at is None:
            return None
        return max(0.0, reset_at - self.clock()) + self.reset_margin

    def wait_for_reset(self, response: requests.Response) -> bool:
        """
        Sleep until the quota resets.

        Returns:
            True if a wait happened (caller should retry), False if the
            response carries no reset time
        """
        wait_seconds = self.reset_wait_seconds(response)
        if wait_seconds is None:
            return False

        print(f"[WARN] Rate limit reached. Waiting {wait_seconds:.0f} seconds...")
        self.sleep(wait_seconds)
        return True

    def throttle_delay(self) -> float:
        """
        Proactive pause to spread the remaining quota over the reset window.

        Returns:
            0 when throttling is off, the quota is healthy or unknown
        """
        if not self.proactive:
            return 0.0

        with self._lock:
            status = self.cached_status

        if not status or status.remaining is None or status.reset_at is None:
            return 0.0
        if status.remaining >= self.low_water_mark:
            return 0.0

        time_to_reset = status.reset_at - self.clock()
        if time_to_reset <= 0:
            return 0.0

        per_request = time_to_reset / max(1, status.remaining)
        return min(self.max_throttle_delay, per_request)

    def wait_if_needed(self) -> None:
        """Apply the proactive pause, if any."""
        delay = self.throttle_delay()
        if delay > 0:
            self.sleep(delay)

    def get_remaining_requests(self) -> Optional[int]:
        """Get remaining requests from cached status."""
        if self.cached_status:
            return self.cached_status.remaining
        return None

    def seconds_until_reset(self) -> Optional[int]:
        """Whole seconds until the cached reset time, for progress output."""
        if not self.cached_status or self.cached_status.reset_at is None:
            return None
        return max(0, math.ceil(self.cached_status.reset_at - self.clock()))
