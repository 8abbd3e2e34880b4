# catalog_sync/reference/rate_limiter.py

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from typing import Callable

logger = logging.getLogger(__name__)

DEFAULT_MIN_DELAY = 1.0
DEFAULT_MAX_DELAY = 10.0
SUCCESS_FACTOR = 0.95
THROTTLE_FACTOR = 2.0


@dataclass(slots=True, frozen=True)
class RateLimiterState:
    """Delay between requests (seconds) and the time of the last dispatch."""

    delay: float
    last_dispatch: float | None = None

    def after_success(self, min_delay: float) -> RateLimiterState:
        if self.delay <= min_delay:
            return replace(self, delay=min_delay)
        return replace(self, delay=max(min_delay, self.delay * SUCCESS_FACTOR))

    def after_throttled(self, max_delay: float) -> RateLimiterState:
        return replace(self, delay=min(max_delay, self.delay * THROTTLE_FACTOR))

    def dispatched_at(self, now: float) -> RateLimiterState:
        return replace(self, last_dispatch=now)

    def remaining(self, now: float) -> float:
        """Seconds still to wait before the next request may go out."""
        if self.last_dispatch is None:
            return 0.0
        return max(0.0, self.delay - (now - self.last_dispatch))


class RateLimiter:
    """Adaptive rate limiter for a single external service.

    Backs off (doubles the delay) when the service signals throttling and
    recovers slowly (5% per successful request), never going below
    `min_delay` or above `max_delay`.
    """

    def __init__(
        self,
        min_delay: float = DEFAULT_MIN_DELAY,
        max_delay: float = DEFAULT_MAX_DELAY,
        initial_delay: float | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if min_delay <= 0:
            msg = "min_delay must be positive."
            raise ValueError(msg)
        if max_delay < min_delay:
            msg = "max_delay must be >= min_delay."
            raise ValueError(msg)

        if initial_delay is None:
            initial_delay = min_delay
        self._min_delay = min_delay
        self._max_delay = max_delay
        self._state = RateLimiterState(
            delay=min(max_delay, max(min_delay, initial_delay)),
        )
        self._clock = clock
        self._sleep = sleep

    @property
    def state(self) -> RateLimiterState:
        return self._state

    @property
    def current_delay(self) -> float:
        return self._state.delay

    @property
    def min_delay(self) -> float:
        return self._min_delay

    @property
    def max_delay(self) -> float:
        return self._max_delay

    def wait(self) -> None:
        """Sleep until `current_delay` has passed since the last dispatch."""
        remaining = self._state.remaining(self._clock())
        if remaining > 0:
            self._sleep(remaining)
        self._state = self._state.dispatched_at(self._clock())

    def on_success(self) -> None:
        self._state = self._state.after_success(self._min_delay)

    def on_throttled(self) -> None:
        self._state = self._state.after_throttled(self._max_delay)
        logger.debug("Throttled; request delay is now %.2fs.", self._state.delay)
