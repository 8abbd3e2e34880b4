# catalog_sync/reference/retry.py

"""Retry policy for busy / rate-limited responses.

Pure decision logic only; the client does the sleeping and dispatching.
"""

from __future__ import annotations

from dataclasses import dataclass

SERVICE_UNAVAILABLE = 503
TOO_MANY_REQUESTS = 429

RETRYABLE_STATUSES = frozenset({SERVICE_UNAVAILABLE, TOO_MANY_REQUESTS})

DEFAULT_MAX_ATTEMPTS = 10
DEFAULT_MAX_BACKOFF = 60.0


@dataclass(slots=True, frozen=True)
class RetryDecision:
    retry: bool
    wait: float


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    max_backoff: float = DEFAULT_MAX_BACKOFF

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            msg = "max_attempts must be >= 1."
            raise ValueError(msg)

    @staticmethod
    def is_retryable(status_code: int) -> bool:
        return status_code in RETRYABLE_STATUSES

    def next_wait(self, previous_wait: float) -> float:
        """Double the previous backoff, capped at `max_backoff`."""
        return min(self.max_backoff, previous_wait * 2)

    def decide(self, attempt: int, status_code: int, previous_wait: float) -> RetryDecision:
        """Decide what to do after `attempt` (1-based) returned `status_code`.

        `wait` is the backoff to sleep before the next attempt; when no retry
        follows it is the last backoff value reached.
        """
        if not self.is_retryable(status_code):
            return RetryDecision(retry=False, wait=0.0)
        if attempt >= self.max_attempts:
            return RetryDecision(retry=False, wait=previous_wait)
        return RetryDecision(retry=True, wait=self.next_wait(previous_wait))


def describe_status(status_code: int) -> str:
    if status_code == SERVICE_UNAVAILABLE:
        return "Reference service busy"
    if status_code == TOO_MANY_REQUESTS:
        return "Rate limited"
    return f"HTTP {status_code}"
