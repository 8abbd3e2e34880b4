"""Tests for the busy / rate-limited retry decision."""

from __future__ import annotations

import pytest

from catalog_sync.reference.retry import RetryPolicy, describe_status


@pytest.mark.parametrize("status", [429, 503])
def test_transient_statuses_are_retryable(status: int) -> None:
    assert RetryPolicy.is_retryable(status)


@pytest.mark.parametrize("status", [400, 404, 500, 502, 504])
def test_other_statuses_are_not_retried(status: int) -> None:
    decision = RetryPolicy().decide(1, status, 1.0)
    assert decision.retry is False


def test_backoff_doubles_and_caps_at_sixty_seconds() -> None:
    policy = RetryPolicy()
    wait = 1.0
    waits = []
    for attempt in range(1, 10):
        decision = policy.decide(attempt, 429, wait)
        assert decision.retry
        wait = decision.wait
        waits.append(wait)
    assert waits == [2.0, 4.0, 8.0, 16.0, 32.0, 60.0, 60.0, 60.0, 60.0]


def test_last_attempt_gives_up() -> None:
    decision = RetryPolicy(max_attempts=10).decide(10, 503, 60.0)
    assert decision.retry is False
    assert decision.wait == 60.0


def test_max_attempts_must_be_positive() -> None:
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)


def test_describe_status() -> None:
    assert describe_status(503) == "Reference service busy"
    assert describe_status(429) == "Rate limited"
    assert describe_status(418) == "HTTP 418"
