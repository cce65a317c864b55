"""Bounded exponential backoff around single provider attempts.

An attempt never raises to request a retry. It returns an `AttemptResult`
whose outcome tells the loop what to do next:

- SUCCESS: stop, the value is usable.
- RETRYABLE: non-2xx status or a network error; back off and try again.
- TERMINAL: the provider answered but the body is unusable; stop at once.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Optional

from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="data_sources/retry")

RATE_LIMITED_STATUS = 429


class AttemptOutcome(str, Enum):
    """How a single provider attempt ended."""
    SUCCESS = "success"
    RETRYABLE = "retryable"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class AttemptResult:
    """Outcome of one provider call plus whatever detail the caller may surface."""
    outcome: AttemptOutcome
    value: Any = None
    status_code: Optional[int] = None
    reason: str = ""
    upstream_message: Optional[str] = None
    attempts: int = 1

    @classmethod
    def success(cls, value: Any, *, status_code: Optional[int] = 200) -> "AttemptResult":
        return cls(outcome=AttemptOutcome.SUCCESS, value=value, status_code=status_code)

    @classmethod
    def retryable(
        cls,
        reason: str,
        *,
        status_code: Optional[int] = None,
        upstream_message: Optional[str] = None,
    ) -> "AttemptResult":
        return cls(
            outcome=AttemptOutcome.RETRYABLE,
            reason=reason,
            status_code=status_code,
            upstream_message=upstream_message,
        )

    @classmethod
    def terminal(cls, reason: str, *, status_code: Optional[int] = None) -> "AttemptResult":
        return cls(outcome=AttemptOutcome.TERMINAL, reason=reason, status_code=status_code)

    @property
    def rate_limited(self) -> bool:
        return self.status_code == RATE_LIMITED_STATUS


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt limit and backoff schedule (delays in milliseconds)."""
    max_attempts: int = 3
    initial_delay_ms: int = 1000
    rate_limit_multiplier: int = 4

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.max_attempts,
            initial_delay_ms=settings.initial_delay_ms,
            rate_limit_multiplier=settings.rate_limit_multiplier,
        )

    def next_delay_ms(self, pending_ms: int, *, rate_limited: bool) -> int:
        """Delay to sleep now; 429s scale the pending delay before it is used."""
        if rate_limited:
            return pending_ms * self.rate_limit_multiplier
        return pending_ms


def call_with_retry(
    attempt: Callable[[], AttemptResult],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "provider",
) -> AttemptResult:
    """
    Run `attempt` until it stops being RETRYABLE or the attempt limit is hit.

    Attempts run strictly one after another. There is no sleep after the
    final attempt. The returned result records how many attempts were made.
    """
    pending_ms = policy.initial_delay_ms
    result: Optional[AttemptResult] = None

    for attempt_no in range(1, policy.max_attempts + 1):
        result = replace(attempt(), attempts=attempt_no)
        if result.outcome is not AttemptOutcome.RETRYABLE:
            if result.outcome is AttemptOutcome.TERMINAL:
                logger.error("%s attempt %d failed and will not be retried: %s", label, attempt_no, result.reason)
            return result

        if attempt_no == policy.max_attempts:
            break

        delay_ms = policy.next_delay_ms(pending_ms, rate_limited=result.rate_limited)
        logger.warning(
            "%s attempt %d/%d failed (%s%s); retrying in %d ms",
            label, attempt_no, policy.max_attempts, result.reason,
            ", rate limited" if result.rate_limited else "", delay_ms,
        )
        sleep(delay_ms / 1000.0)
        pending_ms = delay_ms * 2

    logger.error(
        "%s failed after %d attempts: %s (upstream message: %s)",
        label, policy.max_attempts, result.reason, result.upstream_message or "none",
    )
    return result
