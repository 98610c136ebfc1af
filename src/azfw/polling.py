"""Poll-until-predicate utility shared by the deallocate and allocate waits.

Elapsed time is accumulated from the policy rather than read from a wall
clock, so the deadline arithmetic is exact and tests can substitute `sleep`.
An observation is only ever made after its delay has elapsed, and the loop
never sleeps past the deadline.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed-interval observation policy.

    Attributes:
        interval_seconds: Delay between consecutive observations.
        max_elapsed_seconds: Total time budget, including the initial delay.
        initial_delay_seconds: Delay before the first observation. Defaults
            to interval_seconds.
    """

    interval_seconds: float
    max_elapsed_seconds: float
    initial_delay_seconds: float | None = None

    def __post_init__(self) -> None:
        if self.interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        if self.max_elapsed_seconds < self.first_delay:
            raise ValueError("max_elapsed_seconds must cover the initial delay")

    @property
    def first_delay(self) -> float:
        if self.initial_delay_seconds is None:
            return self.interval_seconds
        return self.initial_delay_seconds


@dataclass
class PollOutcome(Generic[T]):
    """Result of a poll loop."""

    value: T | None
    satisfied: bool
    observations: int
    elapsed_seconds: float


def poll_until(
    observe: Callable[[], T],
    predicate: Callable[[T], bool],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], None] = time.sleep,
    description: str = "condition",
) -> PollOutcome[T]:
    """Observe repeatedly until the predicate holds or the deadline passes.

    Only the observation is retried. Errors raised by `observe` propagate.

    Returns:
        PollOutcome with the last observed value. `satisfied` is False when
        the deadline was reached; the caller decides whether that is fatal.
    """
    elapsed = policy.first_delay
    if elapsed > 0:
        sleep(elapsed)

    observations = 0
    while True:
        value = observe()
        observations += 1
        if predicate(value):
            return PollOutcome(value, True, observations, elapsed)

        if elapsed + policy.interval_seconds > policy.max_elapsed_seconds:
            return PollOutcome(value, False, observations, elapsed)

        sleep(policy.interval_seconds)
        elapsed += policy.interval_seconds
        logger.debug(
            "Still waiting...",
            extra={
                "waiting_for": description,
                "elapsed_seconds": elapsed,
                "observations": observations,
            },
        )
