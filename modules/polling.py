"""
Fixed-interval polling used by the canary lifecycle.

Each wait fetches fresh state from Synthetics, checks a condition against it
and sleeps between attempts. The attempt budget is derived from the
POLL_INTERVAL_SECONDS / POLL_TIMEOUT_SECONDS environment variables and
applies to each loop. An optional deadline is shared by every loop of one
invocation so the run gives up before Lambda kills it.
"""
import math
import os
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional, TypeVar

from constants import (
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_POLL_TIMEOUT_SECONDS,
    ENV_POLL_INTERVAL_SECONDS,
    ENV_POLL_TIMEOUT_SECONDS,
)
from errors import PollingTimeoutError

State = TypeVar("State")


@dataclass(frozen=True)
class PollSettings:
    interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    # None keeps polling until the condition holds
    max_attempts: Optional[int] = None
    # time.monotonic() value after which no loop sleeps again
    deadline: Optional[float] = None

    def with_deadline(self, remaining_seconds: float, clock: Callable[[], float] = time.monotonic) -> "PollSettings":
        return replace(self, deadline=clock() + remaining_seconds)

    @classmethod
    def from_timeout(cls, interval_seconds: float, timeout_seconds: float) -> "PollSettings":
        """
        Build settings from a total wait budget.

        A timeout of 0 (or less) disables the budget entirely.
        """
        if interval_seconds <= 0:
            raise ValueError(f"Poll interval must be positive, got {interval_seconds}")
        if timeout_seconds <= 0:
            return cls(interval_seconds=interval_seconds, max_attempts=None)
        return cls(
            interval_seconds=interval_seconds,
            max_attempts=max(1, math.ceil(timeout_seconds / interval_seconds)),
        )

    @classmethod
    def from_environment(cls, environ=None) -> "PollSettings":
        # Environment variables documentation: https://docs.aws.amazon.com/lambda/latest/dg/configuration-envvars.html
        environ = os.environ if environ is None else environ
        interval = float(environ.get(ENV_POLL_INTERVAL_SECONDS, DEFAULT_POLL_INTERVAL_SECONDS))
        timeout = float(environ.get(ENV_POLL_TIMEOUT_SECONDS, DEFAULT_POLL_TIMEOUT_SECONDS))
        return cls.from_timeout(interval, timeout)


def wait_for_state(
    fetch: Callable[[], State],
    condition: Callable[[State], bool],
    settings: PollSettings,
    sleep: Callable[[float], None] = time.sleep,
    description: str = "state",
    clock: Callable[[], float] = time.monotonic,
) -> State:
    """
    Poll fetch() until condition(state) holds and return that state.

    Errors raised by fetch() propagate straight away. Raises
    PollingTimeoutError once settings.max_attempts fetches have failed the
    condition, or when the next attempt would start after settings.deadline.
    """
    attempts = 0
    while True:
        current_state = fetch()
        attempts += 1

        if condition(current_state):
            return current_state

        if settings.max_attempts is not None and attempts >= settings.max_attempts:
            raise PollingTimeoutError(description, attempts)

        if settings.deadline is not None and clock() + settings.interval_seconds > settings.deadline:
            raise PollingTimeoutError(description, attempts)

        sleep(settings.interval_seconds)


def wait_until(
    predicate: Callable[[], bool],
    settings: PollSettings,
    sleep: Callable[[float], None] = time.sleep,
    description: str = "condition",
    clock: Callable[[], float] = time.monotonic,
) -> None:
    wait_for_state(predicate, bool, settings, sleep=sleep, description=description, clock=clock)
