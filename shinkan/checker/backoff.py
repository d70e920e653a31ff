"""Bounded retry with linear backoff."""

from __future__ import annotations

import time
from typing import Callable, TypeVar

from ..errors import FetchError, ShinkanError

T = TypeVar("T")


class LinearBackoff:
    """Waits attempt_index units after the attempt_index-th failure.

    Args:
        unit_seconds: Length of one unit
        sleep: Callable used to wait; tests pass a recorder instead of time.sleep
    """

    def __init__(self, unit_seconds: float = 1.0, sleep: Callable[[float], None] = time.sleep):
        self.unit_seconds = unit_seconds
        self._sleep = sleep

    def delay_for(self, attempt_index: int) -> float:
        return attempt_index * self.unit_seconds

    def wait(self, attempt_index: int) -> None:
        self._sleep(self.delay_for(attempt_index))


class RetriesExhausted(ShinkanError):
    """Raised by retry_call when no attempt succeeded.

    Attributes:
        last_error: Error raised by the final attempt
        attempts: Number of attempts made
    """

    def __init__(self, last_error: Exception, attempts: int):
        super().__init__(str(last_error))
        self.last_error = last_error
        self.attempts = attempts


def retry_call(
    operation: Callable[[], T],
    max_attempts: int,
    backoff: LinearBackoff,
    retry_on: tuple[type[Exception], ...] = (FetchError,),
    give_up_on: tuple[type[Exception], ...] = (ShinkanError,),
    on_error: Callable[[int, Exception], None] | None = None,
) -> tuple[T, int]:
    """Call operation up to max_attempts times.

    Errors in retry_on trigger a backoff wait and another attempt. Errors
    in give_up_on (and not in retry_on) end the loop at once. Anything
    else propagates unchanged.

    Returns:
        (value, attempts used)

    Raises:
        RetriesExhausted: When every attempt failed or a give-up error occurred
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    last_error: Exception | None = None
    for attempt in range(1, max_attempts + 1):
        try:
            return operation(), attempt
        except retry_on as exc:
            last_error = exc
            if on_error is not None:
                on_error(attempt, exc)
            if attempt < max_attempts:
                backoff.wait(attempt)
        except give_up_on as exc:
            if on_error is not None:
                on_error(attempt, exc)
            raise RetriesExhausted(exc, attempt) from exc

    assert last_error is not None
    raise RetriesExhausted(last_error, max_attempts) from last_error
