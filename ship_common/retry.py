"""Bounded retries for remote operations."""

from __future__ import annotations

import sys
import time
import typing as typ

__all__ = ["retry_on_fail"]

T = typ.TypeVar("T")


def retry_on_fail(
    action: typ.Callable[[], T],
    *,
    times: int = 3,
    delay: float = 0.0,
    label: str = "operation",
    sleep: typ.Callable[[float], None] = time.sleep,
) -> T:
    """Call ``action`` until it succeeds, at most ``times`` times.

    Every failure before the last attempt is reported on stderr and the whole
    ``action`` runs again from the start. The exception raised by the final
    attempt propagates unchanged.

    Examples
    --------
    >>> retry_on_fail(lambda: "done", times=3)
    'done'
    """
    if times < 1:
        message = f"times must be at least 1, got {times}"
        raise ValueError(message)

    for attempt in range(1, times + 1):
        try:
            return action()
        except Exception as exc:
            if attempt == times:
                raise
            print(
                f"::warning title=Retrying::{label} failed "
                f"(attempt {attempt} of {times}): {exc}",
                file=sys.stderr,
            )
            if delay:
                sleep(delay)
    raise AssertionError("unreachable")  # pragma: no cover
