"""Tests for the bounded retry helper."""

from __future__ import annotations

import pytest


class _Flaky:
    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            message = f"failure {self.calls}"
            raise RuntimeError(message)
        return "shipped"


def test_retry_recovers_on_final_attempt(
    ship_common: object, capsys: pytest.CaptureFixture[str]
) -> None:
    """Two failures followed by a success is a success with three attempts."""

    action = _Flaky(failures=2)

    assert ship_common.retry_on_fail(action, times=3, label="ship a.rpm") == "shipped"
    assert action.calls == 3, "The action should run three times"
    err = capsys.readouterr().err
    assert err.count("::warning title=Retrying::ship a.rpm failed") == 2
    assert "(attempt 1 of 3)" in err
    assert "(attempt 2 of 3)" in err


def test_retry_raises_final_failure(ship_common: object) -> None:
    action = _Flaky(failures=3)

    with pytest.raises(RuntimeError, match="failure 3"):
        ship_common.retry_on_fail(action, times=3)
    assert action.calls == 3, "No attempt beyond the limit should run"


def test_retry_single_attempt_does_not_retry(ship_common: object) -> None:
    action = _Flaky(failures=1)

    with pytest.raises(RuntimeError, match="failure 1"):
        ship_common.retry_on_fail(action, times=1)
    assert action.calls == 1


def test_retry_sleeps_between_attempts(ship_common: object) -> None:
    delays: list[float] = []

    ship_common.retry_on_fail(_Flaky(failures=2), times=3, delay=0.5, sleep=delays.append)

    assert delays == [0.5, 0.5], "Only failed non-final attempts should wait"


def test_retry_rejects_non_positive_limit(ship_common: object) -> None:
    with pytest.raises(ValueError, match="at least 1"):
        ship_common.retry_on_fail(lambda: None, times=0)
