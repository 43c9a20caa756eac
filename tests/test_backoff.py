"""Unit tests for the backoff schedule and retry loop."""

from __future__ import annotations

import logging
from typing import List

import pytest

from models.errors import ErrorKind, SyncError
from services.backoff import DEFAULT_POLICY, BackoffPolicy, retry_with_backoff


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FlakyOperation:
    """Fails with the given errors in order, then returns ``result``."""

    def __init__(self, errors: List[SyncError], result: str = "ok") -> None:
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


def _error(kind: ErrorKind, message: str = "failed") -> SyncError:
    return SyncError(kind, message)


def test_default_policy_schedule() -> None:
    assert DEFAULT_POLICY.delays() == [1, 2, 4]


@pytest.mark.parametrize(
    ("first_delay", "factor", "max_retries", "expected"),
    [
        (1, 2.0, 3, [1, 2, 4]),
        (3, 2.0, 2, [3, 6]),
        (1, 1.5, 3, [1, 2, 2]),
        (1, 2.5, 3, [1, 3, 6]),
        (2, 1.0, 4, [2, 2, 2, 2]),
    ],
)
def test_delay_is_rounded_power_of_factor(first_delay, factor, max_retries, expected) -> None:
    policy = BackoffPolicy(first_delay=first_delay, factor=factor, max_retries=max_retries)

    assert policy.delays() == expected


@pytest.mark.parametrize(
    ("first_delay", "max_retries"),
    [(0, 3), (-1, 3), (1, 0), (1, -2)],
)
def test_invalid_policy_is_rejected(first_delay, max_retries) -> None:
    with pytest.raises(SyncError) as excinfo:
        BackoffPolicy(first_delay=first_delay, max_retries=max_retries)

    assert excinfo.value.kind is ErrorKind.invalid_policy


def test_delay_outside_schedule_is_rejected() -> None:
    with pytest.raises(SyncError) as excinfo:
        DEFAULT_POLICY.delay_for(4)

    assert excinfo.value.kind is ErrorKind.invalid_argument


def test_should_retry_stops_after_max_retries() -> None:
    policy = BackoffPolicy(max_retries=2)

    assert [policy.should_retry(n) for n in range(1, 4)] == [True, True, False]


@pytest.mark.asyncio
async def test_retries_rate_limits_until_success() -> None:
    sleeper = SleepRecorder()
    operation = FlakyOperation([_error(ErrorKind.rate_limited)] * 3)

    result = await retry_with_backoff(operation, DEFAULT_POLICY, sleep=sleeper)

    assert result == "ok"
    assert operation.calls == 4
    assert sleeper.delays == [1, 2, 4]


@pytest.mark.asyncio
async def test_last_error_propagates_after_exhausting_retries() -> None:
    sleeper = SleepRecorder()
    errors = [_error(ErrorKind.remote_failure, f"failure {n}") for n in range(1, 6)]
    operation = FlakyOperation(errors)

    with pytest.raises(SyncError) as excinfo:
        await retry_with_backoff(operation, DEFAULT_POLICY, sleep=sleeper)

    assert excinfo.value.message == "failure 4"
    assert operation.calls == 4
    assert sleeper.delays == [1, 2, 4]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kind",
    [
        ErrorKind.invalid_request,
        ErrorKind.access_denied,
        ErrorKind.not_found,
        ErrorKind.invalid_argument,
    ],
)
async def test_terminal_errors_are_not_retried(kind: ErrorKind) -> None:
    sleeper = SleepRecorder()
    operation = FlakyOperation([_error(kind)])

    with pytest.raises(SyncError) as excinfo:
        await retry_with_backoff(operation, DEFAULT_POLICY, sleep=sleeper)

    assert excinfo.value.kind is kind
    assert operation.calls == 1
    assert sleeper.delays == []


@pytest.mark.asyncio
async def test_each_call_has_its_own_failure_counter() -> None:
    sleeper = SleepRecorder()
    policy = BackoffPolicy(max_retries=2)

    for _ in range(2):
        operation = FlakyOperation([_error(ErrorKind.remote_failure)] * 2)
        assert await retry_with_backoff(operation, policy, sleep=sleeper) == "ok"

    assert sleeper.delays == [1, 2, 1, 2]


@pytest.mark.asyncio
async def test_scheduled_retries_are_logged(caplog) -> None:
    sleeper = SleepRecorder()
    operation = FlakyOperation([_error(ErrorKind.rate_limited, "slow down")])

    with caplog.at_level(logging.WARNING, logger="services.backoff"):
        await retry_with_backoff(
            operation, DEFAULT_POLICY, sleep=sleeper, operation_name="fetch_outages"
        )

    records = [record for record in caplog.records if record.name == "services.backoff"]
    assert len(records) == 1
    assert "slow down" in records[0].getMessage()
    assert getattr(records[0], "operation") == "fetch_outages"
    assert getattr(records[0], "attempt") == 1
    assert getattr(records[0], "delay") == 1
