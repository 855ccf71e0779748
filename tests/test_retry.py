import asyncio

import pytest

from services.retry import RetryExecutor, RetryPolicy


def make_flaky(failures, result="ok"):
    calls = []

    async def action(attempt):
        calls.append(attempt)
        if len(calls) <= failures:
            raise ConnectionError(f"boom {attempt}")
        return result

    return action, calls


def test_succeeds_after_attempts_minus_one_failures(sleep):
    executor = RetryExecutor(sleep=sleep)
    action, calls = make_flaky(failures=2)

    result = asyncio.run(executor.execute(action, attempts=3, task_name="flaky"))

    assert result == "ok"
    assert calls == [1, 2, 3]


def test_exhausted_retries_raise_last_error(sleep):
    executor = RetryExecutor(sleep=sleep)
    action, calls = make_flaky(failures=10)

    with pytest.raises(ConnectionError, match="boom 3") as excinfo:
        asyncio.run(executor.execute(action, attempts=3, task_name="sftp.list"))

    assert calls == [1, 2, 3]
    assert "sftp.list failed after 3 attempt(s)" in excinfo.value.__notes__


def test_backoff_grows_exponentially(sleep):
    executor = RetryExecutor(sleep=sleep)
    action, _ = make_flaky(failures=10)

    with pytest.raises(ConnectionError):
        asyncio.run(executor.execute(action, attempts=4, base_delay=0.5, factor=2))

    assert sleep.delays == [0.5, 1.0, 2.0]


def test_single_attempt_never_sleeps(sleep):
    executor = RetryExecutor(sleep=sleep)
    action, calls = make_flaky(failures=1)

    with pytest.raises(ConnectionError):
        asyncio.run(executor.execute(action, attempts=1))

    assert calls == [1]
    assert sleep.delays == []


def test_default_attempts_come_from_executor(sleep):
    executor = RetryExecutor(attempts=5, sleep=sleep)
    action, calls = make_flaky(failures=4)

    assert asyncio.run(executor.execute(action, base_delay=1, factor=1)) == "ok"
    assert len(calls) == 5
    assert sleep.delays == [1, 1, 1, 1]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"attempts": 0},
        {"base_delay": 0},
        {"factor": 0.5},
    ],
)
def test_invalid_policy_is_rejected(sleep, kwargs):
    executor = RetryExecutor(sleep=sleep)
    action, calls = make_flaky(failures=0)

    with pytest.raises(ValueError):
        asyncio.run(executor.execute(action, **kwargs))
    assert calls == []


def test_policy_delay_for():
    policy = RetryPolicy(attempts=4, base_delay=1.5, factor=3)
    assert [policy.delay_for(n) for n in (1, 2, 3)] == [1.5, 4.5, 13.5]
