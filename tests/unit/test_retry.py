"""Tests for retried store operations."""

import asyncio

import pytest
from pymongo.errors import AutoReconnect

from livestore.common.config import ConfigSnapshot, OperationKind
from livestore.common.exceptions import DeadlineExceededError
from livestore.services.config.store import ConfigStore
from livestore.services.metrics.counter import EventCounter
from livestore.services.store.retry import RetryingOperation

pytestmark = pytest.mark.unit


class Script:
    """Operation that replays a scripted sequence of results and errors."""

    def __init__(self, *steps):
        self.steps = list(steps)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        step = self.steps.pop(0)
        if isinstance(step, BaseException):
            raise step
        if isinstance(step, float):
            await asyncio.sleep(step)
            return "late"
        return step


class TestRetryingOperation:
    """Tests for RetryingOperation.run()."""

    def test_rejects_zero_attempts(self, config_store, counter) -> None:
        with pytest.raises(ValueError):
            RetryingOperation(config_store, counter, max_attempts=0)

    @pytest.mark.asyncio
    async def test_first_attempt_succeeds(self, config_store, counter) -> None:
        retrying = RetryingOperation(config_store, counter)
        operation = Script("ok")

        outcome = await retrying.run(OperationKind.UPSERT, operation)

        assert outcome.ok
        assert outcome.value == "ok"
        assert outcome.attempts == 1
        assert outcome.error is None
        assert counter.peek() == {}

    @pytest.mark.asyncio
    async def test_fail_once_then_succeed_counts_one_failure(self, config_store, counter) -> None:
        retrying = RetryingOperation(config_store, counter)
        operation = Script(AutoReconnect("connection reset by peer"), 7)

        outcome = await retrying.run(OperationKind.FIND, operation)

        assert outcome.ok
        assert outcome.value == 7
        assert outcome.attempts == 2
        assert len(outcome.failures) == 1
        assert outcome.failures[0].attempt == 1
        assert counter.peek() == {"connection": 1}

    @pytest.mark.asyncio
    async def test_every_failed_attempt_is_counted(self, config_store, counter) -> None:
        retrying = RetryingOperation(config_store, counter)
        operation = Script(RuntimeError("first"), RuntimeError("second"))

        outcome = await retrying.run(OperationKind.AGGREGATE, operation)

        assert not outcome.ok
        assert outcome.value is None
        assert operation.calls == 2
        assert [f.attempt for f in outcome.failures] == [1, 2]
        assert str(outcome.error) == "second"
        assert counter.peek() == {"unknown": 2}

    @pytest.mark.asyncio
    async def test_max_attempts_bounds_calls(self, config_store, counter) -> None:
        retrying = RetryingOperation(config_store, counter, max_attempts=3)
        operation = Script(*(RuntimeError(str(i)) for i in range(3)))

        outcome = await retrying.run(OperationKind.DEFAULT, operation)

        assert operation.calls == 3
        assert outcome.attempts == 3

    @pytest.mark.asyncio
    async def test_deadline_is_classified(self, counter) -> None:
        store = ConfigStore(ConfigSnapshot(find_timeout_ms=20))
        retrying = RetryingOperation(store, counter)
        operation = Script(1.0, 1.0)

        outcome = await retrying.run(OperationKind.FIND, operation)

        assert not outcome.ok
        assert isinstance(outcome.error, DeadlineExceededError)
        assert str(outcome.error) == "context deadline exceeded"
        assert outcome.failures[0].timeout_ms == 20
        assert counter.peek() == {"context deadline exceeded": 2}

    @pytest.mark.asyncio
    async def test_operation_timeout_is_not_a_deadline(self, config_store, counter) -> None:
        # Raised by the operation well inside its 500ms budget
        error = TimeoutError("socket read timed out")
        retrying = RetryingOperation(config_store, counter)

        outcome = await retrying.run(OperationKind.FIND, Script(error, error))

        assert not outcome.ok
        assert outcome.error is error
        assert not isinstance(outcome.error, DeadlineExceededError)
        assert [f.category for f in outcome.failures] == ["unknown", "unknown"]
        assert counter.peek() == {"unknown": 2}

    @pytest.mark.asyncio
    async def test_each_attempt_gets_a_fresh_deadline(self, counter) -> None:
        # Two attempts of ~60ms each exceed one 100ms budget but fit two
        store = ConfigStore(ConfigSnapshot(upsert_timeout_ms=100))
        retrying = RetryingOperation(store, counter)

        async def slow_then_fail():
            await asyncio.sleep(0.06)
            raise RuntimeError("slow failure")

        attempts = []

        async def operation():
            attempts.append(1)
            if len(attempts) == 1:
                await slow_then_fail()
            await asyncio.sleep(0.06)
            return "done"

        outcome = await retrying.run(OperationKind.UPSERT, operation)

        assert outcome.ok
        assert outcome.value == "done"

    @pytest.mark.asyncio
    async def test_timeout_is_reread_between_attempts(self, counter) -> None:
        store = ConfigStore(ConfigSnapshot(agg_timeout_ms=10))
        retrying = RetryingOperation(store, counter)
        calls = []

        async def operation():
            calls.append(1)
            if len(calls) == 1:
                store.replace(ConfigSnapshot(agg_timeout_ms=1000))
            await asyncio.sleep(0.05)
            return "ok"

        outcome = await retrying.run(OperationKind.AGGREGATE, operation)

        assert outcome.ok
        assert outcome.failures[0].timeout_ms == 10
        assert counter.peek() == {"context deadline exceeded": 1}

    @pytest.mark.asyncio
    async def test_kind_selects_timeout(self, counter) -> None:
        store = ConfigStore(ConfigSnapshot(upsert_timeout_ms=11, default_timeout_ms=22))
        retrying = RetryingOperation(store, counter, max_attempts=1)

        upsert = await retrying.run(OperationKind.UPSERT, Script(RuntimeError("x")))
        default = await retrying.run(OperationKind.DEFAULT, Script(RuntimeError("x")))

        assert upsert.failures[0].timeout_ms == 11
        assert default.failures[0].timeout_ms == 22
