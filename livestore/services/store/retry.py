"""
Retrying Operation

Runs a remote store operation up to `max_attempts` times. Each attempt
reads the current config snapshot and gets its own deadline from it, so a
config change between attempts is picked up by the next attempt.

There is no delay between attempts.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, TypeVar

from livestore.common.config import OperationKind
from livestore.common.exceptions import DeadlineExceededError
from livestore.common.logging_setup import get_service_logger
from livestore.services.config.store import ConfigStore
from livestore.services.metrics.counter import EventCounter

logger = get_service_logger("store.retry")

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 2


class _OperationTimeout(Exception):
    """A TimeoutError raised by the operation itself, not by the attempt deadline"""

    def __init__(self, error: BaseException):
        self.error = error
        super().__init__(str(error))


async def _own_timeouts(operation: Callable[[], Awaitable[T]]) -> T:
    # asyncio.TimeoutError is the builtin TimeoutError on 3.11+, so an
    # operation's own timeout would otherwise look like an expired deadline
    try:
        return await operation()
    except asyncio.TimeoutError as e:
        raise _OperationTimeout(e) from e


@dataclass(frozen=True)
class AttemptFailure:
    """One failed attempt"""
    attempt: int
    error: BaseException
    timeout_ms: int
    category: str


@dataclass
class RetryOutcome(Generic[T]):
    """Result of a retried operation plus the log of failed attempts"""
    value: T | None = None
    failures: list[AttemptFailure] = field(default_factory=list)
    succeeded: bool = False

    @property
    def ok(self) -> bool:
        return self.succeeded

    @property
    def attempts(self) -> int:
        return len(self.failures) + (1 if self.succeeded else 0)

    @property
    def error(self) -> BaseException | None:
        """Terminal error when every attempt failed"""
        if self.succeeded or not self.failures:
            return None
        return self.failures[-1].error


class RetryingOperation:
    """
    Executes fallible store operations with per-attempt deadlines.

    Every failed attempt is logged with its attempt number and counted in
    the EventCounter under its classified category.
    """

    def __init__(
        self,
        config_store: ConfigStore,
        counter: EventCounter,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        self.config_store = config_store
        self.counter = counter
        self.max_attempts = max_attempts

    async def run(
        self,
        kind: OperationKind,
        operation: Callable[[], Awaitable[T]],
        name: str | None = None,
    ) -> RetryOutcome[T]:
        """
        Run operation until it succeeds or attempts run out.

        Args:
            kind: Which configured timeout applies
            operation: Zero-argument coroutine factory; called once per attempt
            name: Label for logs (defaults to kind)

        Returns:
            RetryOutcome with the value or the per-attempt failures
        """
        name = name or kind.value
        outcome: RetryOutcome[T] = RetryOutcome()

        for attempt in range(1, self.max_attempts + 1):
            timeout_ms = self.config_store.read().timeout_for(kind)

            try:
                outcome.value = await self._attempt(operation, timeout_ms, name)
            except Exception as e:
                category = self.counter.record_error(e)
                outcome.failures.append(AttemptFailure(attempt, e, timeout_ms, category))
                logger.warning(
                    f"{name} error: {e}, attempt {attempt}",
                    extra={
                        "operation": name,
                        "attempt": attempt,
                        "timeout_ms": timeout_ms,
                        "category": category,
                    },
                )
                continue

            outcome.succeeded = True
            return outcome

        logger.error(
            f"{name} failed after {self.max_attempts} attempts: {outcome.error}",
            extra={"operation": name, "attempts": self.max_attempts},
        )
        return outcome

    async def _attempt(
        self,
        operation: Callable[[], Awaitable[Any]],
        timeout_ms: int,
        name: str,
    ) -> Any:
        try:
            return await asyncio.wait_for(_own_timeouts(operation), timeout=timeout_ms / 1000)
        except _OperationTimeout as e:
            raise e.error from None
        except asyncio.TimeoutError:
            raise DeadlineExceededError(operation=name, timeout_ms=timeout_ms)
