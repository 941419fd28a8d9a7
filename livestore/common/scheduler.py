"""
Periodic Background Loops

ScheduledLoop fires an async callback on a fixed period measured from the
previous scheduled tick, so a slow callback does not push later ticks
back. Ticks that fall entirely inside a slow callback are skipped, not
queued.

The period can be retuned while the loop runs (set_interval). The sleep
already in progress keeps its old period; the new one applies from the
tick after.

Usage:
    loop = ScheduledLoop(60.0, refresher.refresh_once, name="config-refresh")
    await loop.start()
    ...
    loop.set_interval(5.0)
    ...
    await loop.stop()
"""

import asyncio
from dataclasses import asdict, dataclass
from typing import Awaitable, Callable

from .logging_setup import get_service_logger

logger = get_service_logger("scheduler")


@dataclass
class LoopStats:
    """Counters for one loop"""
    execution_count: int = 0
    error_count: int = 0
    skipped_count: int = 0
    last_execution_s: float = 0.0


class ScheduledLoop:
    """
    Runs `callback` every `interval` seconds in a background task.

    The first run happens one interval after start(). A callback that
    raises is logged and counted; the loop keeps going.
    """

    def __init__(
        self,
        interval_seconds: float,
        callback: Callable[[], Awaitable[object]],
        name: str = "loop",
    ):
        if interval_seconds <= 0:
            raise ValueError(f"interval must be positive, got {interval_seconds}")

        self.interval = interval_seconds
        self.callback = callback
        self.name = name
        self.stats = LoopStats()

        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def execution_count(self) -> int:
        return self.stats.execution_count

    async def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run(), name=f"loop-{self.name}")
        logger.info(
            f"Loop '{self.name}' started (every {self.interval}s)",
            extra={"loop": self.name, "interval_s": self.interval},
        )

    async def stop(self) -> None:
        """Cancel the loop task and wait for it; an in-flight callback is cancelled too"""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info(f"Loop '{self.name}' stopped", extra={"loop": self.name})

    def set_interval(self, interval_seconds: float) -> None:
        """Change the period from the next scheduled tick on"""
        if interval_seconds <= 0:
            logger.warning(
                f"Loop '{self.name}' ignoring non-positive interval {interval_seconds}"
            )
            return
        if interval_seconds == self.interval:
            return
        logger.info(
            f"Loop '{self.name}' interval {self.interval}s -> {interval_seconds}s",
            extra={"loop": self.name, "interval_s": interval_seconds},
        )
        self.interval = interval_seconds

    async def _run(self) -> None:
        clock = asyncio.get_running_loop()
        due = clock.time() + self.interval

        while True:
            await asyncio.sleep(max(0.0, due - clock.time()))

            started = clock.time()
            await self._tick()
            self.stats.last_execution_s = clock.time() - started

            due = self._next_due(due, clock.time())

    async def _tick(self) -> None:
        try:
            await self.callback()
        except Exception as e:
            self.stats.error_count += 1
            logger.error(f"Loop '{self.name}' callback failed: {e}", exc_info=True)
        else:
            self.stats.execution_count += 1

    def _next_due(self, due: float, now: float) -> float:
        """Next tick after `now`, stepping from `due` by the current interval"""
        due += self.interval
        if due > now:
            return due

        missed = int((now - due) // self.interval) + 1
        self.stats.skipped_count += missed
        logger.warning(
            f"Loop '{self.name}' skipped {missed} ticks "
            f"(callback took {self.stats.last_execution_s:.3f}s)"
        )
        return due + missed * self.interval

    def get_stats(self) -> dict:
        return {
            "name": self.name,
            "interval_s": self.interval,
            "running": self.is_running,
            **asdict(self.stats),
            "last_execution_s": round(self.stats.last_execution_s, 3),
        }


class SchedulerGroup:
    """Loops started and stopped together, keyed by name"""

    def __init__(self):
        self._loops: dict[str, ScheduledLoop] = {}

    def add(self, loop: ScheduledLoop) -> ScheduledLoop:
        if loop.name in self._loops:
            raise ValueError(f"Duplicate loop name: {loop.name}")
        self._loops[loop.name] = loop
        return loop

    def get(self, name: str) -> ScheduledLoop | None:
        return self._loops.get(name)

    async def start_all(self) -> None:
        for loop in self._loops.values():
            await loop.start()

    async def stop_all(self) -> None:
        # Reverse start order
        for loop in reversed(list(self._loops.values())):
            await loop.stop()

    def get_stats(self) -> dict:
        return {name: loop.get_stats() for name, loop in self._loops.items()}
