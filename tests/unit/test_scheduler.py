"""Tests for the periodic scheduler."""

import asyncio

import pytest

from livestore.common.scheduler import ScheduledLoop, SchedulerGroup

pytestmark = pytest.mark.unit


class TestScheduledLoop:
    """Tests for ScheduledLoop."""

    def test_rejects_non_positive_interval(self) -> None:
        async def noop() -> None:
            pass

        with pytest.raises(ValueError):
            ScheduledLoop(0, noop)

    @pytest.mark.asyncio
    async def test_first_run_is_one_interval_away(self) -> None:
        calls = []

        async def tick() -> None:
            calls.append(1)

        loop = ScheduledLoop(10.0, tick, name="slow")
        await loop.start()
        await asyncio.sleep(0.05)
        await loop.stop()

        assert calls == []

    @pytest.mark.asyncio
    async def test_runs_repeatedly(self) -> None:
        calls = []

        async def tick() -> None:
            calls.append(1)

        loop = ScheduledLoop(0.02, tick, name="fast")
        await loop.start()
        assert loop.is_running
        await asyncio.sleep(0.15)
        await loop.stop()

        assert len(calls) >= 3
        assert loop.execution_count == len(calls)
        assert not loop.is_running

    @pytest.mark.asyncio
    async def test_callback_error_does_not_stop_loop(self) -> None:
        calls = []

        async def flaky() -> None:
            calls.append(1)
            raise RuntimeError("boom")

        loop = ScheduledLoop(0.02, flaky, name="flaky")
        await loop.start()
        await asyncio.sleep(0.15)
        await loop.stop()

        assert len(calls) >= 3
        assert loop.get_stats()["error_count"] == len(calls)

    @pytest.mark.asyncio
    async def test_no_runs_after_stop(self) -> None:
        calls = []

        async def tick() -> None:
            calls.append(1)

        loop = ScheduledLoop(0.02, tick)
        await loop.start()
        await asyncio.sleep(0.07)
        await loop.stop()
        seen = len(calls)
        await asyncio.sleep(0.07)

        assert len(calls) == seen

    @pytest.mark.asyncio
    async def test_retuned_interval_applies_to_later_runs(self) -> None:
        calls = []

        async def tick() -> None:
            calls.append(1)

        loop = ScheduledLoop(0.02, tick)
        await loop.start()
        await asyncio.sleep(0.05)
        loop.set_interval(10.0)
        await asyncio.sleep(0.05)
        seen = len(calls)
        await asyncio.sleep(0.1)
        await loop.stop()

        assert len(calls) == seen
        assert loop.interval == 10.0

    def test_set_interval_ignores_non_positive(self) -> None:
        async def noop() -> None:
            pass

        loop = ScheduledLoop(5.0, noop)
        loop.set_interval(0)
        loop.set_interval(-1)

        assert loop.interval == 5.0


class TestSchedulerGroup:
    """Tests for SchedulerGroup."""

    @pytest.mark.asyncio
    async def test_start_and_stop_all(self) -> None:
        async def noop() -> None:
            pass

        group = SchedulerGroup()
        first = group.add(ScheduledLoop(1.0, noop, name="a"))
        second = group.add(ScheduledLoop(1.0, noop, name="b"))

        await group.start_all()
        assert first.is_running and second.is_running
        await group.stop_all()

        assert not first.is_running and not second.is_running
        assert set(group.get_stats()) == {"a", "b"}
        assert group.get("a") is first
        assert group.get("missing") is None
