"""Test the one-shot schedulers.

Tests for zen_sutra.tracer.scheduler:
    - ManualScheduler fires on time, in order, exactly once
    - Cancelled handles never fire; cancelling twice is harmless
    - Callbacks scheduled while advancing fire if due
    - AsyncioScheduler runs and cancels on a real event loop

Run:
    pytest tests/test_scheduler.py -v
"""

import asyncio

import pytest

from zen_sutra.tracer.scheduler import AsyncioScheduler, ManualScheduler


class TestManualScheduler:
    def test_fires_when_due(self) -> None:
        sched = ManualScheduler()
        fired = []
        sched.call_later(1500, lambda: fired.append(sched.now_ms))

        assert sched.advance(1499) == 0
        assert fired == []
        assert sched.advance(1) == 1
        assert fired == [1500]
        assert sched.pending == 0

    def test_fires_once(self) -> None:
        sched = ManualScheduler()
        fired = []
        sched.call_later(10, lambda: fired.append(1))
        sched.advance(100)
        sched.advance(100)
        assert fired == [1]

    def test_order_by_due_time_then_schedule_order(self) -> None:
        sched = ManualScheduler()
        order = []
        sched.call_later(20, lambda: order.append("late"))
        sched.call_later(10, lambda: order.append("first"))
        sched.call_later(10, lambda: order.append("second"))
        sched.advance(50)
        assert order == ["first", "second", "late"]

    def test_cancel(self) -> None:
        sched = ManualScheduler()
        fired = []
        handle = sched.call_later(10, lambda: fired.append(1))
        sched.cancel(handle)
        sched.cancel(handle)

        assert sched.pending == 0
        assert sched.advance(100) == 0
        assert fired == []

    def test_cancel_after_fire_is_noop(self) -> None:
        sched = ManualScheduler()
        handle = sched.call_later(10, lambda: None)
        sched.advance(10)
        sched.cancel(handle)
        assert sched.pending == 0

    def test_rescheduled_during_advance(self) -> None:
        sched = ManualScheduler()
        fired = []

        def first():
            fired.append(("first", sched.now_ms))
            sched.call_later(5, lambda: fired.append(("second", sched.now_ms)))

        sched.call_later(10, first)
        assert sched.advance(20) == 2
        assert fired == [("first", 10), ("second", 15)]
        assert sched.now_ms == 20

    def test_negative_advance_rejected(self) -> None:
        with pytest.raises(ValueError):
            ManualScheduler().advance(-1)


class TestAsyncioScheduler:
    def test_call_later_runs_on_loop(self) -> None:
        fired = []

        async def run():
            sched = AsyncioScheduler()
            sched.call_later(10, lambda: fired.append("due"))
            await asyncio.sleep(0.05)

        asyncio.run(run())
        assert fired == ["due"]

    def test_cancel_prevents_callback(self) -> None:
        fired = []

        async def run():
            sched = AsyncioScheduler()
            handle = sched.call_later(10, lambda: fired.append("due"))
            sched.cancel(handle)
            await asyncio.sleep(0.05)

        asyncio.run(run())
        assert fired == []
