"""
Tests for the virtual and asyncio schedulers.
"""

import asyncio

import pytest
from linecue.scheduler import AsyncioScheduler, TimerHandle, VirtualScheduler


class TestVirtualScheduler:
    """Tests for the deterministic clock."""

    def test_nothing_runs_until_advanced(self) -> None:
        """Callbacks wait for the clock to move."""
        scheduler: VirtualScheduler = VirtualScheduler()
        calls: list[str] = []
        scheduler.call_later(0.1, lambda: calls.append("a"))
        assert calls == []
        assert scheduler.pending == 1

    def test_runs_in_due_order(self) -> None:
        """Earlier deadlines run first, ties in scheduling order."""
        scheduler: VirtualScheduler = VirtualScheduler()
        calls: list[str] = []
        scheduler.call_later(0.2, lambda: calls.append("late"))
        scheduler.call_later(0.1, lambda: calls.append("first"))
        scheduler.call_later(0.1, lambda: calls.append("second"))
        assert scheduler.advance(0.3) == 3
        assert calls == ["first", "second", "late"]

    def test_partial_advance(self) -> None:
        """Only callbacks due within the window run."""
        scheduler: VirtualScheduler = VirtualScheduler()
        calls: list[str] = []
        scheduler.call_later(0.1, lambda: calls.append("a"))
        scheduler.call_later(1.0, lambda: calls.append("b"))
        scheduler.advance(0.5)
        assert calls == ["a"]
        assert scheduler.now() == 0.5

    def test_cancelled_callback_skipped(self) -> None:
        """Cancelled callbacks never run."""
        scheduler: VirtualScheduler = VirtualScheduler()
        calls: list[str] = []
        handle: TimerHandle = scheduler.call_later(0.1, lambda: calls.append("a"))
        handle.cancel()
        assert handle.cancelled
        assert scheduler.pending == 0
        assert scheduler.run_all() == 0
        assert calls == []

    def test_nested_scheduling(self) -> None:
        """Callbacks scheduled by callbacks run if due within the window."""
        scheduler: VirtualScheduler = VirtualScheduler()
        calls: list[float] = []

        def first() -> None:
            calls.append(scheduler.now())
            scheduler.call_later(0.1, lambda: calls.append(scheduler.now()))

        scheduler.call_later(0.1, first)
        assert scheduler.advance(1.0) == 2
        assert calls == pytest.approx([0.1, 0.2])

    def test_run_all_moves_clock(self) -> None:
        """run_all runs everything and leaves the clock at the last deadline."""
        scheduler: VirtualScheduler = VirtualScheduler(start=10.0)
        scheduler.call_later(2.0, lambda: None)
        assert scheduler.run_all() == 1
        assert scheduler.now() == pytest.approx(12.0)

    def test_negative_advance_rejected(self) -> None:
        """The clock never moves backwards."""
        with pytest.raises(ValueError):
            VirtualScheduler().advance(-1.0)


class TestAsyncioScheduler:
    """Tests for the event-loop backed scheduler."""

    @pytest.mark.asyncio
    async def test_callback_runs_on_loop(self) -> None:
        """Callbacks run after their delay on the running loop."""
        scheduler: AsyncioScheduler = AsyncioScheduler()
        fired: list[bool] = []
        scheduler.call_later(0.01, lambda: fired.append(True))
        await asyncio.sleep(0.05)
        assert fired == [True]
        assert scheduler.loop is asyncio.get_running_loop()

    @pytest.mark.asyncio
    async def test_cancel(self) -> None:
        """Cancelled callbacks do not run."""
        scheduler: AsyncioScheduler = AsyncioScheduler()
        fired: list[bool] = []
        handle: TimerHandle = scheduler.call_later(0.01, lambda: fired.append(True))
        handle.cancel()
        await asyncio.sleep(0.05)
        assert fired == []
        assert handle.cancelled

    @pytest.mark.asyncio
    async def test_now_uses_loop_clock(self) -> None:
        """now() is the loop's monotonic time."""
        scheduler: AsyncioScheduler = AsyncioScheduler()
        assert scheduler.now() == pytest.approx(asyncio.get_running_loop().time(), abs=0.01)
