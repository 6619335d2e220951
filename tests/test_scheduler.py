import asyncio
from datetime import datetime

import pytest

from shortlink_app.scheduler import SweepScheduler

from tests.conftest import FakeClock


class TestSweepScheduler:
    """Test the daily sweep schedule"""

    @pytest.mark.parametrize("now, expected", [
        (datetime(2026, 1, 1, 12, 0), datetime(2026, 1, 2, 0, 0)),
        (datetime(2026, 1, 1, 0, 0), datetime(2026, 1, 2, 0, 0)),
        (datetime(2026, 1, 1, 23, 59, 59), datetime(2026, 1, 2, 0, 0)),
        (datetime(2026, 12, 31, 8, 30), datetime(2027, 1, 1, 0, 0)),
    ])
    def test_next_run_is_next_midnight(self, now, expected):
        scheduler = SweepScheduler(sweep=None)
        assert scheduler.next_run_at(now) == expected

    def test_custom_time_of_day(self):
        scheduler = SweepScheduler(sweep=None, hour=3, minute=30)

        assert scheduler.next_run_at(datetime(2026, 1, 1, 1, 0)) == datetime(2026, 1, 1, 3, 30)
        assert scheduler.next_run_at(datetime(2026, 1, 1, 4, 0)) == datetime(2026, 1, 2, 3, 30)

    def test_invalid_time_of_day(self):
        with pytest.raises(ValueError):
            SweepScheduler(sweep=None, hour=24)

    def test_loop_sleeps_until_each_tick(self):
        clock = FakeClock(datetime(2026, 1, 1, 18, 0))
        delays = []
        runs = []

        async def sweep():
            runs.append(clock.now())
            return 0

        async def fake_sleep(seconds):
            delays.append(seconds)
            clock.advance(seconds=seconds)
            if len(delays) == 3:
                scheduler.stop()

        scheduler = SweepScheduler(sweep, clock=clock, sleep=fake_sleep)
        asyncio.run(scheduler.start())

        assert delays == [6 * 3600, 24 * 3600, 24 * 3600]
        # The third sleep stopped the loop before its tick
        assert runs == [datetime(2026, 1, 2), datetime(2026, 1, 3)]

    def test_missed_ticks_are_not_replayed(self):
        clock = FakeClock(datetime(2026, 1, 1, 18, 0))
        runs = []

        async def sweep():
            runs.append(clock.now())
            return 0

        async def fake_sleep(seconds):
            # Process was suspended for three days past the planned tick
            clock.advance(seconds=seconds, days=3)
            if runs:
                scheduler.stop()

        scheduler = SweepScheduler(sweep, clock=clock, sleep=fake_sleep)
        asyncio.run(scheduler.start())

        assert len(runs) == 1

    def test_failing_sweep_does_not_stop_the_loop(self):
        clock = FakeClock()
        calls = []

        async def sweep():
            calls.append(1)
            raise RuntimeError("database unavailable")

        async def fake_sleep(seconds):
            if len(calls) == 2:
                scheduler.stop()

        scheduler = SweepScheduler(sweep, clock=clock, sleep=fake_sleep)
        asyncio.run(scheduler.start())

        assert len(calls) == 2
        assert scheduler.runs == 2

    def test_run_once_returns_sweep_result(self):
        async def sweep():
            return 4

        scheduler = SweepScheduler(sweep)
        assert asyncio.run(scheduler.run_once()) == 4

    def test_cancellation_stops_the_loop(self):
        async def scenario():
            scheduler = SweepScheduler(sweep=None)
            task = asyncio.create_task(scheduler.start())
            await asyncio.sleep(0)
            task.cancel()
            await task
            return task

        task = asyncio.run(scenario())
        assert task.done()
