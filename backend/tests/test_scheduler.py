"""Tests for the background task scheduler."""

import asyncio

import pytest

from tableready.services.scheduler_service import TaskScheduler


class TestTaskScheduler:
    """Tests for TaskScheduler bookkeeping."""

    def test_run_now_records_result(self):
        scheduler = TaskScheduler()
        scheduler.add_task("sweep", lambda: {"expired": 2}, interval_seconds=60)

        result = asyncio.run(scheduler.run_now("sweep"))
        assert result == {"expired": 2}

        status = scheduler.get_status()["sweep"]
        assert status["run_count"] == 1
        assert status["interval_seconds"] == 60
        assert status["last_error"] is None

    def test_failures_are_recorded_not_raised(self):
        def broken():
            raise RuntimeError("database went away")

        scheduler = TaskScheduler()
        scheduler.add_task("broken", broken, interval_seconds=30)
        asyncio.run(scheduler.run_now("broken"))

        assert scheduler.get_status()["broken"]["last_error"] == "database went away"

    def test_unknown_task(self):
        with pytest.raises(KeyError):
            asyncio.run(TaskScheduler().run_now("missing"))

    def test_stop(self):
        scheduler = TaskScheduler(tick_seconds=0)

        async def run_briefly():
            task = asyncio.create_task(scheduler.start())
            await asyncio.sleep(0)
            assert scheduler.running is True
            scheduler.stop()
            await task

        asyncio.run(run_briefly())
        assert scheduler.running is False
