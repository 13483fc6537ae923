"""Background task scheduler for periodic jobs (expiry sweep, capacity snapshots)."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class TaskScheduler:
    """Lightweight asyncio-based task scheduler.

    Runs registered tasks at fixed intervals. State is ephemeral and does not
    survive restarts; every registered job must be safe to re-run.
    """

    def __init__(self, tick_seconds: int = 5):
        self._tasks: Dict[str, Dict[str, Any]] = {}
        self._running = False
        self.tick_seconds = tick_seconds

    @property
    def running(self) -> bool:
        return self._running

    async def _run(self, name: str, task: Dict[str, Any], now: datetime) -> None:
        try:
            if asyncio.iscoroutinefunction(task["func"]):
                result = await task["func"]()
            else:
                result = await asyncio.to_thread(task["func"])
            task["last_run"] = now
            task["last_result"] = result
            task["run_count"] = task.get("run_count", 0) + 1
            task["last_error"] = None
            logger.debug(f"Scheduled task '{name}' completed")
        except Exception as e:
            task["last_error"] = str(e)
            logger.error(f"Scheduled task '{name}' failed: {e}", exc_info=True)
        finally:
            task["next_run"] = now + task["interval"]

    async def start(self):
        """Start the scheduler loop."""
        self._running = True
        logger.info("Task scheduler started")

        while self._running:
            now = datetime.now(timezone.utc)
            for name, task in list(self._tasks.items()):
                if now >= task["next_run"]:
                    await self._run(name, task, now)
            await asyncio.sleep(self.tick_seconds)

    def stop(self):
        self._running = False
        logger.info("Task scheduler stopped")

    def add_task(self, name: str, func: Callable, interval_seconds: int, initial_delay_seconds: int = 10):
        self._tasks[name] = {
            "func": func,
            "interval": timedelta(seconds=interval_seconds),
            "next_run": datetime.now(timezone.utc) + timedelta(seconds=initial_delay_seconds),
            "last_run": None,
            "last_result": None,
            "run_count": 0,
            "last_error": None,
        }
        logger.info(f"Scheduled task '{name}' every {interval_seconds}s")

    def remove_task(self, name: str):
        self._tasks.pop(name, None)

    async def run_now(self, name: str) -> Optional[Any]:
        """Run a registered task immediately and return its result."""
        task = self._tasks.get(name)
        if task is None:
            raise KeyError(name)
        await self._run(name, task, datetime.now(timezone.utc))
        return task["last_result"]

    def get_status(self) -> Dict[str, Any]:
        return {
            name: {
                "last_run": t["last_run"].isoformat() if t["last_run"] else None,
                "next_run": t["next_run"].isoformat(),
                "interval_seconds": int(t["interval"].total_seconds()),
                "run_count": t.get("run_count", 0),
                "last_error": t.get("last_error"),
            }
            for name, t in self._tasks.items()
        }


scheduler = TaskScheduler()
