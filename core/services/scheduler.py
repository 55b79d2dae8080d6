"""
Explicit periodic scheduling on a single asyncio event loop.

A Scheduler owns one PeriodicTask per job. Each PeriodicTask ticks at a fixed
rate and serializes its own invocations: a tick that is due while the previous
one is still running waits until that one completes. Tasks are independent of
each other; nothing orders one task's cycles against another's.
"""

import asyncio
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class PeriodicTask:
    """Runs ``cycle`` every ``interval_seconds`` with at most one execution in flight."""

    def __init__(
        self,
        name: str,
        interval_seconds: float,
        cycle: Callable[[], Awaitable[Any]],
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.name = name
        self.interval_seconds = interval_seconds
        self.cycle = cycle
        self.runs = 0
        self.failures = 0
        self._lock = asyncio.Lock()
        self._is_running = False
        self.logger = logger.bind(component="periodic_task", task=name)

    @property
    def is_running(self) -> bool:
        return self._is_running

    async def run_once(self) -> Any:
        """
        Execute one cycle. Concurrent callers queue behind the lock.

        Errors escaping the cycle are logged here and never propagate, so a
        failed cycle cannot take the scheduler down.
        """
        async with self._lock:
            start_time = time.perf_counter()
            try:
                return await self.cycle()
            except Exception as e:
                self.failures += 1
                self.logger.exception("periodic_task_cycle_failed", error=str(e))
                return None
            finally:
                self.runs += 1
                self.logger.debug(
                    "periodic_task_cycle_finished",
                    duration_seconds=round(time.perf_counter() - start_time, 3),
                )

    async def run_forever(self) -> None:
        """Tick at a fixed rate until stopped or cancelled."""
        self._is_running = True
        self.logger.info("periodic_task_started", interval_seconds=self.interval_seconds)

        try:
            while self._is_running:
                cycle_start_time = time.perf_counter()
                await self.run_once()

                elapsed_time = time.perf_counter() - cycle_start_time
                sleep_time = max(0, self.interval_seconds - elapsed_time)

                if sleep_time > 0:
                    await asyncio.sleep(sleep_time)
                else:
                    # Deferred tick: start the next cycle right away
                    self.logger.warning(
                        "periodic_task_overran_interval",
                        elapsed_seconds=round(elapsed_time, 3),
                        interval_seconds=self.interval_seconds,
                    )
                    await asyncio.sleep(0)
        except asyncio.CancelledError:
            self.logger.info("periodic_task_cancelled")
            raise
        finally:
            self._is_running = False

    def stop(self) -> None:
        """Let the current cycle finish, then exit the loop."""
        self._is_running = False


class Scheduler:
    """Owns a set of PeriodicTasks and their asyncio tasks."""

    def __init__(self) -> None:
        self.tasks: list[PeriodicTask] = []
        self._handles: list[asyncio.Task[None]] = []
        self.logger = logger.bind(component="scheduler")

    def add_task(self, task: PeriodicTask) -> PeriodicTask:
        if any(existing.name == task.name for existing in self.tasks):
            raise ValueError(f"Task already scheduled: {task.name}")
        self.tasks.append(task)
        self.logger.info("task_added", task=task.name, interval_seconds=task.interval_seconds)
        return task

    def every(
        self, name: str, interval_seconds: float, cycle: Callable[[], Awaitable[Any]]
    ) -> PeriodicTask:
        """Shorthand for building and adding a PeriodicTask."""
        return self.add_task(PeriodicTask(name, interval_seconds, cycle))

    @property
    def is_running(self) -> bool:
        return any(not handle.done() for handle in self._handles)

    def start(self) -> None:
        if self.is_running:
            raise RuntimeError("Scheduler already running")
        self._handles = [
            asyncio.create_task(task.run_forever(), name=task.name) for task in self.tasks
        ]
        self.logger.info("scheduler_started", task_count=len(self.tasks))

    async def stop(self) -> None:
        for handle in self._handles:
            handle.cancel()
        await asyncio.gather(*self._handles, return_exceptions=True)
        self._handles = []
        self.logger.info("scheduler_stopped")

    @asynccontextmanager
    async def running(self) -> AsyncIterator["Scheduler"]:
        """
        Async context manager for the scheduler lifecycle.

        Pattern: start on enter, cancel and await every task on exit.
        """
        self.start()
        try:
            yield self
        finally:
            await self.stop()
