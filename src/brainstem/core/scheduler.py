"""Scheduler - interval tasks on the event loop (sync, backfill, audit)."""

import asyncio
import contextlib
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

from brainstem.core.logging import get_logger

logger = get_logger("core.scheduler")


class TaskPriority(Enum):
    LOW = 1
    NORMAL = 2
    HIGH = 3


@dataclass
class ScheduledTask:
    """A task scheduled for background execution."""

    id: str
    name: str
    callback: Callable
    interval: timedelta | None = None  # None = one-shot
    priority: TaskPriority = TaskPriority.NORMAL
    next_run: datetime = field(default_factory=datetime.now)
    last_run: datetime | None = None
    enabled: bool = True
    failures: int = 0


class Scheduler:
    """Runs due tasks once per tick; a failing task never stops the loop."""

    def __init__(self, tick: float = 1.0):
        self._tasks: dict[str, ScheduledTask] = {}
        self._running = False
        self._loop_task: asyncio.Task | None = None
        self._tick = tick

    def schedule_task(
        self,
        task_id: str,
        name: str,
        callback: Callable,
        interval: timedelta | None = None,
        priority: TaskPriority = TaskPriority.NORMAL,
        delay: timedelta | None = None,
    ) -> None:
        """Schedule a background task."""
        next_run = datetime.now()
        if delay:
            next_run += delay

        self._tasks[task_id] = ScheduledTask(
            id=task_id,
            name=name,
            callback=callback,
            interval=interval,
            priority=priority,
            next_run=next_run,
        )
        logger.info(f"Scheduled task: {name} (interval: {interval})")

    def cancel_task(self, task_id: str) -> bool:
        """Cancel a scheduled task."""
        if task_id in self._tasks:
            del self._tasks[task_id]
            return True
        return False

    def get_task(self, task_id: str) -> ScheduledTask | None:
        return self._tasks.get(task_id)

    async def start(self) -> None:
        """Start the scheduler loop."""
        if self._running:
            return
        self._running = True
        self._loop_task = asyncio.create_task(self._scheduler_loop())
        logger.info("Scheduler started")

    async def stop(self) -> None:
        """Stop the scheduler loop."""
        self._running = False
        if self._loop_task:
            self._loop_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._loop_task
            self._loop_task = None
        logger.info("Scheduler stopped")

    async def run_pending(self, now: datetime | None = None) -> int:
        """Run every due task once. Returns how many ran."""
        now = now or datetime.now()
        pending = [t for t in self._tasks.values() if t.enabled and t.next_run <= now]

        # Higher priority first
        pending.sort(key=lambda t: t.priority.value, reverse=True)

        for task in pending:
            try:
                result = task.callback()
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                task.failures += 1
                logger.error(f"Task {task.name} failed: {e}")
            finally:
                task.last_run = datetime.now()

                if task.interval:
                    task.next_run = task.last_run + task.interval
                else:
                    self._tasks.pop(task.id, None)

        return len(pending)

    async def _scheduler_loop(self) -> None:
        while self._running:
            await self.run_pending()
            await asyncio.sleep(self._tick)
